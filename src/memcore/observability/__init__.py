# src/memcore/observability/__init__.py
"""
Observability hooks for the memcore library: telemetry sinks and tracing spans.
"""

from .telemetry import (
    BufferedTelemetrySink,
    JsonlTelemetrySink,
    LoggingTelemetrySink,
    MemoryEvent,
    NullTelemetrySink,
    TelemetrySink,
    safe_emit,
)
from .tracing import create_span, get_tracer

__all__ = [
    "MemoryEvent",
    "TelemetrySink",
    "NullTelemetrySink",
    "LoggingTelemetrySink",
    "BufferedTelemetrySink",
    "JsonlTelemetrySink",
    "safe_emit",
    "get_tracer",
    "create_span",
]
