# src/memcore/observability/tracing.py
"""
OpenTelemetry span helpers for memory operations.

memcore never configures a tracer provider; it only creates spans through
whatever provider the host application installed. Without the
``opentelemetry-api`` package every span is a no-op context manager.
"""

import logging
from contextlib import nullcontext
from typing import Any, Optional

logger = logging.getLogger(__name__)


def get_tracer(name: str) -> Optional[object]:
    """
    Get a tracer instance for creating manual spans.

    Returns:
        OpenTelemetry tracer instance if available, None otherwise
    """
    try:
        from opentelemetry import trace
    except ImportError:
        return None
    return trace.get_tracer(name)


def _attribute_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (str, bool, int, float)):
        return value
    return str(value)


def create_span(tracer: Optional[object], name: str, **attributes: Any):
    """
    Create a span context manager, or a no-op one when tracing is unavailable.

    ``None`` attribute values are recorded as empty strings since OpenTelemetry
    rejects them.
    """
    if tracer is None:
        return nullcontext()

    try:
        return tracer.start_as_current_span(  # type: ignore[attr-defined]
            name, attributes={k: _attribute_value(v) for k, v in attributes.items()}
        )
    except Exception as e:
        logger.debug(f"Failed to create span '{name}': {e}")
        return nullcontext()
