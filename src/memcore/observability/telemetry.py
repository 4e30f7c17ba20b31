# src/memcore/observability/telemetry.py
"""
Telemetry sinks for memory operation events.

The memory manager reports each operation (store, search, compaction, ...)
as a named event with a small flat attribute map. Where those events go is
up to the application: nowhere (the default), the standard logger, an
in-memory buffer with callbacks, or a JSONL file.

A sink failure never breaks a memory operation: :func:`safe_emit` logs the
error and carries on.

Usage:
    >>> from memcore.observability import BufferedTelemetrySink
    >>> sink = BufferedTelemetrySink(max_size=500)
    >>> manager = MemoryManager(telemetry=sink)
    >>> manager.search_memories("python tips")
    >>> sink.events()[-1].name
    'memory.search'
"""

from __future__ import annotations

import abc
import json
import logging
import threading
import uuid
from collections import deque
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 1000


class MemoryEvent(BaseModel):
    """One telemetry event emitted by a memory operation."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))
    name: str = Field(..., description="Operation name, e.g. 'memory.search'")
    attributes: dict[str, Any] = Field(default_factory=dict)

    def to_jsonl(self) -> str:
        """Convert to a JSONL-compatible line (no trailing newline)."""
        return self.model_dump_json()

    @classmethod
    def from_jsonl(cls, line: str) -> MemoryEvent:
        return cls.model_validate_json(line)


class TelemetrySink(abc.ABC):
    """Receives named operation events."""

    @abc.abstractmethod
    def emit(self, name: str, attributes: dict[str, Any]) -> None:
        """Record one event."""


class NullTelemetrySink(TelemetrySink):
    """Discards every event."""

    def emit(self, name: str, attributes: dict[str, Any]) -> None:
        return None


class LoggingTelemetrySink(TelemetrySink):
    """Writes every event to a standard logger."""

    def __init__(self, logger_name: str = "memcore.telemetry", level: int = logging.DEBUG):
        self._logger = logging.getLogger(logger_name)
        self._level = level

    def emit(self, name: str, attributes: dict[str, Any]) -> None:
        self._logger.log(self._level, "%s %s", name, json.dumps(attributes, default=str, sort_keys=True))


class BufferedTelemetrySink(TelemetrySink):
    """
    Thread-safe in-memory ring buffer of events.

    Keeps the most recent ``max_size`` events and forwards each new event
    to any registered callbacks. A failing callback is logged and skipped.
    """

    def __init__(self, max_size: int = DEFAULT_BUFFER_SIZE):
        self._buffer: deque[MemoryEvent] = deque(maxlen=max_size)
        self._callbacks: list[Callable[[MemoryEvent], None]] = []
        self._lock = threading.RLock()
        self._total_events = 0

    def add_callback(self, callback: Callable[[MemoryEvent], None]) -> None:
        with self._lock:
            self._callbacks.append(callback)

    def emit(self, name: str, attributes: dict[str, Any]) -> None:
        event = MemoryEvent(name=name, attributes=dict(attributes))
        with self._lock:
            self._buffer.append(event)
            self._total_events += 1
            callbacks = list(self._callbacks)

        for callback in callbacks:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Telemetry callback failed: {e}")

    def events(self, name: str | None = None) -> list[MemoryEvent]:
        """Buffered events, oldest first, optionally filtered by name."""
        with self._lock:
            return [e for e in self._buffer if name is None or e.name == name]

    def clear(self) -> None:
        with self._lock:
            self._buffer.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)

    @property
    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "buffer_size": len(self._buffer),
                "max_size": self._buffer.maxlen,
                "total_events": self._total_events,
            }


class JsonlTelemetrySink(TelemetrySink):
    """Appends each event as one JSON line to a file."""

    def __init__(self, log_path: str | Path):
        self._log_path = Path(log_path).expanduser().resolve()
        self._log_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    @property
    def log_path(self) -> Path:
        return self._log_path

    def emit(self, name: str, attributes: dict[str, Any]) -> None:
        line = MemoryEvent(name=name, attributes=dict(attributes)).to_jsonl() + "\n"
        with self._lock:
            with open(self._log_path, "a", encoding="utf-8") as f:
                f.write(line)


def safe_emit(sink: TelemetrySink | None, name: str, attributes: dict[str, Any]) -> None:
    """Emit an event, logging instead of raising if the sink fails."""
    if sink is None:
        return
    try:
        sink.emit(name, attributes)
    except Exception as e:
        logger.warning(f"Telemetry sink {type(sink).__name__} failed on '{name}': {e}")
