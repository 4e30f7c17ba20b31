# tests/storage/conftest.py
"""
Pytest fixtures for memory store tests.
"""

from datetime import timedelta
from typing import Callable

import pytest

from memcore.memory.record import MemoryRecord, utc_now
from memcore.storage.in_memory import InMemoryMemoryStore


@pytest.fixture
def store() -> InMemoryMemoryStore:
    return InMemoryMemoryStore()


@pytest.fixture
def record_factory() -> Callable[..., MemoryRecord]:
    """Records with strictly increasing creation times, oldest first."""
    base = utc_now() - timedelta(hours=1)
    counter = {"n": 0}

    def _make(content: str = "memory", **kwargs) -> MemoryRecord:
        counter["n"] += 1
        kwargs.setdefault("created_at", base + timedelta(seconds=counter["n"]))
        return MemoryRecord(content=content, **kwargs)

    return _make
