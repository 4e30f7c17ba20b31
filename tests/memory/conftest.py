"""
Shared pytest fixtures for memory module tests.

This conftest provides a deterministic embedding engine, a fresh in-memory
store, a manager wired to a buffered telemetry sink, and a record factory
for building backdated or pre-embedded records.
"""

import random
from datetime import timedelta
from typing import Any, Callable, List, Optional

import pytest

from memcore.config import CompactionConfig, MemoryConfig
from memcore.embedding.hashing import HashEmbeddingEngine
from memcore.memory.compactor import MemoryCompactor
from memcore.memory.manager import MemoryManager
from memcore.memory.record import MemoryRecord, utc_now
from memcore.observability.telemetry import BufferedTelemetrySink
from memcore.storage.in_memory import InMemoryMemoryStore

# ============================================================================
# CORE COMPONENTS
# ============================================================================


@pytest.fixture
def hash_engine() -> HashEmbeddingEngine:
    return HashEmbeddingEngine()


@pytest.fixture
def store() -> InMemoryMemoryStore:
    return InMemoryMemoryStore()


@pytest.fixture
def telemetry() -> BufferedTelemetrySink:
    return BufferedTelemetrySink(max_size=100)


@pytest.fixture
def compactor() -> MemoryCompactor:
    """Compactor with default thresholds and a seeded sampler."""
    return MemoryCompactor(rng=random.Random(42))


@pytest.fixture
def manager(store, hash_engine, compactor, telemetry) -> MemoryManager:
    """Manager over the hash engine with default compaction settings."""
    return MemoryManager(
        store=store,
        embedding_engine=hash_engine,
        compactor=compactor,
        telemetry=telemetry,
    )


@pytest.fixture
def small_manager(store, hash_engine, telemetry) -> MemoryManager:
    """Manager capped at five memories per scope."""
    config = MemoryConfig(compaction=CompactionConfig(max_memories=5))
    return MemoryManager(
        store=store,
        embedding_engine=hash_engine,
        compactor=MemoryCompactor(config.compaction, rng=random.Random(7)),
        telemetry=telemetry,
        config=config,
    )


# ============================================================================
# RECORD FACTORY
# ============================================================================


@pytest.fixture
def make_record() -> Callable[..., MemoryRecord]:
    """
    Build a record with an optional age in days and a fixed embedding.

    Records created in sequence get strictly increasing ``created_at`` values
    so ordering by creation time is unambiguous.
    """
    base = utc_now() - timedelta(seconds=1000)
    counter = {"n": 0}

    def _make(
        content: str = "memory",
        owner: Optional[str] = None,
        age_days: Optional[float] = None,
        embedding: Optional[List[float]] = None,
        access_count: int = 0,
        **kwargs: Any,
    ) -> MemoryRecord:
        counter["n"] += 1
        if age_days is not None:
            created_at = utc_now() - timedelta(days=age_days)
        else:
            created_at = base + timedelta(seconds=counter["n"])
        return MemoryRecord(
            content=content,
            owner=owner,
            embedding=embedding,
            access_count=access_count,
            created_at=created_at,
            **kwargs,
        )

    return _make


@pytest.fixture
def unit_vector() -> Callable[[int], List[float]]:
    """Unit basis vectors; distinct indexes are orthogonal."""

    def _unit(index: int, dimension: int = 64) -> List[float]:
        vector = [0.0] * dimension
        vector[index % dimension] = 1.0
        return vector

    return _unit
