# tests/tools/conftest.py
"""
Pytest fixtures for the agent memory toolset tests.
"""

import pytest

from memcore.config import MemoryConfig
from memcore.embedding.hashing import HashEmbeddingEngine
from memcore.memory.manager import MemoryManager
from memcore.storage.in_memory import InMemoryMemoryStore
from memcore.tools.memory_toolset import MemoryToolset


@pytest.fixture
def manager() -> MemoryManager:
    return MemoryManager(
        store=InMemoryMemoryStore(),
        embedding_engine=HashEmbeddingEngine(),
        config=MemoryConfig(auto_compact=False),
    )


@pytest.fixture
def toolset(manager) -> MemoryToolset:
    return MemoryToolset(manager, owner="agent-1")


@pytest.fixture
def other_toolset(manager) -> MemoryToolset:
    return MemoryToolset(manager, owner="agent-2")
