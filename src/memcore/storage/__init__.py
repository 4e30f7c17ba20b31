# src/memcore/storage/__init__.py
"""
Storage backends for memory records.

Only an in-memory backend ships. Any replacement must implement
:class:`BaseMemoryStore` with the same semantics.
"""

from .base import BaseMemoryStore
from .in_memory import InMemoryMemoryStore

__all__ = [
    "BaseMemoryStore",
    "InMemoryMemoryStore",
]
