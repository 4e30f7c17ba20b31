# src/memcore/memory/__init__.py
"""
Memory records, compaction and the memory manager facade.
"""

from .record import MemoryRecord, utc_now
from .compactor import MemoryCompactor
from .manager import MemoryManager

__all__ = [
    "MemoryRecord",
    "MemoryCompactor",
    "MemoryManager",
    "utc_now",
]
