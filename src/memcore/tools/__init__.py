# src/memcore/tools/__init__.py
"""
Agent tool adapters over the memory manager.
"""

from .memory_toolset import TOOLSET_NAME, MemoryToolset, ToolDefinition

__all__ = [
    "MemoryToolset",
    "ToolDefinition",
    "TOOLSET_NAME",
]
