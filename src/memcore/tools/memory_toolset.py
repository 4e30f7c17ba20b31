# src/memcore/tools/memory_toolset.py
"""
Agent-facing memory tools.

Wraps a :class:`~memcore.memory.manager.MemoryManager` as a set of named
tools an agent can call with JSON arguments. Each tool has a pydantic
argument model; its JSON schema is published through
:meth:`MemoryToolset.get_tool_definitions` so it can be handed to a model
provider as a function-calling definition.

Usage:
    >>> toolset = MemoryToolset(MemoryManager(), owner="agent-7")
    >>> toolset.call("memory_store", {"content": "Deploy on Fridays is banned"})
    "Stored memory '3f2a...' successfully"
    >>> toolset.call("memory_count", {})
    1
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..exceptions import ToolError
from ..memory.manager import MemoryManager
from ..memory.record import MemoryRecord

logger = logging.getLogger(__name__)

TOOLSET_NAME = "memory"


class ToolDefinition(BaseModel):
    """Provider-neutral description of one callable tool."""

    name: str = Field(description="Unique name of the tool")
    description: str = Field(description="Natural language description for the LLM")
    parameters: Dict[str, Any] = Field(description="JSON Schema defining tool parameters")


# =============================================================================
# ARGUMENT MODELS
# =============================================================================


class _ToolArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")


class StoreArgs(_ToolArgs):
    content: str = Field(min_length=1, description="Text to remember")
    tags: List[str] = Field(default_factory=list, description="Optional tags")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Optional metadata")


class MemoryIdArgs(_ToolArgs):
    memory_id: str = Field(description="ID of the memory")


class SearchArgs(_ToolArgs):
    query: str = Field(min_length=1, description="Search query")
    mode: Literal["semantic", "text", "tags"] = Field(
        default="semantic", description="Similarity search, substring search, or tag match"
    )
    limit: int = Field(default=10, ge=1, le=100, description="Maximum results")
    threshold: Optional[float] = Field(
        default=None, ge=-1.0, le=1.0, description="Minimum similarity for semantic mode"
    )


class ListArgs(_ToolArgs):
    limit: Optional[int] = Field(default=None, ge=1, description="Maximum results")
    offset: Optional[int] = Field(default=None, ge=0, description="Results to skip")


class UpdateArgs(_ToolArgs):
    memory_id: str = Field(description="ID of the memory")
    content: str = Field(min_length=1, description="Replacement text")
    tags: Optional[List[str]] = Field(default=None, description="Tags to add")


class NoArgs(_ToolArgs):
    pass


# =============================================================================
# TOOLSET
# =============================================================================


class MemoryToolset:
    """
    Named memory tools bound to one manager and, optionally, one owner scope.

    When ``owner`` is set, every tool only sees and changes that owner's
    memories; IDs from other scopes behave as if they do not exist.
    """

    def __init__(self, manager: MemoryManager, owner: Optional[str] = None):
        self._manager = manager
        self.owner = owner
        self._tools: Dict[str, tuple] = {
            "memory_store": (StoreArgs, self._store, "Store a memory with optional tags and metadata"),
            "memory_retrieve": (MemoryIdArgs, self._retrieve, "Retrieve a memory's content by ID"),
            "memory_search": (SearchArgs, self._search, "Search memories by meaning, substring, or tags"),
            "memory_list": (ListArgs, self._list, "List memory IDs, newest first"),
            "memory_update": (UpdateArgs, self._update, "Replace an existing memory's content"),
            "memory_delete": (MemoryIdArgs, self._delete, "Delete a memory by ID"),
            "memory_clear": (NoArgs, self._clear, "Clear all stored memories"),
            "memory_count": (NoArgs, self._count, "Get the count of stored memories"),
            "memory_get_metadata": (MemoryIdArgs, self._get_metadata, "Get metadata for a specific memory"),
        }

    def get_tool_definitions(self) -> List[ToolDefinition]:
        return [
            ToolDefinition(name=name, description=description, parameters=args_model.model_json_schema())
            for name, (args_model, _, description) in self._tools.items()
        ]

    def get_tool_names(self) -> List[str]:
        return list(self._tools)

    def has_tool(self, tool_name: str) -> bool:
        return tool_name in self._tools

    def call(self, tool_name: str, arguments: Optional[Dict[str, Any]] = None) -> Any:
        """
        Validate ``arguments`` against the tool's model and run it.

        Raises:
            ToolError: If the tool is unknown or the arguments are invalid.
        """
        if tool_name not in self._tools:
            raise ToolError(tool_name, f"Unknown tool. Available tools: {self.get_tool_names()}")

        args_model: Type[BaseModel]
        handler: Callable[[Any], Any]
        args_model, handler, _ = self._tools[tool_name]
        try:
            args = args_model.model_validate(arguments or {})
        except ValidationError as e:
            raise ToolError(tool_name, f"Invalid arguments: {e}") from e

        logger.debug(f"Executing tool '{tool_name}' with arguments: {args.model_dump()}")
        return handler(args)

    # --- lookups ---

    def _in_scope(self, record: Optional[MemoryRecord]) -> bool:
        return record is not None and (self.owner is None or record.owner == self.owner)

    def _peek(self, memory_id: str) -> Optional[MemoryRecord]:
        # list() does not count as an access, unlike get_memory()
        for record in self._manager.get_all_memories(self.owner):
            if record.id == memory_id:
                return record
        return None

    # --- tools ---

    def _store(self, args: StoreArgs) -> str:
        record = self._manager.store_memory(
            args.content, owner=self.owner, tags=args.tags, metadata=args.metadata
        )
        return f"Stored memory '{record.id}' successfully"

    def _retrieve(self, args: MemoryIdArgs) -> Optional[str]:
        if self._peek(args.memory_id) is None:
            return None
        record = self._manager.get_memory(args.memory_id)
        return record.content if self._in_scope(record) else None

    def _search(self, args: SearchArgs) -> List[Dict[str, Any]]:
        if args.mode == "semantic":
            results = self._manager.search_memories(
                args.query, owner=self.owner, limit=args.limit, threshold=args.threshold
            )
        elif args.mode == "text":
            results = self._manager.search_text(args.query, owner=self.owner, limit=args.limit)
        else:
            tags = [t.strip() for t in args.query.split(",") if t.strip()]
            results = self._manager.search_by_tags(tags, owner=self.owner, limit=args.limit)
        return [{"id": r.id, "content": r.content, "tags": sorted(r.tags)} for r in results]

    def _list(self, args: ListArgs) -> List[str]:
        return [r.id for r in self._manager.get_all_memories(self.owner, limit=args.limit, offset=args.offset)]

    def _update(self, args: UpdateArgs) -> str:
        if self._peek(args.memory_id) is None or not self._manager.update_memory(
            args.memory_id, args.content, tags=args.tags
        ):
            return f"Memory '{args.memory_id}' not found"
        return f"Updated memory '{args.memory_id}' successfully"

    def _delete(self, args: MemoryIdArgs) -> str:
        if self._peek(args.memory_id) is None or not self._manager.delete_memory(args.memory_id):
            return f"Memory '{args.memory_id}' not found"
        return f"Deleted memory '{args.memory_id}' successfully"

    def _clear(self, args: NoArgs) -> str:
        return f"Cleared {self._manager.clear_memories(self.owner)} memories"

    def _count(self, args: NoArgs) -> int:
        return self._manager.count_memories(self.owner)

    def _get_metadata(self, args: MemoryIdArgs) -> Optional[Dict[str, Any]]:
        record = self._peek(args.memory_id)
        if record is None:
            return None
        return {
            "created_at": record.created_at.isoformat(),
            "updated_at": record.updated_at.isoformat(),
            "access_count": record.access_count,
            "last_accessed_at": record.last_accessed_at.isoformat() if record.last_accessed_at else None,
            "tags": sorted(record.tags),
            "content_length": len(record.content),
            "metadata": record.metadata,
        }
