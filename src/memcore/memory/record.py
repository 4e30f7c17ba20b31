# src/memcore/memory/record.py
"""
The memory record: one stored memory item.

A record carries its text, an optional owner scope, a tag set, an optional
unit-length embedding, and access bookkeeping used by relevance pruning.
Age is always derived from ``created_at``; it is never stored.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

from ..exceptions import MalformedRecordError

SECONDS_PER_DAY = 86400.0


def utc_now() -> datetime:
    """Timezone-aware current time used for every record timestamp."""
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def _parse_timestamp(value: Any, field_name: str) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise MalformedRecordError(f"Invalid ISO-8601 timestamp: {value!r}.", field=field_name) from e
    else:
        raise MalformedRecordError(f"Expected ISO-8601 string, got {type(value).__name__}.", field=field_name)
    return _as_utc(parsed)


@dataclass(eq=False)
class MemoryRecord:
    """A single memory item."""

    content: str
    owner: str | None = None
    tags: set[str] = field(default_factory=set)
    embedding: list[float] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime | None = None
    access_count: int = 0
    last_accessed_at: datetime | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "id" and "id" in self.__dict__:
            raise AttributeError("MemoryRecord.id is immutable")
        super().__setattr__(name, value)

    def __post_init__(self) -> None:
        self.tags = set(self.tags or ())
        self.created_at = _as_utc(self.created_at)
        if self.updated_at is not None:
            self.updated_at = _as_utc(self.updated_at)
        if self.last_accessed_at is not None:
            self.last_accessed_at = _as_utc(self.last_accessed_at)
        if self.embedding is not None:
            self.embedding = [float(x) for x in self.embedding]
        if self.updated_at is None or self.updated_at < self.created_at:
            self.updated_at = self.created_at

    def record_access(self) -> None:
        """Update access tracking."""
        self.access_count += 1
        self.last_accessed_at = utc_now()

    def update_content(self, new_content: str) -> None:
        """Replace the content and bump ``updated_at``."""
        self.content = new_content
        self.updated_at = max(utc_now(), self.created_at)

    def age_in_seconds(self, now: datetime | None = None) -> float:
        return ((_as_utc(now) if now else utc_now()) - self.created_at).total_seconds()

    def age_in_days(self, now: datetime | None = None) -> float:
        return self.age_in_seconds(now) / SECONDS_PER_DAY

    def accessed_recently(self, seconds: int = 3600) -> bool:
        """Whether the record was retrieved within the last ``seconds``."""
        if self.last_accessed_at is None:
            return False
        return (utc_now() - self.last_accessed_at).total_seconds() <= seconds

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def add_tag(self, tag: str) -> None:
        self.tags.add(tag)

    def remove_tag(self, tag: str) -> None:
        self.tags.discard(tag)

    def merge_tags(self, tags: Iterable[str]) -> None:
        self.tags.update(tags)

    def copy(self) -> MemoryRecord:
        """Detached deep copy sharing no mutable state with this record."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the flat export format."""
        return {
            "id": self.id,
            "content": self.content,
            "owner": self.owner,
            "tags": sorted(self.tags),
            "embedding": list(self.embedding) if self.embedding is not None else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "access_count": self.access_count,
            "last_accessed_at": self.last_accessed_at.isoformat() if self.last_accessed_at else None,
            "metadata": copy.deepcopy(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MemoryRecord:
        """
        Create from the flat export format.

        ``user_id`` is accepted as a legacy alias for ``owner``.

        Raises:
            MalformedRecordError: If a required field is missing or has the wrong type.
        """
        if not isinstance(data, dict):
            raise MalformedRecordError(f"Expected a mapping, got {type(data).__name__}.")

        for required in ("id", "content", "created_at", "updated_at"):
            if data.get(required) is None:
                raise MalformedRecordError("Missing required field.", field=required)

        if not isinstance(data["id"], str) or not isinstance(data["content"], str):
            raise MalformedRecordError("Fields 'id' and 'content' must be strings.")

        tags = data.get("tags") or []
        if not isinstance(tags, (list, tuple, set)):
            raise MalformedRecordError("Tags must be a list of strings.", field="tags")

        embedding = data.get("embedding")
        if embedding is not None:
            try:
                embedding = [float(x) for x in embedding]
            except (TypeError, ValueError) as e:
                raise MalformedRecordError("Embedding must be a list of numbers.", field="embedding") from e

        access_count = data.get("access_count") or 0
        if not isinstance(access_count, int) or access_count < 0:
            raise MalformedRecordError("Access count must be a non-negative integer.", field="access_count")

        metadata = data.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise MalformedRecordError("Metadata must be a mapping.", field="metadata")

        last_accessed = data.get("last_accessed_at")
        return cls(
            id=data["id"],
            content=data["content"],
            owner=data.get("owner", data.get("user_id")),
            tags=set(tags),
            embedding=embedding,
            metadata=copy.deepcopy(metadata),
            created_at=_parse_timestamp(data["created_at"], "created_at"),
            updated_at=_parse_timestamp(data["updated_at"], "updated_at"),
            access_count=access_count,
            last_accessed_at=_parse_timestamp(last_accessed, "last_accessed_at") if last_accessed else None,
        )

    def __repr__(self) -> str:
        preview = self.content[:50]
        return f"MemoryRecord(id={self.id[:8]}..., content={preview!r}, tags={sorted(self.tags)})"
