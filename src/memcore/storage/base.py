# src/memcore/storage/base.py
"""
Abstract Base Class for memory storage backends.

This module defines the interface every memory store must honor so that a
durable backend can later replace the in-memory one without changing the
manager or the compactor. In particular ``retrieve`` is not a pure read: it
records the access on the stored record, and relevance pruning depends on it.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

if TYPE_CHECKING:
    from ..memory.record import MemoryRecord


class BaseMemoryStore(abc.ABC):
    """
    Abstract Base Class for memory record storage.

    Operations that take ``owner`` restrict themselves to that scope when it
    is given and span every record when it is None. Expected absence is
    signaled with ``None`` / ``False``, never with an exception.
    """

    @abc.abstractmethod
    def store(self, record: MemoryRecord) -> bool:
        """Insert or overwrite a record by ID. Returns True on success."""

    @abc.abstractmethod
    def retrieve(self, record_id: str) -> Optional[MemoryRecord]:
        """
        Look up a record by ID.

        Increments the stored record's ``access_count`` and sets its
        ``last_accessed_at`` before returning it.
        """

    @abc.abstractmethod
    def update(self, record: MemoryRecord) -> bool:
        """Replace an existing record. Returns False if the ID is unknown."""

    @abc.abstractmethod
    def delete(self, record_id: str) -> bool:
        """Remove a record. Returns False if the ID is unknown."""

    @abc.abstractmethod
    def list(
        self,
        owner: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[MemoryRecord]:
        """Records newest-created first, paged by ``offset`` then ``limit``."""

    @abc.abstractmethod
    def search(
        self, query: str, owner: Optional[str] = None, limit: Optional[int] = None
    ) -> List[MemoryRecord]:
        """Case-insensitive substring match over content and tags."""

    @abc.abstractmethod
    def search_by_tags(
        self, tags: Sequence[str], owner: Optional[str] = None, limit: Optional[int] = None
    ) -> List[MemoryRecord]:
        """Records carrying any of ``tags``, most matching tags first, then newest."""

    @abc.abstractmethod
    def vector_search(
        self,
        query_embedding: Sequence[float],
        owner: Optional[str] = None,
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> List[MemoryRecord]:
        """Records with embeddings ranked by descending cosine similarity."""

    @abc.abstractmethod
    def count(self, owner: Optional[str] = None) -> int:
        """Number of records in scope."""

    @abc.abstractmethod
    def clear(self, owner: Optional[str] = None) -> int:
        """Remove every record in scope. Returns the number removed."""

    def supports_vector_search(self) -> bool:
        return False

    def stats(self) -> Dict[str, Any]:
        return {
            "total_memories": self.count(),
            "supports_vector_search": self.supports_vector_search(),
        }

    # Batch operations map the single-record operation over the input, in order.

    def store_batch(self, records: Sequence[MemoryRecord]) -> List[bool]:
        return [self.store(record) for record in records]

    def retrieve_batch(self, record_ids: Sequence[str]) -> List[Optional[MemoryRecord]]:
        return [self.retrieve(record_id) for record_id in record_ids]

    def update_batch(self, records: Sequence[MemoryRecord]) -> List[bool]:
        return [self.update(record) for record in records]

    def delete_batch(self, record_ids: Sequence[str]) -> List[bool]:
        return [self.delete(record_id) for record_id in record_ids]
