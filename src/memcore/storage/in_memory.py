# src/memcore/storage/in_memory.py
"""
In-memory implementation of the memory store.

One dict maps record IDs to records and one ``threading.Lock`` guards it.
Every public operation holds the lock for its entire duration, including
the full-table scans behind ``list``, ``search`` and ``vector_search``.
Records cross the lock boundary as detached copies in both directions, so
a caller mutating a returned record never changes stored state; it must
call ``update``.
"""

from __future__ import annotations

import itertools
import logging
import re
import threading
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple

from ..embedding.base import cosine_similarity
from .base import BaseMemoryStore

if TYPE_CHECKING:
    from ..memory.record import MemoryRecord

logger = logging.getLogger(__name__)


def _page(records: List[MemoryRecord], limit: Optional[int], offset: Optional[int] = None) -> List[MemoryRecord]:
    if offset:
        records = records[offset:]
    if limit is not None:
        records = records[: max(limit, 0)]
    return records


class InMemoryMemoryStore(BaseMemoryStore):
    """
    Lock-guarded in-memory memory store.

    For production durability, replace with a database-backed store that
    honors the same contract, including the access bookkeeping on ``retrieve``.
    """

    def __init__(self) -> None:
        self._memories: Dict[str, MemoryRecord] = {}
        # Insertion order breaks ties between records sharing a created_at
        self._sequence: Dict[str, int] = {}
        self._counter = itertools.count()
        self._lock = threading.Lock()

    def _in_scope(self, record: MemoryRecord, owner: Optional[str]) -> bool:
        return owner is None or record.owner == owner

    def _recency_key(self, record: MemoryRecord) -> Tuple[float, int]:
        return (record.created_at.timestamp(), self._sequence[record.id])

    def store(self, record: MemoryRecord) -> bool:
        with self._lock:
            if record.id not in self._sequence:
                self._sequence[record.id] = next(self._counter)
            self._memories[record.id] = record.copy()
            return True

    def retrieve(self, record_id: str) -> Optional[MemoryRecord]:
        with self._lock:
            record = self._memories.get(record_id)
            if record is None:
                return None
            record.record_access()
            return record.copy()

    def update(self, record: MemoryRecord) -> bool:
        with self._lock:
            if record.id not in self._memories:
                return False
            self._memories[record.id] = record.copy()
            return True

    def delete(self, record_id: str) -> bool:
        with self._lock:
            if self._memories.pop(record_id, None) is None:
                return False
            self._sequence.pop(record_id, None)
            return True

    def list(
        self,
        owner: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[MemoryRecord]:
        with self._lock:
            records = [r for r in self._memories.values() if self._in_scope(r, owner)]
            records.sort(key=self._recency_key, reverse=True)
            return [r.copy() for r in _page(records, limit, offset)]

    def search(
        self, query: str, owner: Optional[str] = None, limit: Optional[int] = None
    ) -> List[MemoryRecord]:
        pattern = re.compile(re.escape(query), re.IGNORECASE)
        lowered = query.lower()

        def rank(record: MemoryRecord) -> Tuple[int, float, int]:
            content = record.content.lower()
            if content == lowered:
                tier = 0
            elif lowered in content:
                tier = 1
            else:
                tier = 2  # tag-only match
            created, seq = self._recency_key(record)
            return (tier, -created, -seq)

        with self._lock:
            records = [
                r
                for r in self._memories.values()
                if self._in_scope(r, owner)
                and (pattern.search(r.content) or any(pattern.search(tag) for tag in r.tags))
            ]
            records.sort(key=rank)
            return [r.copy() for r in _page(records, limit)]

    def search_by_tags(
        self, tags: Sequence[str], owner: Optional[str] = None, limit: Optional[int] = None
    ) -> List[MemoryRecord]:
        wanted = set(tags)

        with self._lock:
            scored = []
            for record in self._memories.values():
                if not self._in_scope(record, owner):
                    continue
                matching = len(wanted & record.tags)
                if matching:
                    created, seq = self._recency_key(record)
                    scored.append(((-matching, -created, -seq), record))
            scored.sort(key=lambda item: item[0])
            return [r.copy() for r in _page([record for _, record in scored], limit)]

    def vector_search(
        self,
        query_embedding: Sequence[float],
        owner: Optional[str] = None,
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> List[MemoryRecord]:
        with self._lock:
            records_with_similarity = []
            for record in self._memories.values():
                if not self._in_scope(record, owner) or record.embedding is None:
                    continue
                similarity = cosine_similarity(query_embedding, record.embedding)
                if threshold is not None and similarity < threshold:
                    continue
                records_with_similarity.append((record, similarity))

            records_with_similarity.sort(key=lambda item: -item[1])
            ranked = [record for record, _ in records_with_similarity]
            return [r.copy() for r in _page(ranked, limit)]

    def count(self, owner: Optional[str] = None) -> int:
        with self._lock:
            if owner is None:
                return len(self._memories)
            return sum(1 for r in self._memories.values() if r.owner == owner)

    def clear(self, owner: Optional[str] = None) -> int:
        with self._lock:
            if owner is None:
                removed = len(self._memories)
                self._memories.clear()
                self._sequence.clear()
            else:
                doomed = [rid for rid, r in self._memories.items() if r.owner == owner]
                for rid in doomed:
                    del self._memories[rid]
                    self._sequence.pop(rid, None)
                removed = len(doomed)
            logger.debug(f"Cleared {removed} memories (owner={owner!r}).")
            return removed

    def supports_vector_search(self) -> bool:
        return True

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            records = list(self._memories.values())
            total = len(records)
            return {
                "total_memories": total,
                "memories_with_embeddings": sum(1 for r in records if r.embedding is not None),
                "unique_owners": len({r.owner for r in records if r.owner is not None}),
                "supports_vector_search": True,
                "avg_access_count": sum(r.access_count for r in records) / total if total else 0.0,
            }
