# src/memcore/memory/manager.py
"""
Memory Manager: the single entry point for storing and recalling memories.

The manager composes an embedding engine, a memory store and a compactor.
It embeds content on the way in, delegates persistence and search to the
store, and runs compaction after calls that add or change records.

Every public operation reports a telemetry event (``memory.store``,
``memory.search``, ...) to the configured sink. A failing sink is logged
and ignored.

Usage:
    >>> from memcore import MemoryManager
    >>> manager = MemoryManager()
    >>> record = manager.store_memory("User prefers Python", owner="alice", tags=["pref"])
    >>> [r.content for r in manager.search_memories("python", owner="alice")]
    ['User prefers Python']
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..config import MemoryConfig
from ..embedding.base import BaseEmbeddingEngine
from ..embedding.factory import create_embedding_engine
from ..exceptions import MalformedRecordError, StoreWriteError
from ..observability.telemetry import NullTelemetrySink, TelemetrySink, safe_emit
from ..storage.base import BaseMemoryStore
from ..storage.in_memory import InMemoryMemoryStore
from .compactor import MemoryCompactor
from .record import MemoryRecord

logger = logging.getLogger(__name__)


class MemoryManager:
    """
    High-level memory interface over a store, an embedding engine and a compactor.

    Args:
        store: Memory store. Defaults to a new ``InMemoryMemoryStore``.
        embedding_engine: Embedding engine. Defaults to the engine built from
            ``config.embedding``, which falls back to the hash engine when
            the model cannot load.
        compactor: Compactor. Defaults to one built from ``config.compaction``.
        telemetry: Event sink. Defaults to a no-op sink.
        config: Memory configuration. Defaults to ``MemoryConfig()``.
    """

    def __init__(
        self,
        store: Optional[BaseMemoryStore] = None,
        embedding_engine: Optional[BaseEmbeddingEngine] = None,
        compactor: Optional[MemoryCompactor] = None,
        telemetry: Optional[TelemetrySink] = None,
        config: Optional[MemoryConfig] = None,
    ):
        self.config = config or MemoryConfig()
        self.store = store if store is not None else InMemoryMemoryStore()
        self.embedding_engine = (
            embedding_engine if embedding_engine is not None else create_embedding_engine(self.config.embedding)
        )
        self.compactor = compactor if compactor is not None else MemoryCompactor(self.config.compaction)
        self.telemetry = telemetry if telemetry is not None else NullTelemetrySink()

        logger.debug(
            f"MemoryManager initialized with store={type(self.store).__name__}, "
            f"engine={self.embedding_engine.model_name()}"
        )

    # =========================================================================
    # SINGLE-RECORD OPERATIONS
    # =========================================================================

    def store_memory(
        self,
        content: str,
        owner: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> MemoryRecord:
        """
        Embed and persist a new memory, then compact its scope if needed.

        Raises:
            StoreWriteError: If the store reports the write failed.
        """
        record = MemoryRecord(
            content=content,
            owner=owner,
            tags=set(tags or ()),
            embedding=self.embedding_engine.embed(content),
            metadata=dict(metadata or {}),
        )

        if not self.store.store(record):
            raise StoreWriteError(record.id, "Failed to store memory.")

        self._emit("memory.store", memory_id=record.id, owner=owner, tag_count=len(record.tags))
        self._auto_compact(owner)
        return record

    def get_memory(self, memory_id: str) -> Optional[MemoryRecord]:
        """Retrieve a memory by ID. Counts as an access."""
        record = self.store.retrieve(memory_id)
        self._emit("memory.get", memory_id=memory_id, found=record is not None)
        return record

    def update_memory(
        self,
        memory_id: str,
        new_content: str,
        tags: Optional[Iterable[str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Replace a memory's content and regenerate its embedding.

        ``tags`` are added to the existing tags and ``metadata`` is merged into
        the existing metadata. Returns False if the ID is unknown.
        """
        record = self.store.retrieve(memory_id)
        if record is None:
            self._emit("memory.update", memory_id=memory_id, success=False)
            return False

        record.update_content(new_content)
        record.embedding = self.embedding_engine.embed(new_content)
        if tags is not None:
            record.merge_tags(tags)
        if metadata is not None:
            record.metadata.update(metadata)

        success = self.store.update(record)
        self._emit("memory.update", memory_id=memory_id, success=success)
        if success:
            self._auto_compact(record.owner)
        return success

    def delete_memory(self, memory_id: str) -> bool:
        success = self.store.delete(memory_id)
        self._emit("memory.delete", memory_id=memory_id, success=success)
        return success

    def get_all_memories(
        self, owner: Optional[str] = None, limit: Optional[int] = None, offset: Optional[int] = None
    ) -> List[MemoryRecord]:
        """Memories in scope, newest first."""
        return self.store.list(owner, limit=limit, offset=offset)

    # =========================================================================
    # SEARCH
    # =========================================================================

    def search_memories(
        self,
        query: str,
        owner: Optional[str] = None,
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> List[MemoryRecord]:
        """
        Semantic search by embedding similarity.

        Falls back to text search when the store has no vector search.
        ``limit`` and ``threshold`` default to ``config.search_limit`` and
        ``config.search_threshold`` (10 and 0.5).
        """
        limit = self.config.search_limit if limit is None else limit
        threshold = self.config.search_threshold if threshold is None else threshold

        if self.store.supports_vector_search():
            query_embedding = self.embedding_engine.embed(query)
            results = self.store.vector_search(query_embedding, owner, limit=limit, threshold=threshold)
        else:
            results = self.store.search(query, owner, limit=limit)

        self._emit(
            "memory.search",
            query=query,
            owner=owner,
            limit=limit,
            threshold=threshold,
            result_count=len(results),
        )
        return results

    def search_by_tags(
        self, tags: Sequence[str], owner: Optional[str] = None, limit: Optional[int] = None
    ) -> List[MemoryRecord]:
        results = self.store.search_by_tags(tags, owner, limit=limit)
        self._emit("memory.search_by_tags", tags=",".join(sorted(tags)), owner=owner, result_count=len(results))
        return results

    def search_text(self, query: str, owner: Optional[str] = None, limit: Optional[int] = None) -> List[MemoryRecord]:
        """Plain substring search over content and tags."""
        results = self.store.search(query, owner, limit=limit)
        self._emit("memory.search_text", query=query, owner=owner, result_count=len(results))
        return results

    def find_similar(self, memory_id: str, limit: int = 5, threshold: float = 0.7) -> List[MemoryRecord]:
        """
        Memories similar to an existing one, within the same owner scope.

        The source memory is excluded. Returns an empty list if it does not
        exist or has no embedding.
        """
        record = self.store.retrieve(memory_id)
        if record is None or record.embedding is None:
            return []

        results = self.store.vector_search(record.embedding, record.owner, limit=limit + 1, threshold=threshold)
        similar = [r for r in results if r.id != memory_id][:limit]
        self._emit("memory.find_similar", memory_id=memory_id, result_count=len(similar))
        return similar

    def count_memories(self, owner: Optional[str] = None) -> int:
        return self.store.count(owner)

    def clear_memories(self, owner: Optional[str] = None) -> int:
        removed = self.store.clear(owner)
        self._emit("memory.clear", owner=owner, removed_count=removed)
        return removed

    # =========================================================================
    # BATCH, EXPORT AND IMPORT
    # =========================================================================

    def store_memories_batch(
        self,
        contents: Sequence[str],
        owner: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> List[MemoryRecord]:
        """
        Embed and store many memories with one ``embed_batch`` call.

        Returns the records the store accepted, in input order. Compaction
        runs once after the whole batch.
        """
        contents = list(contents)
        tag_set = set(tags or ())
        embeddings = self.embedding_engine.embed_batch(contents)

        records = [
            MemoryRecord(content=content, owner=owner, tags=set(tag_set), embedding=embedding)
            for content, embedding in zip(contents, embeddings)
        ]
        results = self.store.store_batch(records)
        stored = [record for record, ok in zip(records, results) if ok]

        if len(stored) < len(records):
            logger.warning(f"Stored {len(stored)} of {len(records)} memories in batch.")
        self._emit("memory.store_batch", owner=owner, requested=len(records), stored_count=len(stored))
        self._auto_compact(owner)
        return stored

    def export_memories(self, owner: Optional[str] = None) -> List[Dict[str, Any]]:
        """Serialize every memory in scope to plain dicts."""
        exported = [record.to_dict() for record in self.store.list(owner)]
        self._emit("memory.export", owner=owner, exported_count=len(exported))
        return exported

    def import_memories(self, memories_data: Iterable[Dict[str, Any]]) -> int:
        """
        Load serialized memories, keeping their IDs, timestamps and embeddings.

        Malformed entries are logged and skipped. Compaction runs once per
        distinct owner among the stored records.

        Returns:
            Number of records stored.
        """
        records: List[MemoryRecord] = []
        skipped = 0
        for index, data in enumerate(memories_data):
            try:
                records.append(MemoryRecord.from_dict(data))
            except MalformedRecordError as e:
                skipped += 1
                logger.warning(f"Skipping malformed memory at index {index}: {e}")

        results = self.store.store_batch(records)
        stored = [record for record, ok in zip(records, results) if ok]

        self._emit("memory.import", imported_count=len(stored), skipped_count=skipped)

        owners: List[Optional[str]] = []
        for record in stored:
            if record.owner not in owners:
                owners.append(record.owner)
        for owner in owners:
            self._auto_compact(owner)

        return len(stored)

    # =========================================================================
    # COMPACTION
    # =========================================================================

    def compact_if_needed(self, owner: Optional[str] = None) -> Dict[str, Any]:
        results = self.compactor.compact_if_needed(self.store, self.embedding_engine, owner)
        self._emit("memory.compaction", owner=owner, forced=False, total_compacted=results["total_compacted"])
        return results

    def force_compact(self, owner: Optional[str] = None) -> Dict[str, Any]:
        results = self.compactor.force_compact(self.store, self.embedding_engine, owner)
        self._emit("memory.compaction", owner=owner, forced=True, total_compacted=results["total_compacted"])
        return results

    def _auto_compact(self, owner: Optional[str]) -> None:
        if self.config.auto_compact:
            self.compact_if_needed(owner)

    # =========================================================================
    # DIAGNOSTICS
    # =========================================================================

    def stats(self) -> Dict[str, Any]:
        store_stats = self.store.stats()
        return {
            "store": store_stats,
            "embedding_engine": self.embedding_engine.stats(),
            "total_memories": store_stats.get("total_memories", 0),
        }

    def healthy(self) -> bool:
        """Engine is ready and the store answers ``count()``."""
        if not self.embedding_engine.ready():
            return False
        try:
            self.store.count()
        except Exception as e:
            logger.error(f"Memory store health check failed: {e}")
            return False
        return True

    def _emit(self, name: str, **attributes: Any) -> None:
        safe_emit(self.telemetry, name, attributes)
