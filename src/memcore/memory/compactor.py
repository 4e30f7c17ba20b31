# src/memcore/memory/compactor.py
"""
Memory compaction: the eviction policy engine.

The compactor inspects a store/engine pair and removes records to satisfy
four independent constraints, checked in a fixed order:

    1. Size        - scope holds more than ``max_memories`` records
    2. Age         - some record is older than ``max_age_days``
    3. Duplication - sampled recent records are mostly near-duplicates
    4. Relevance   - many records are rarely accessed

Each action returns a report dict with at least ``trigger``,
``removed_count``, ``before_count`` and ``after_count``. A pass that fails
to delete some records still returns its report; compaction never raises
for partial success.

Usage:
    >>> compactor = MemoryCompactor(max_memories=500)
    >>> report = compactor.compact_if_needed(store, engine, owner="alice")
    >>> report["total_compacted"]
    0
"""

from __future__ import annotations

import logging
import math
import random
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Set, Tuple

from ..config import CompactionConfig
from ..embedding.base import BaseEmbeddingEngine
from ..logging_config import log_display
from ..observability.tracing import create_span, get_tracer
from ..storage.base import BaseMemoryStore
from .record import MemoryRecord, utc_now

logger = logging.getLogger(__name__)

# Relevance blend weights
ACCESS_WEIGHT = 0.7
RECENCY_WEIGHT = 0.3

# Records inspected by the relevance trigger check
RELEVANCE_CHECK_LIMIT = 100

REPORT_KEYS = ("size_compaction", "age_compaction", "deduplication", "relevance_pruning")


class MemoryCompactor:
    """
    Four-trigger eviction policy over a memory store.

    Args:
        config: Compaction tunables. Defaults to ``CompactionConfig()``.
        rng: Random source for the duplication sample. Inject a seeded
            ``random.Random`` for reproducible runs.
        tracer: Optional OpenTelemetry tracer; looked up when omitted.
        **overrides: Individual ``CompactionConfig`` fields, e.g.
            ``max_memories=5``, applied on top of ``config``.
    """

    def __init__(
        self,
        config: Optional[CompactionConfig] = None,
        rng: Optional[random.Random] = None,
        tracer: Optional[object] = None,
        **overrides: Any,
    ):
        base = config or CompactionConfig()
        if overrides:
            base = CompactionConfig(**{**base.model_dump(), **overrides})
        self.config = base
        self._rng = rng or random.Random()
        self._tracer = tracer if tracer is not None else get_tracer(__name__)
        # Scope state left by the last relevance prune, keyed by owner
        self._pruned_scopes: Dict[Optional[str], Tuple[Any, ...]] = {}

    @property
    def max_memories(self) -> int:
        return self.config.max_memories

    @property
    def max_age_days(self) -> float:
        return self.config.max_age_days

    @property
    def similarity_threshold(self) -> float:
        return self.config.similarity_threshold

    @property
    def low_access_threshold(self) -> float:
        return self.config.low_access_threshold

    # =========================================================================
    # ENTRY POINTS
    # =========================================================================

    def compact_if_needed(
        self,
        store: BaseMemoryStore,
        embedding_engine: BaseEmbeddingEngine,
        owner: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Check every trigger in order and run the actions that fire.

        Returns:
            Reports keyed by ``size_compaction``, ``age_compaction``,
            ``deduplication`` and ``relevance_pruning`` (only those that ran)
            plus ``total_compacted``.
        """
        with create_span(self._tracer, "memory.compaction_check", owner=owner):
            results: Dict[str, Any] = {}

            if self.size_compaction_needed(store, owner):
                results["size_compaction"] = self.perform_size_compaction(store, owner)

            if self.age_compaction_needed(store, owner):
                results["age_compaction"] = self.perform_age_compaction(store, owner)

            if self.duplication_compaction_needed(store, embedding_engine, owner):
                results["deduplication"] = self.perform_deduplication(store, embedding_engine, owner)

            if self.relevance_compaction_needed(store, owner):
                results["relevance_pruning"] = self.perform_relevance_pruning(store, owner)

            return self._finish(results, owner)

    def force_compact(
        self,
        store: BaseMemoryStore,
        embedding_engine: BaseEmbeddingEngine,
        owner: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Run all four actions unconditionally, ignoring the trigger checks."""
        with create_span(self._tracer, "memory.force_compaction", owner=owner):
            results = {
                "size_compaction": self.perform_size_compaction(store, owner),
                "age_compaction": self.perform_age_compaction(store, owner),
                "deduplication": self.perform_deduplication(store, embedding_engine, owner),
                "relevance_pruning": self.perform_relevance_pruning(store, owner),
            }
            return self._finish(results, owner)

    def _finish(self, results: Dict[str, Any], owner: Optional[str]) -> Dict[str, Any]:
        total = sum(r.get("removed_count", 0) for r in results.values())
        results["total_compacted"] = total
        if total:
            phases = ", ".join(f"{k}={results[k]['removed_count']}" for k in REPORT_KEYS if k in results)
            log_display(logger, logging.INFO, f"Compacted {total} memories (owner={owner!r}): {phases}")
        return results

    # =========================================================================
    # TRIGGER CHECKS
    # =========================================================================

    def size_compaction_needed(self, store: BaseMemoryStore, owner: Optional[str] = None) -> bool:
        return store.count(owner) > self.max_memories

    def age_compaction_needed(self, store: BaseMemoryStore, owner: Optional[str] = None) -> bool:
        now = utc_now()
        return any(m.age_in_days(now) > self.max_age_days for m in store.list(owner))

    def duplication_compaction_needed(
        self,
        store: BaseMemoryStore,
        embedding_engine: BaseEmbeddingEngine,
        owner: Optional[str] = None,
    ) -> bool:
        """
        Cheap sampled duplicate check.

        Samples the newest records, compares every pair of a random
        subsample and fires when the share of compared pairs above the
        similarity threshold exceeds ``dedup_ratio``.
        """
        recent = store.list(owner, limit=self.config.dedup_sample_limit)
        if len(recent) < self.config.dedup_min_sample:
            return False

        sample_size = min(max(len(recent) // 4, self.config.dedup_min_sample), len(recent))
        sample = self._rng.sample(recent, sample_size)

        compared = 0
        duplicates = 0
        for i, first in enumerate(sample):
            for second in sample[i + 1 :]:
                if first.embedding is None or second.embedding is None:
                    continue
                compared += 1
                if embedding_engine.cosine_similarity(first.embedding, second.embedding) > self.similarity_threshold:
                    duplicates += 1

        if compared == 0:
            return False
        return duplicates / compared > self.config.dedup_ratio

    def relevance_compaction_needed(self, store: BaseMemoryStore, owner: Optional[str] = None) -> bool:
        """
        Fires when a large share of the newest records is rarely accessed.

        A scope already pruned and not written to since is skipped: the
        surviving population would otherwise fire the same gate on every call.
        """
        pruned = self._pruned_scopes.get(owner)
        if pruned is not None and pruned == self._scope_fingerprint(store.list(owner)):
            return False

        memories = store.list(owner, limit=RELEVANCE_CHECK_LIMIT)
        if len(memories) < self.config.relevance_min_records:
            return False

        total_access = sum(m.access_count for m in memories)
        if total_access == 0:
            return False

        low_access = sum(1 for m in memories if m.access_count / total_access < self.low_access_threshold)
        return low_access / len(memories) > self.config.relevance_low_access_ratio

    # =========================================================================
    # ACTIONS
    # =========================================================================

    def perform_size_compaction(self, store: BaseMemoryStore, owner: Optional[str] = None) -> Dict[str, Any]:
        """Delete the oldest records until the scope is at the size target."""
        with create_span(self._tracer, "memory.size_compaction", owner=owner):
            current_count = store.count(owner)
            target_count = math.floor(self.max_memories * self.config.size_target_ratio)
            remove_count = current_count - target_count

            if remove_count <= 0:
                return {
                    "trigger": "size_limit_exceeded",
                    "removed_count": 0,
                    "before_count": current_count,
                    "after_count": current_count,
                    "note": "already_under_target",
                }

            oldest = self._oldest_first(store.list(owner))[:remove_count]
            removed_count = self._delete_all(store, oldest)
            return {
                "trigger": "size_limit_exceeded",
                "removed_count": removed_count,
                "before_count": current_count,
                "after_count": current_count - removed_count,
            }

    def perform_age_compaction(self, store: BaseMemoryStore, owner: Optional[str] = None) -> Dict[str, Any]:
        """Delete every record created before the age cutoff."""
        with create_span(self._tracer, "memory.age_compaction", owner=owner):
            now = utc_now()
            cutoff: datetime = now - timedelta(days=self.max_age_days)
            memories = store.list(owner)
            expired = [m for m in memories if m.created_at < cutoff]

            removed_count = self._delete_all(store, expired)
            return {
                "trigger": "age_limit_exceeded",
                "removed_count": removed_count,
                "before_count": len(memories),
                "after_count": len(memories) - removed_count,
                "cutoff_age_days": self.max_age_days,
                "oldest_removed_age": max((m.age_in_days(now) for m in expired), default=None),
            }

    def perform_deduplication(
        self,
        store: BaseMemoryStore,
        embedding_engine: BaseEmbeddingEngine,
        owner: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Remove near-duplicates among all records with embeddings.

        For each pair above the similarity threshold the record with more
        accesses survives; on a tie the newer one does. A record already
        marked as a loser is not matched again.
        """
        with create_span(self._tracer, "memory.deduplication", owner=owner):
            memories = store.list(owner)
            candidates = [m for m in memories if m.embedding is not None]

            losers: List[MemoryRecord] = []
            processed: Set[str] = set()

            for i, first in enumerate(candidates):
                if first.id in processed:
                    continue
                for second in candidates[i + 1 :]:
                    if second.id in processed:
                        continue
                    similarity = embedding_engine.cosine_similarity(first.embedding, second.embedding)
                    if similarity <= self.similarity_threshold:
                        continue

                    _, loser = self._pick_survivor(first, second)
                    losers.append(loser)
                    processed.add(loser.id)
                    if loser is first:
                        break
                processed.add(first.id)

            removed_count = self._delete_all(store, losers)
            return {
                "trigger": "duplicate_similarity_detected",
                "removed_count": removed_count,
                "before_count": len(memories),
                "after_count": len(memories) - removed_count,
                "similarity_threshold": self.similarity_threshold,
                "total_checked": len(candidates),
            }

    def perform_relevance_pruning(self, store: BaseMemoryStore, owner: Optional[str] = None) -> Dict[str, Any]:
        """Delete the least relevant fraction of the scope."""
        with create_span(self._tracer, "memory.relevance_pruning", owner=owner):
            memories = store.list(owner)
            total_access = sum(m.access_count for m in memories)
            if total_access == 0:
                return {
                    "trigger": "no_access_data",
                    "removed_count": 0,
                    "before_count": len(memories),
                    "after_count": len(memories),
                }

            now = utc_now()
            scored = sorted(
                ((self.relevance_score(m, total_access, now), m) for m in memories),
                key=lambda item: item[0],
            )
            remove_count = math.floor(len(memories) * self.config.relevance_prune_fraction)
            to_remove = scored[:remove_count]

            removed_count = self._delete_all(store, [m for _, m in to_remove])
            self._pruned_scopes[owner] = self._scope_fingerprint(store.list(owner))
            return {
                "trigger": "low_relevance_detected",
                "removed_count": removed_count,
                "before_count": len(memories),
                "after_count": len(memories) - removed_count,
                "lowest_score": to_remove[0][0] if to_remove else None,
                "highest_score": scored[-1][0] if scored else None,
            }

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def relevance_score(record: MemoryRecord, total_access: int, now: Optional[datetime] = None) -> float:
        """Blend of access share and recency, higher is more relevant."""
        access_share = record.access_count / total_access if total_access else 0.0
        recency = 1.0 / (record.age_in_days(now) + 1.0)
        return ACCESS_WEIGHT * access_share + RECENCY_WEIGHT * recency

    @staticmethod
    def _scope_fingerprint(memories: List[MemoryRecord]) -> Tuple[Any, ...]:
        # Writes change at least one of these; retrieves do not
        return (
            len(memories),
            max((m.created_at for m in memories), default=None),
            max((m.updated_at for m in memories), default=None),
        )

    @staticmethod
    def _pick_survivor(first: MemoryRecord, second: MemoryRecord):
        """Return ``(keeper, loser)`` for a duplicate pair."""
        if first.access_count != second.access_count:
            return (first, second) if first.access_count > second.access_count else (second, first)
        return (first, second) if first.created_at > second.created_at else (second, first)

    @staticmethod
    def _oldest_first(records: List[MemoryRecord]) -> List[MemoryRecord]:
        # list() is newest first, so reversing keeps insertion order among equal timestamps
        return sorted(reversed(records), key=lambda m: m.created_at)

    @staticmethod
    def _delete_all(store: BaseMemoryStore, records: List[MemoryRecord]) -> int:
        removed = 0
        for record in records:
            try:
                if store.delete(record.id):
                    removed += 1
            except Exception as e:
                logger.warning(f"Failed to delete memory {record.id} during compaction: {e}")
        return removed
