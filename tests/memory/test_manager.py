# tests/memory/test_manager.py
"""
Tests for the MemoryManager facade.

Tests cover:
- Store / get / update / delete lifecycle
- Semantic, text and tag search
- find_similar scoping and exclusion
- Batch storage with a single embed_batch call
- Export / import round-trip and malformed entries
- Automatic compaction after writes
- Telemetry events and sink failure isolation
- Defaults, stats and health checks
"""

from unittest.mock import MagicMock, patch

import pytest

from memcore.config import CompactionConfig, EmbeddingConfig, EmbeddingProvider, MemoryConfig
from memcore.embedding.hashing import HashEmbeddingEngine
from memcore.exceptions import StoreWriteError
from memcore.memory.manager import MemoryManager
from memcore.memory.record import MemoryRecord
from memcore.observability.telemetry import NullTelemetrySink, TelemetrySink
from memcore.storage.in_memory import InMemoryMemoryStore

# =============================================================================
# LIFECYCLE
# =============================================================================


class TestStoreAndRetrieve:
    """Tests for single-record operations."""

    def test_store_memory_embeds_and_persists(self, manager, hash_engine):
        record = manager.store_memory("I like Python", owner="alice", tags=["pref"], metadata={"src": "chat"})

        assert record.owner == "alice"
        assert record.tags == {"pref"}
        assert record.metadata == {"src": "chat"}
        assert record.embedding == hash_engine.embed("I like Python")
        assert len(record.embedding) == hash_engine.embedding_dimension()
        assert manager.count_memories() == 1

    def test_get_memory_counts_access(self, manager):
        record = manager.store_memory("note")
        assert manager.get_memory(record.id).access_count == 1
        assert manager.get_memory(record.id).access_count == 2

    def test_get_unknown_memory(self, manager):
        assert manager.get_memory("missing") is None

    def test_returned_record_is_detached(self, manager):
        record = manager.store_memory("original")
        record.content = "mutated locally"
        assert manager.get_memory(record.id).content == "original"

    def test_failed_write_raises(self, hash_engine):
        store = MagicMock(spec=InMemoryMemoryStore)
        store.store.return_value = False
        manager = MemoryManager(store=store, embedding_engine=hash_engine)

        with pytest.raises(StoreWriteError) as exc_info:
            manager.store_memory("doomed")
        assert exc_info.value.record_id in str(exc_info.value)

    def test_update_memory(self, manager, hash_engine):
        record = manager.store_memory("old text", tags=["a"], metadata={"k": 1})

        assert manager.update_memory(record.id, "new text", tags=["b"], metadata={"j": 2}) is True

        updated = manager.get_memory(record.id)
        assert updated.content == "new text"
        assert updated.embedding == hash_engine.embed("new text")
        assert updated.tags == {"a", "b"}
        assert updated.metadata == {"k": 1, "j": 2}
        assert updated.updated_at >= record.updated_at

    def test_update_unknown_memory(self, manager):
        assert manager.update_memory("missing", "text") is False

    def test_delete_memory(self, manager):
        record = manager.store_memory("bye")
        assert manager.delete_memory(record.id) is True
        assert manager.delete_memory(record.id) is False
        assert manager.get_memory(record.id) is None

    def test_get_all_memories_paged(self, manager):
        for i in range(5):
            manager.store_memory(f"note {i}", owner="alice")
        manager.store_memory("other", owner="bob")

        page = manager.get_all_memories(owner="alice", limit=2, offset=1)
        assert [r.content for r in page] == ["note 3", "note 2"]

    def test_clear_memories_by_owner(self, manager):
        manager.store_memory("a1", owner="alice")
        manager.store_memory("b1", owner="bob")
        assert manager.clear_memories(owner="alice") == 1
        assert manager.count_memories() == 1
        assert manager.count_memories(owner="bob") == 1


# =============================================================================
# SEARCH
# =============================================================================


class TestSearch:
    """Tests for search operations."""

    def test_semantic_search_finds_exact_content(self, manager):
        manager.store_memory("Python programming tutorial", owner="alice")
        manager.store_memory("Weekend hiking trip", owner="alice")

        results = manager.search_memories("Python programming tutorial", owner="alice", threshold=0.9)
        assert [r.content for r in results] == ["Python programming tutorial"]

    def test_semantic_search_respects_owner(self, manager):
        manager.store_memory("shared words", owner="alice")
        manager.store_memory("shared words", owner="bob")

        results = manager.search_memories("shared words", owner="bob")
        assert len(results) == 1
        assert results[0].owner == "bob"

    def test_search_defaults_come_from_config(self, manager, telemetry):
        manager.search_memories("anything")
        event = telemetry.events("memory.search")[-1]
        assert event.attributes["limit"] == 10
        assert event.attributes["threshold"] == 0.5

    def test_falls_back_to_text_search(self, hash_engine):
        class TextOnlyStore(InMemoryMemoryStore):
            def supports_vector_search(self):
                return False

        engine = MagicMock(wraps=hash_engine)
        manager = MemoryManager(store=TextOnlyStore(), embedding_engine=engine)
        manager.store_memory("Remember the Python meetup")
        engine.embed.reset_mock()

        results = manager.search_memories("python")
        assert [r.content for r in results] == ["Remember the Python meetup"]
        engine.embed.assert_not_called()

    def test_search_text_and_tags(self, manager):
        manager.store_memory("Deploy checklist", tags=["ops", "release"])
        manager.store_memory("Lunch order", tags=["food"])

        assert [r.content for r in manager.search_text("deploy")] == ["Deploy checklist"]
        assert [r.content for r in manager.search_by_tags(["release"])] == ["Deploy checklist"]


class TestFindSimilar:
    """Tests for find_similar."""

    def test_excludes_source_and_stays_in_owner_scope(self, manager):
        source = manager.store_memory("python code testing", owner="alice")
        twin = manager.store_memory("python code testing", owner="alice")
        manager.store_memory("python code testing", owner="bob")

        results = manager.find_similar(source.id, threshold=0.9)
        assert [r.id for r in results] == [twin.id]

    def test_truncates_to_limit(self, manager):
        source = manager.store_memory("same words")
        for _ in range(4):
            manager.store_memory("same words")

        assert len(manager.find_similar(source.id, limit=2, threshold=0.9)) == 2

    def test_unknown_or_unembedded_record(self, manager, store):
        bare = MemoryRecord(content="no vector")
        store.store(bare)

        assert manager.find_similar("missing") == []
        assert manager.find_similar(bare.id) == []


# =============================================================================
# BATCH, EXPORT, IMPORT
# =============================================================================


class TestBatchOperations:
    """Tests for store_memories_batch."""

    def test_single_embed_batch_call(self, hash_engine):
        engine = MagicMock(wraps=hash_engine)
        manager = MemoryManager(store=InMemoryMemoryStore(), embedding_engine=engine)

        records = manager.store_memories_batch(["one", "two", "three"], owner="alice", tags=["batch"])

        engine.embed_batch.assert_called_once_with(["one", "two", "three"])
        assert [r.content for r in records] == ["one", "two", "three"]
        assert all(r.tags == {"batch"} and r.owner == "alice" for r in records)
        assert records[1].embedding == hash_engine.embed("two")
        assert manager.count_memories("alice") == 3

    def test_returns_only_stored_records(self, hash_engine):
        store = MagicMock(spec=InMemoryMemoryStore)
        store.store_batch.return_value = [True, False]
        store.list.return_value = []
        store.count.return_value = 1
        manager = MemoryManager(store=store, embedding_engine=hash_engine)

        records = manager.store_memories_batch(["kept", "lost"])
        assert [r.content for r in records] == ["kept"]

    def test_compacts_once(self, manager):
        with patch.object(manager, "compact_if_needed", wraps=manager.compact_if_needed) as spy:
            manager.store_memories_batch(["a", "b", "c"])
        spy.assert_called_once_with(None)


class TestExportImport:
    """Tests for export_memories / import_memories."""

    def test_round_trip_into_fresh_manager(self, manager, hash_engine):
        manager.store_memory("first", owner="alice", tags=["x", "y"])
        manager.store_memory("second", owner="bob", metadata={"n": 1})
        exported = manager.export_memories()

        fresh = MemoryManager(store=InMemoryMemoryStore(), embedding_engine=hash_engine)
        assert fresh.import_memories(exported) == 2

        originals = {d["id"]: d for d in exported}
        for record in fresh.get_all_memories():
            original = originals[record.id]
            assert record.content == original["content"]
            assert sorted(record.tags) == original["tags"]
            assert record.embedding == original["embedding"]
            assert record.owner == original["owner"]

    def test_export_scoped_by_owner(self, manager):
        manager.store_memory("a", owner="alice")
        manager.store_memory("b", owner="bob")
        assert [d["content"] for d in manager.export_memories(owner="bob")] == ["b"]

    def test_malformed_entries_are_skipped(self, manager, caplog):
        good = manager.store_memory("keep me").to_dict()
        manager.clear_memories()

        bad = dict(good, id="bad-1")
        del bad["created_at"]

        imported = manager.import_memories([good, bad, "garbage"])

        assert imported == 1
        assert manager.get_memory(good["id"]) is not None
        assert "Skipping malformed memory at index 1" in caplog.text

    def test_compacts_once_per_owner(self, manager):
        exported = [
            manager.store_memory("a1", owner="alice").to_dict(),
            manager.store_memory("a2", owner="alice").to_dict(),
            manager.store_memory("b1", owner="bob").to_dict(),
        ]
        manager.clear_memories()

        with patch.object(manager, "compact_if_needed", wraps=manager.compact_if_needed) as spy:
            manager.import_memories(exported)

        assert [call.args[0] for call in spy.call_args_list] == ["alice", "bob"]


# =============================================================================
# COMPACTION
# =============================================================================


class TestAutoCompaction:
    """Tests for compaction triggered by writes."""

    def test_size_cap_keeps_newest(self, small_manager):
        records = [small_manager.store_memory(f"distinct memory number {i}") for i in range(7)]

        remaining = {r.id for r in small_manager.get_all_memories()}
        assert small_manager.count_memories() == 5
        assert records[0].id not in remaining
        assert records[1].id not in remaining
        assert remaining == {r.id for r in records[2:]}

    def test_auto_compact_can_be_disabled(self, hash_engine):
        config = MemoryConfig(compaction=CompactionConfig(max_memories=2), auto_compact=False)
        manager = MemoryManager(store=InMemoryMemoryStore(), embedding_engine=hash_engine, config=config)
        for i in range(5):
            manager.store_memory(f"memory {i}")
        assert manager.count_memories() == 5

        report = manager.compact_if_needed()
        assert report["size_compaction"]["removed_count"] == 4
        assert manager.count_memories() == 1

    def test_force_compact_passthrough(self, manager):
        first = manager.store_memory("duplicate text here")
        manager.get_memory(first.id)
        manager.store_memory("duplicate text here")

        report = manager.force_compact()
        assert report["deduplication"]["removed_count"] == 1
        assert [r.id for r in manager.get_all_memories()] == [first.id]


# =============================================================================
# TELEMETRY
# =============================================================================


class TestTelemetry:
    """Tests for telemetry events."""

    def test_search_event_attributes(self, manager, telemetry):
        manager.store_memory("python tips", owner="alice")
        manager.search_memories("python tips", owner="alice", limit=3, threshold=0.8)

        event = telemetry.events("memory.search")[-1]
        assert event.attributes == {
            "query": "python tips",
            "owner": "alice",
            "limit": 3,
            "threshold": 0.8,
            "result_count": 1,
        }

    def test_lifecycle_events(self, manager, telemetry):
        record = manager.store_memory("x")
        manager.update_memory(record.id, "y")
        manager.delete_memory(record.id)

        names = [e.name for e in telemetry.events()]
        for expected in ("memory.store", "memory.update", "memory.delete", "memory.compaction"):
            assert expected in names

    def test_failing_sink_never_breaks_operations(self, hash_engine, caplog):
        class ExplodingSink(TelemetrySink):
            def emit(self, name, attributes):
                raise RuntimeError("sink down")

        manager = MemoryManager(
            store=InMemoryMemoryStore(), embedding_engine=hash_engine, telemetry=ExplodingSink()
        )
        record = manager.store_memory("still works")
        assert manager.search_memories("still works")[0].id == record.id
        assert "sink down" in caplog.text


# =============================================================================
# DEFAULTS & DIAGNOSTICS
# =============================================================================


class TestDefaultsAndDiagnostics:
    """Tests for default wiring, stats and health."""

    def test_hash_provider_from_config(self):
        config = MemoryConfig(embedding=EmbeddingConfig(provider=EmbeddingProvider.HASH))
        manager = MemoryManager(config=config)
        assert isinstance(manager.embedding_engine, HashEmbeddingEngine)
        assert isinstance(manager.store, InMemoryMemoryStore)
        assert isinstance(manager.telemetry, NullTelemetrySink)

    def test_falls_back_to_hash_when_model_unavailable(self):
        with patch("memcore.embedding.sentence_transformer.SentenceTransformer", None):
            manager = MemoryManager()
        assert isinstance(manager.embedding_engine, HashEmbeddingEngine)

    def test_stats(self, manager):
        manager.store_memory("a", owner="alice")
        stats = manager.stats()
        assert stats["total_memories"] == 1
        assert stats["store"]["unique_owners"] == 1
        assert stats["embedding_engine"]["model_name"] == "simple-hash"

    def test_healthy(self, manager):
        assert manager.healthy() is True

    def test_unhealthy_store(self, hash_engine):
        store = MagicMock(spec=InMemoryMemoryStore)
        store.count.side_effect = RuntimeError("connection lost")
        manager = MemoryManager(store=store, embedding_engine=hash_engine)
        assert manager.healthy() is False

    def test_unready_engine(self, store):
        engine = MagicMock(spec=HashEmbeddingEngine)
        engine.ready.return_value = False
        engine.model_name.return_value = "broken"
        manager = MemoryManager(store=store, embedding_engine=engine)
        assert manager.healthy() is False
