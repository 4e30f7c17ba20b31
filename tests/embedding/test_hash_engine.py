# tests/embedding/test_hash_engine.py
"""
Tests for the deterministic hash embedding engine.
"""

import math

import pytest

from memcore.embedding.base import cosine_similarity
from memcore.embedding.hashing import HASH_EMBEDDING_DIMENSION, HashEmbeddingEngine


@pytest.fixture
def engine() -> HashEmbeddingEngine:
    return HashEmbeddingEngine()


class TestHashEmbeddingEngine:
    """Tests for the hash engine contract."""

    def test_dimension(self, engine):
        assert engine.embedding_dimension() == HASH_EMBEDDING_DIMENSION == 128
        assert len(engine.embed("hello world")) == 128

    def test_deterministic_across_instances(self, engine):
        assert engine.embed("same text") == HashEmbeddingEngine().embed("same text")

    def test_unit_length(self, engine):
        vector = engine.embed("Memory storage for agents")
        assert math.sqrt(sum(x * x for x in vector)) == pytest.approx(1.0)

    def test_case_and_punctuation_insensitive(self, engine):
        assert engine.embed("Hello, World!") == engine.embed("hello world")

    def test_empty_text_is_zero_vector(self, engine):
        assert engine.embed("") == [0.0] * 128
        assert engine.embed("   ...   ") == [0.0] * 128

    def test_shared_cluster_raises_similarity(self, engine):
        related = cosine_similarity(engine.embed("python code"), engine.embed("java software"))
        unrelated = cosine_similarity(engine.embed("python code"), engine.embed("sunny beach holiday"))
        assert related > unrelated

    def test_embed_batch_preserves_order(self, engine):
        texts = ["one", "two", "three"]
        assert engine.embed_batch(texts) == [engine.embed(t) for t in texts]
        assert engine.embed_batch([]) == []

    def test_metadata(self, engine):
        assert engine.ready() is True
        assert engine.model_name() == "simple-hash"
        stats = engine.stats()
        assert stats["backend"] == "hash"
        assert stats["embedding_dimension"] == 128
        assert stats["ready"] is True
