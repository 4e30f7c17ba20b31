# tests/embedding/test_factory.py
"""
Tests for embedding engine selection from configuration.
"""

from unittest.mock import MagicMock, patch

import pytest

from memcore.config import EmbeddingConfig, EmbeddingProvider
from memcore.embedding.factory import create_embedding_engine
from memcore.embedding.hashing import HashEmbeddingEngine
from memcore.embedding.sentence_transformer import SentenceTransformerEngine
from memcore.exceptions import EngineUnavailableError

MODULE = "memcore.embedding.sentence_transformer.SentenceTransformer"


class TestCreateEmbeddingEngine:
    """Tests for create_embedding_engine."""

    def test_hash_provider(self):
        engine = create_embedding_engine(EmbeddingConfig(provider=EmbeddingProvider.HASH))
        assert isinstance(engine, HashEmbeddingEngine)

    def test_hash_provider_from_string(self):
        engine = create_embedding_engine(EmbeddingConfig(provider="hash"))
        assert isinstance(engine, HashEmbeddingEngine)

    def test_sentence_transformer_provider(self):
        config = EmbeddingConfig(model_name="sentence-transformers/all-MiniLM-L12-v2", device="cpu", cache_size=8)
        with patch(MODULE, MagicMock()) as model_cls:
            engine = create_embedding_engine(config)

        assert isinstance(engine, SentenceTransformerEngine)
        assert engine.model_name() == "sentence-transformers/all-MiniLM-L12-v2"
        model_cls.assert_called_once_with("sentence-transformers/all-MiniLM-L12-v2", device="cpu")

    def test_falls_back_to_hash_when_model_unavailable(self, caplog):
        with patch(MODULE, None):
            engine = create_embedding_engine(EmbeddingConfig())

        assert isinstance(engine, HashEmbeddingEngine)
        assert "Falling back to hash embedding engine" in caplog.text

    def test_raises_without_fallback(self):
        with patch(MODULE, side_effect=OSError("offline")):
            with pytest.raises(EngineUnavailableError):
                create_embedding_engine(EmbeddingConfig(fallback_to_hash=False))
