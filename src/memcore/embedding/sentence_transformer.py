# src/memcore/embedding/sentence_transformer.py
"""
Sentence Transformer embedding engine for memcore.

Uses the sentence-transformers library to generate embeddings locally, so
memory content never leaves the process.
"""

import logging
import re
import threading
from typing import Any, Dict, List, Optional

try:
    from sentence_transformers import SentenceTransformer
except ImportError:
    SentenceTransformer = None  # type: ignore

from ..exceptions import EmbeddingError, EngineUnavailableError
from .base import BaseEmbeddingEngine, normalize_vector
from .cache import LRUCache, cache_key

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"
SUPPORTED_MODELS = (
    "sentence-transformers/all-MiniLM-L6-v2",
    "sentence-transformers/all-MiniLM-L12-v2",
    "sentence-transformers/multi-qa-MiniLM-L6-cos-v1",
    "sentence-transformers/paraphrase-MiniLM-L6-v2",
)
MAX_TEXT_LENGTH = 8192
_PROBE_TEXT = "test"
_WHITESPACE_RE = re.compile(r"\s+")


class SentenceTransformerEngine(BaseEmbeddingEngine):
    """
    Generates unit-length text embeddings using a local Sentence Transformer model.

    The model is loaded in the constructor. If loading fails the engine is
    left not ready and :class:`EngineUnavailableError` is raised; any later
    ``embed`` call on such an instance raises the same error rather than
    returning a degraded vector.
    """

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL,
        device: Optional[str] = None,
        max_text_length: int = MAX_TEXT_LENGTH,
        cache_size: int = 1024,
    ):
        """
        Args:
            model_name: HuggingFace Hub name or local path of the model.
            device: Device to run the model on ('cpu', 'cuda', 'mps'); library default if None.
            max_text_length: Characters kept after whitespace normalization.
            cache_size: LRU embedding cache entries (0 disables caching).

        Raises:
            EngineUnavailableError: If the library is missing or the model fails to load.
        """
        self._model_name = model_name
        self._device = device
        self._max_text_length = max_text_length
        self._model: Any = None
        self._ready = False
        self._embedding_dim: Optional[int] = None
        self._dim_lock = threading.Lock()
        self._cache = LRUCache(maxsize=cache_size)

        if not self.model_supported(model_name):
            logger.debug(f"Model '{model_name}' is not in the tested model list; loading anyway.")

        self._load_model()

    def _load_model(self) -> None:
        if SentenceTransformer is None:
            raise EngineUnavailableError(
                model_name=self._model_name,
                message="sentence-transformers is not installed (pip install memcore[local]).",
            )

        logger.info(f"Loading Sentence Transformer model '{self._model_name}' "
                    f"(Device: {self._device or 'default'})...")
        try:
            self._model = SentenceTransformer(self._model_name, device=self._device)
        except Exception as e:
            logger.error(f"Failed to load Sentence Transformer model '{self._model_name}': {e}", exc_info=True)
            self._model = None
            self._ready = False
            raise EngineUnavailableError(
                model_name=self._model_name, message=f"Failed to load model: {e}"
            ) from e

        self._ready = True
        logger.info(f"Sentence Transformer model '{self._model_name}' loaded.")

    def _ensure_ready(self) -> None:
        if not self._ready or self._model is None:
            raise EngineUnavailableError(
                model_name=self._model_name,
                message=f"Model '{self._model_name}' failed to load.",
            )

    def preprocess(self, text: str) -> str:
        """Trim, collapse whitespace runs, and truncate to the configured length."""
        cleaned = _WHITESPACE_RE.sub(" ", text.strip())
        return cleaned[: self._max_text_length]

    def _encode(self, texts: List[str]) -> List[List[float]]:
        """Run the model and normalize the output vectors."""
        try:
            embeddings = self._model.encode(texts, convert_to_numpy=True)
        except Exception as e:
            logger.error(f"Error during Sentence Transformer encoding: {e}", exc_info=True)
            raise EmbeddingError(model_name=self._model_name, message=f"Encoding failed: {e}") from e
        return [normalize_vector([float(val) for val in emb]) for emb in embeddings]

    def embed(self, text: str) -> List[float]:
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Encode all cache misses in a single model call, preserving input order."""
        self._ensure_ready()
        if not texts:
            return []

        cleaned = [self.preprocess(text) for text in texts]
        keys = [cache_key(self._model_name, text) for text in cleaned]
        results: List[Optional[List[float]]] = [self._cache.get(key) for key in keys]

        missing = [i for i, result in enumerate(results) if result is None]
        if missing:
            logger.debug(f"Encoding {len(missing)} of {len(texts)} texts (rest cached).")
            encoded = self._encode([cleaned[i] for i in missing])
            for i, embedding in zip(missing, encoded):
                self._cache.set(keys[i], embedding)
                results[i] = embedding

        return results  # type: ignore[return-value]

    def embedding_dimension(self) -> int:
        """Discovered by embedding a probe string once, then cached."""
        if self._embedding_dim is None:
            self._ensure_ready()
            with self._dim_lock:
                if self._embedding_dim is None:
                    self._embedding_dim = len(self._encode([_PROBE_TEXT])[0])
        return self._embedding_dim

    def model_name(self) -> str:
        return self._model_name

    def ready(self) -> bool:
        return self._ready

    def stats(self) -> Dict[str, Any]:
        stats = super().stats()
        stats.update(
            {
                "backend": "sentence-transformers",
                "device": self._device,
                "supported_models": list(SUPPORTED_MODELS),
                "cache": self._cache.stats,
            }
        )
        return stats

    @staticmethod
    def model_supported(model_name: str) -> bool:
        return model_name in SUPPORTED_MODELS

    @staticmethod
    def supported_models() -> List[str]:
        return list(SUPPORTED_MODELS)
