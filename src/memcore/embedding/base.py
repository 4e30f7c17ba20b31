# src/memcore/embedding/base.py
"""
Abstract Base Class for embedding engines, plus the shared vector math.

Every engine turns text into a fixed-length unit vector. The two helpers
defined here, :func:`normalize_vector` and :func:`cosine_similarity`, are
engine-independent and are used by stores and the compactor as well.
"""

import abc
import math
from typing import Any, Dict, List, Sequence


def normalize_vector(vector: Sequence[float]) -> List[float]:
    """
    Scale a vector to unit L2 length.

    A vector whose magnitude is exactly zero is returned unchanged.
    """
    magnitude = math.sqrt(sum(x * x for x in vector))
    if magnitude == 0.0:
        return list(vector)
    return [x / magnitude for x in vector]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity between two vectors.

    Returns 0.0 when either vector is empty, the lengths differ, or either
    vector has zero magnitude.
    """
    if not a or not b or len(a) != len(b):
        return 0.0

    dot_product = math.fsum(x * y for x, y in zip(a, b))
    magnitude_a = math.sqrt(math.fsum(x * x for x in a))
    magnitude_b = math.sqrt(math.fsum(y * y for y in b))

    if magnitude_a == 0.0 or magnitude_b == 0.0:
        return 0.0

    return dot_product / (magnitude_a * magnitude_b)


class BaseEmbeddingEngine(abc.ABC):
    """
    Abstract Base Class for embedding engines.

    Implementations must be deterministic per instance for identical input,
    return vectors of length ``embedding_dimension()``, and preserve input
    order in ``embed_batch``.
    """

    normalize_vector = staticmethod(normalize_vector)
    cosine_similarity = staticmethod(cosine_similarity)

    @abc.abstractmethod
    def embed(self, text: str) -> List[float]:
        """
        Generate a unit-length embedding for a single text string.

        Raises:
            EngineUnavailableError: If the engine is not ready.
            EmbeddingError: If embedding generation fails.
        """

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for a batch of texts, in input order.

        The default calls :meth:`embed` repeatedly; model-backed engines
        override it to encode the batch in one call.
        """
        return [self.embed(text) for text in texts]

    @abc.abstractmethod
    def embedding_dimension(self) -> int:
        """Return the dimensionality of the embeddings produced by this engine."""

    @abc.abstractmethod
    def model_name(self) -> str:
        """Return the identifier of the underlying model."""

    @abc.abstractmethod
    def ready(self) -> bool:
        """Whether the engine can currently produce embeddings."""

    def stats(self) -> Dict[str, Any]:
        """Engine diagnostics."""
        return {
            "model_name": self.model_name(),
            "embedding_dimension": self.embedding_dimension() if self.ready() else None,
            "ready": self.ready(),
            "backend": type(self).__name__,
        }
