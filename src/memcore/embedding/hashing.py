# src/memcore/embedding/hashing.py
"""
Deterministic hash-based embedding engine.

Needs no model download, so it backs tests and any environment where the
model-backed engine cannot load. Word tokens are scattered across the vector
with a code-point hash, and a small table of keyword clusters adds weight to
fixed dimension ranges. Only the contract is guaranteed: same text gives the
same vector, the vector has 128 dimensions, and it is unit length unless the
text has no word tokens.
"""

import math
import re
from typing import Dict, List, Tuple

from .base import BaseEmbeddingEngine, normalize_vector

HASH_EMBEDDING_DIMENSION = 128
HASH_MODEL_NAME = "simple-hash"

_WORD_SPLIT_RE = re.compile(r"\W+")
_SPREAD = 8  # dimensions touched per word
_STRIDE = 13
_WORD_WEIGHT = 0.2
_CLUSTER_WEIGHT = 0.3

SEMANTIC_CLUSTERS: Tuple[Tuple[frozenset, range], ...] = (
    (frozenset({"programming", "code", "software", "development"}), range(0, 16)),
    (frozenset({"ruby", "python", "java", "javascript"}), range(16, 32)),
    (frozenset({"work", "project", "task", "job"}), range(32, 48)),
    (frozenset({"tutorial", "guide", "learning", "education"}), range(48, 64)),
    (frozenset({"memory", "storage", "data", "information"}), range(64, 80)),
    (frozenset({"personal", "private", "individual", "own"}), range(80, 96)),
    (frozenset({"important", "critical", "key", "essential"}), range(96, 112)),
    (frozenset({"test", "testing", "spec", "example"}), range(112, 128)),
)


def _tokenize(text: str) -> List[str]:
    return [word for word in _WORD_SPLIT_RE.split(text.lower()) if word]


class HashEmbeddingEngine(BaseEmbeddingEngine):
    """Fixed 128-dimension embeddings computed from word hashes. Always ready."""

    def embed(self, text: str) -> List[float]:
        words = _tokenize(text)
        embedding = [0.0] * HASH_EMBEDDING_DIMENSION
        scale = math.sqrt(len(words) + 1)

        for word in words:
            word_hash = sum(ord(ch) for ch in word)
            for i in range(_SPREAD):
                dim = (word_hash + i * _STRIDE) % HASH_EMBEDDING_DIMENSION
                embedding[dim] += math.sin(word_hash + i) * _WORD_WEIGHT / scale

        for cluster_words, dims in SEMANTIC_CLUSTERS:
            matches = sum(1 for word in words if word in cluster_words)
            if matches:
                for dim in dims:
                    embedding[dim] += matches * _CLUSTER_WEIGHT

        return normalize_vector(embedding)

    def embedding_dimension(self) -> int:
        return HASH_EMBEDDING_DIMENSION

    def model_name(self) -> str:
        return HASH_MODEL_NAME

    def ready(self) -> bool:
        return True

    def stats(self) -> Dict[str, object]:
        stats = super().stats()
        stats["backend"] = "hash"
        return stats
