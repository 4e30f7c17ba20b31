# src/memcore/embedding/__init__.py
"""
Embedding engines for the memcore library.

This package turns memory text into fixed-length unit vectors for similarity
search and duplicate detection. It ships a model-backed engine built on
sentence-transformers and a deterministic hash engine with no model
dependency.
"""

from .base import BaseEmbeddingEngine, cosine_similarity, normalize_vector
from .cache import LRUCache
from .factory import create_embedding_engine
from .hashing import HASH_EMBEDDING_DIMENSION, HashEmbeddingEngine
from .sentence_transformer import SentenceTransformerEngine

__all__ = [
    "BaseEmbeddingEngine",
    "SentenceTransformerEngine",
    "HashEmbeddingEngine",
    "HASH_EMBEDDING_DIMENSION",
    "LRUCache",
    "create_embedding_engine",
    "normalize_vector",
    "cosine_similarity",
]
