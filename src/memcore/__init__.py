# src/memcore/__init__.py
"""
memcore - Semantic memory for agents.

Stores short text memories with vector embeddings, searches them by meaning,
tag or substring, and keeps the store bounded by compacting on size, age,
duplication and relevance.
"""

from importlib.metadata import PackageNotFoundError, version

from .config import CompactionConfig, EmbeddingConfig, EmbeddingProvider, MemoryConfig, load_memory_config
from .embedding import (
    BaseEmbeddingEngine,
    HashEmbeddingEngine,
    SentenceTransformerEngine,
    cosine_similarity,
    create_embedding_engine,
    normalize_vector,
)
from .exceptions import (
    ConfigError,
    EmbeddingError,
    EngineUnavailableError,
    MalformedRecordError,
    MemCoreError,
    StorageError,
    StoreWriteError,
    ToolError,
)
from .logging_config import configure_logging
from .memory import MemoryCompactor, MemoryManager, MemoryRecord
from .observability import BufferedTelemetrySink, LoggingTelemetrySink, NullTelemetrySink, TelemetrySink
from .storage import BaseMemoryStore, InMemoryMemoryStore
from .tools import MemoryToolset

try:
    __version__ = version("memcore")
except PackageNotFoundError:
    __version__ = "0.0.0"


__all__ = [
    # ==========================================================================
    # Memory
    # ==========================================================================
    "MemoryManager",
    "MemoryRecord",
    "MemoryCompactor",

    # ==========================================================================
    # Embedding
    # ==========================================================================
    "BaseEmbeddingEngine",
    "SentenceTransformerEngine",
    "HashEmbeddingEngine",
    "create_embedding_engine",
    "normalize_vector",
    "cosine_similarity",

    # ==========================================================================
    # Storage
    # ==========================================================================
    "BaseMemoryStore",
    "InMemoryMemoryStore",

    # ==========================================================================
    # Tools & Telemetry
    # ==========================================================================
    "MemoryToolset",
    "TelemetrySink",
    "NullTelemetrySink",
    "LoggingTelemetrySink",
    "BufferedTelemetrySink",

    # ==========================================================================
    # Configuration & Errors
    # ==========================================================================
    "MemoryConfig",
    "EmbeddingConfig",
    "EmbeddingProvider",
    "CompactionConfig",
    "load_memory_config",
    "configure_logging",
    "MemCoreError",
    "ConfigError",
    "EmbeddingError",
    "EngineUnavailableError",
    "StorageError",
    "StoreWriteError",
    "MalformedRecordError",
    "ToolError",

    "__version__",
]
