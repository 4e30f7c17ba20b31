# src/memcore/embedding/factory.py
"""
Embedding engine selection.

Engines are chosen once, when the memory manager is built, from the
``[memory.embedding]`` configuration section. Callers that already hold an
engine instance pass it to the manager directly instead.
"""

import logging
from typing import Optional

from ..config import EmbeddingConfig, EmbeddingProvider
from ..exceptions import EngineUnavailableError
from .base import BaseEmbeddingEngine
from .hashing import HashEmbeddingEngine
from .sentence_transformer import SentenceTransformerEngine

logger = logging.getLogger(__name__)


def create_embedding_engine(config: Optional[EmbeddingConfig] = None) -> BaseEmbeddingEngine:
    """
    Build the embedding engine described by ``config``.

    Raises:
        EngineUnavailableError: If the model-backed engine fails to load and
            ``fallback_to_hash`` is disabled.
    """
    config = config or EmbeddingConfig()

    if config.provider == EmbeddingProvider.HASH:
        logger.debug("Using deterministic hash embedding engine.")
        return HashEmbeddingEngine()

    try:
        return SentenceTransformerEngine(
            model_name=config.model_name,
            device=config.device,
            max_text_length=config.max_text_length,
            cache_size=config.cache_size,
        )
    except EngineUnavailableError as e:
        if not config.fallback_to_hash:
            raise
        logger.warning(f"{e}. Falling back to hash embedding engine.")
        return HashEmbeddingEngine()
