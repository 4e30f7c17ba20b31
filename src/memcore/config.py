# src/memcore/config.py
"""
Memory subsystem configuration models.

This module defines Pydantic models for every tunable of the memory
subsystem. The models give type-safe loading, validation with sensible
defaults, and a single place to document each knob.

The configuration hierarchy:
    MemoryConfig (root)
    ├── EmbeddingConfig   - Embedding engine selection and preprocessing
    └── CompactionConfig  - Size/age/duplication/relevance eviction policy

Usage:
    >>> from memcore.config import MemoryConfig, load_memory_config
    >>> config = MemoryConfig()  # All defaults
    >>> config.compaction.max_memories
    1000

    >>> # Load from TOML
    >>> config = load_memory_config(config_path=Path("memcore.toml"))

    >>> # Load with overrides
    >>> config = load_memory_config(
    ...     config_dict={"memory": {"compaction": {"max_age_days": 30}}}
    ... )
"""

from __future__ import annotations

import logging
import os
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

logger = logging.getLogger(__name__)

ENV_PREFIX = "MEMCORE_MEMORY__"


# =============================================================================
# ENUMS
# =============================================================================


class EmbeddingProvider(str, Enum):
    """Embedding engine implementations that can be selected by config."""

    SENTENCE_TRANSFORMERS = "sentence-transformers"  # Model-backed
    HASH = "hash"  # Deterministic fallback, no model dependency


# =============================================================================
# EMBEDDING CONFIG
# =============================================================================


class EmbeddingConfig(BaseModel):
    """
    Configuration for the embedding engine.

    The model-backed engine is preferred; when it cannot load and
    ``fallback_to_hash`` is set, the deterministic hash engine is used instead.
    """

    provider: EmbeddingProvider = Field(
        default=EmbeddingProvider.SENTENCE_TRANSFORMERS,
        description="Embedding engine implementation",
    )
    model_name: str = Field(
        default="sentence-transformers/all-MiniLM-L6-v2",
        description="Sentence Transformer model name or local path",
    )
    device: Optional[str] = Field(
        default=None, description="Device for the model ('cpu', 'cuda', 'mps')"
    )
    max_text_length: int = Field(
        default=8192, ge=1, description="Characters kept after preprocessing"
    )
    cache_size: int = Field(
        default=1024, ge=0, description="LRU embedding cache entries (0 = disabled)"
    )
    fallback_to_hash: bool = Field(
        default=True, description="Use the hash engine when the model fails to load"
    )


# =============================================================================
# COMPACTION CONFIG
# =============================================================================


class CompactionConfig(BaseModel):
    """
    Configuration for the four compaction triggers.

    The duplication and relevance gates are tuning constants, not derived
    guarantees. A scope with sparse real duplicates that never trips the
    sampling gate is never deduplicated automatically.
    """

    max_memories: int = Field(default=1000, ge=1, description="Size trigger cap per scope")
    size_target_ratio: float = Field(
        default=0.8, gt=0.0, le=1.0, description="Fraction of the cap kept after size compaction"
    )
    max_age_days: float = Field(default=90, gt=0, description="Age trigger cutoff in days")
    similarity_threshold: float = Field(
        default=0.95, ge=-1.0, le=1.0, description="Cosine similarity marking duplicates"
    )
    low_access_threshold: float = Field(
        default=0.1, ge=0.0, le=1.0, description="Access share below which a record is 'low access'"
    )

    # Duplication detection gate
    dedup_sample_limit: int = Field(default=50, ge=1, description="Newest records sampled")
    dedup_min_sample: int = Field(default=10, ge=2, description="Skip detection below this many")
    dedup_ratio: float = Field(
        default=0.2, ge=0.0, le=1.0, description="Duplicate pair ratio that fires the trigger"
    )

    # Relevance pruning gate
    relevance_min_records: int = Field(default=50, ge=1, description="Minimum scope size")
    relevance_low_access_ratio: float = Field(
        default=0.3, ge=0.0, le=1.0, description="Low-access share that fires the trigger"
    )
    relevance_prune_fraction: float = Field(
        default=0.2, ge=0.0, le=1.0, description="Bottom fraction removed by relevance"
    )


# =============================================================================
# ROOT CONFIG
# =============================================================================


class MemoryConfig(BaseModel):
    """Root configuration for the memory subsystem."""

    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    compaction: CompactionConfig = Field(default_factory=CompactionConfig)
    auto_compact: bool = Field(
        default=True, description="Run compact_if_needed after every mutating call"
    )
    search_limit: int = Field(default=10, ge=1, description="Default semantic search limit")
    search_threshold: float = Field(
        default=0.5, ge=-1.0, le=1.0, description="Default semantic search threshold"
    )


# =============================================================================
# LOADING
# =============================================================================


def load_memory_config(
    config_path: Optional[Path] = None,
    config_dict: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> MemoryConfig:
    """
    Load memory configuration from TOML file or dictionary.

    Configuration is loaded and merged in order:
        1. Default values (from Pydantic models)
        2. TOML config file ``[memory]`` section (if provided)
        3. Config dictionary ``memory`` section (if provided)
        4. Environment variables (MEMCORE_MEMORY__*)
        5. Runtime overrides (if provided)

    Args:
        config_path: Optional path to TOML config file
        config_dict: Optional config dictionary
        overrides: Optional runtime overrides

    Returns:
        MemoryConfig instance. Invalid input falls back to defaults.
    """
    merged_config: Dict[str, Any] = {}

    if config_path is not None:
        try:
            with open(config_path, "rb") as f:
                full_config = tomllib.load(f)
            merged_config = _deep_merge(merged_config, full_config.get("memory", {}))
            logger.debug(f"Loaded memory config from {config_path}")
        except FileNotFoundError:
            logger.warning(f"Config file not found: {config_path}")
        except tomllib.TOMLDecodeError as e:
            logger.warning(f"Failed to parse memory config from {config_path}: {e}")

    if config_dict is not None:
        merged_config = _deep_merge(merged_config, config_dict.get("memory", {}))

    merged_config = _apply_env_overrides(merged_config)

    if overrides is not None:
        merged_config = _deep_merge(merged_config, overrides)

    try:
        return MemoryConfig(**merged_config)
    except Exception as e:
        logger.error(f"Invalid memory configuration: {e}")
        logger.warning("Using default configuration")
        return MemoryConfig()


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        elif isinstance(value, dict):
            result[key] = _deep_merge({}, value)
        else:
            result[key] = value
    return result


def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply environment variable overrides.

    Environment variables follow the pattern:
        MEMCORE_MEMORY__<KEY>=value
        MEMCORE_MEMORY__<SECTION>__<KEY>=value

    Examples:
        MEMCORE_MEMORY__AUTO_COMPACT=false
        MEMCORE_MEMORY__COMPACTION__MAX_MEMORIES=500
        MEMCORE_MEMORY__EMBEDDING__PROVIDER=hash
    """
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue

        path_parts = key[len(ENV_PREFIX):].lower().split("__")
        if not path_parts or not path_parts[0]:
            continue

        current = config
        for part in path_parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[path_parts[-1]] = _convert_env_value(value)

    return config


def _convert_env_value(value: str) -> Any:
    """Convert an environment variable string to bool, int, float, or string."""
    if value.lower() in ("true", "false"):
        return value.lower() == "true"

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    return value


__all__ = [
    "EmbeddingProvider",
    "EmbeddingConfig",
    "CompactionConfig",
    "MemoryConfig",
    "load_memory_config",
]
