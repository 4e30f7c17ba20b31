# src/memcore/embedding/cache.py
"""
In-memory LRU cache for embeddings.

Model-backed inference is the slowest step of every memory write and
semantic search. Agents repeat themselves, so the engine keeps a bounded
LRU map from preprocessed text to its vector.

Cache Key: SHA256(model_name + "\\x00" + text)
Cache Value: List[float] (the embedding vector)

Usage:
    cache = LRUCache(maxsize=1024)
    key = cache_key(model_name, text)
    embedding = cache.get(key)
    if embedding is None:
        embedding = model.encode(text)
        cache.set(key, embedding)
"""

from __future__ import annotations

import hashlib
import threading
from collections import OrderedDict
from typing import Any, Dict, List, Optional


def cache_key(model_name: str, text: str) -> str:
    """Build the cache key for a model/text pair."""
    return hashlib.sha256(f"{model_name}\x00{text}".encode("utf-8")).hexdigest()


class LRUCache:
    """Thread-safe LRU cache for in-memory embedding storage.

    Uses an OrderedDict for O(1) access and update. When the cache reaches
    capacity, the least recently used item is evicted.

    Attributes:
        maxsize: Maximum number of items to store. 0 disables the cache.
        hits: Total cache hits.
        misses: Total cache misses.
    """

    def __init__(self, maxsize: int = 1024) -> None:
        self.maxsize = maxsize
        self._cache: OrderedDict[str, List[float]] = OrderedDict()
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[List[float]]:
        """Get a copy of the cached vector, marking it most recently used."""
        with self._lock:
            if self.maxsize == 0 or key not in self._cache:
                self.misses += 1
                return None
            self._cache.move_to_end(key)
            self.hits += 1
            return list(self._cache[key])

    def set(self, key: str, value: List[float]) -> None:
        """Store a vector, evicting the oldest entry if necessary."""
        if self.maxsize == 0:
            return

        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
            elif len(self._cache) >= self.maxsize:
                self._cache.popitem(last=False)
            self._cache[key] = list(value)

    def clear(self) -> None:
        """Clear all items from cache and reset statistics."""
        with self._lock:
            self._cache.clear()
            self.hits = 0
            self.misses = 0

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._cache

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    @property
    def stats(self) -> Dict[str, Any]:
        """Size, capacity, hit/miss counts and hit rate."""
        with self._lock:
            total = self.hits + self.misses
            hit_rate = self.hits / total if total > 0 else 0.0
            return {
                "size": len(self._cache),
                "maxsize": self.maxsize,
                "hits": self.hits,
                "misses": self.misses,
                "hit_rate": round(hit_rate, 4),
            }
