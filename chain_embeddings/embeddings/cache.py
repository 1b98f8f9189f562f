"""
LRU cache for embedding vectors.

Search queries repeat ("standup notes", "deploy failed") far more often than
chain texts, so the cache mostly saves query-mode calls. Entries are keyed by
model, input type and text, so a document vector is never served for a query.
"""

from __future__ import annotations

import hashlib
from collections import OrderedDict
from typing import Any


class EmbeddingCache:
    """
    LRU cache for embedding vectors with size control.

    Features:
    - Least Recently Used eviction policy
    - Content-based keying (hash of model, input type and text)
    - Hit/miss counters for monitoring
    """

    def __init__(self, max_entries: int = 1000):
        """
        Initialize embedding cache.

        Args:
            max_entries: Maximum number of embeddings to cache
        """
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")

        self.max_entries = max_entries
        self._cache: OrderedDict[str, list[float]] = OrderedDict()
        self._hits = 0
        self._misses = 0

    def _make_key(self, text: str, model_name: str, input_type: str) -> str:
        content = f"{model_name}:{input_type}:{text}"
        return hashlib.sha256(content.encode("utf-8")).hexdigest()

    def get(self, text: str, model_name: str, input_type: str = "document") -> list[float] | None:
        """
        Get cached embedding if available.

        Returns:
            Cached embedding vector or None if not found
        """
        key = self._make_key(text, model_name, input_type)

        if key in self._cache:
            # Move to end (most recently used)
            self._cache.move_to_end(key)
            self._hits += 1
            return self._cache[key]

        self._misses += 1
        return None

    def put(
        self, text: str, model_name: str, embedding: list[float], input_type: str = "document"
    ) -> None:
        """
        Store embedding in cache, evicting the least recently used entry when full.
        """
        key = self._make_key(text, model_name, input_type)

        if key in self._cache:
            del self._cache[key]

        self._cache[key] = embedding

        if len(self._cache) > self.max_entries:
            self._cache.popitem(last=False)

    def clear(self) -> None:
        """Clear all cached embeddings and counters."""
        self._cache.clear()
        self._hits = 0
        self._misses = 0

    def size(self) -> int:
        return len(self._cache)

    def stats(self) -> dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dict with cache metrics
        """
        lookups = self._hits + self._misses
        return {
            "size": len(self._cache),
            "max_entries": self.max_entries,
            "utilization": len(self._cache) / self.max_entries,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / lookups if lookups else 0.0,
        }
