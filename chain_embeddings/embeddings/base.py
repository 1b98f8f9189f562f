"""
Abstract base class for embedding providers.

Allows pluggable embedding generation from different sources:
- Voyage AI (separate document and query adaptations)
- OpenAI Direct
- Azure OpenAI
- Custom implementations (tests use a deterministic mock)

Document vectors (stored on messages) and query vectors (search input) are
requested with different ``input_type`` values. Providers with a single
adaptation still keep the two apart in their caches; callers must never
assume the two kinds are interchangeable.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Literal

from .cache import EmbeddingCache

logger = logging.getLogger(__name__)

InputType = Literal["document", "query"]

DOCUMENT: InputType = "document"
QUERY: InputType = "query"


class EmbeddingProvider(ABC):
    """Abstract base for embedding generation."""

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Number of dimensions in the embedding vector."""
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Name/identifier of the embedding model."""
        pass

    @abstractmethod
    async def embed_text(self, text: str, input_type: InputType = DOCUMENT) -> list[float]:
        """
        Generate embedding for a single text.

        Args:
            text: Text to embed
            input_type: "document" for stored chains, "query" for search input

        Returns:
            Embedding vector as list of floats

        Raises:
            Exception: If embedding generation fails
        """
        pass

    @abstractmethod
    async def embed_batch(
        self, texts: list[str], input_type: InputType = DOCUMENT
    ) -> list[list[float]]:
        """
        Generate embeddings for multiple texts (batch operation).

        Args:
            texts: List of texts to embed
            input_type: "document" or "query"

        Returns:
            List of embedding vectors (same order as input texts)
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Cleanup resources (close connections, release memory)."""
        pass

    async def __aenter__(self) -> EmbeddingProvider:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Async context manager exit."""
        await self.close()


class CachingEmbeddingProvider(EmbeddingProvider):
    """Provider base that serves repeated texts from an LRU cache.

    Subclasses implement ``_embed_uncached`` with the actual API call; cache
    lookups and ordering of partial hits are handled here.
    """

    def __init__(self, cache_size: int = 1000):
        self._cache = EmbeddingCache(max_entries=cache_size) if cache_size > 0 else None

    @abstractmethod
    async def _embed_uncached(
        self, texts: list[str], input_type: InputType
    ) -> list[list[float]]:
        """Call the embedding API for texts that missed the cache."""
        pass

    async def embed_text(self, text: str, input_type: InputType = DOCUMENT) -> list[float]:
        vectors = await self.embed_batch([text], input_type)
        return vectors[0]

    async def embed_batch(
        self, texts: list[str], input_type: InputType = DOCUMENT
    ) -> list[list[float]]:
        if not texts:
            return []

        results: list[list[float] | None] = [None] * len(texts)
        misses: list[tuple[int, str]] = []

        for i, text in enumerate(texts):
            cached = self._cache.get(text, self.model_name, input_type) if self._cache else None
            if cached is not None:
                results[i] = cached
            else:
                misses.append((i, text))

        if misses:
            vectors = await self._embed_uncached([text for _, text in misses], input_type)
            if len(vectors) != len(misses):
                raise ValueError(
                    f"Embedding generation incomplete: requested {len(misses)}, "
                    f"received {len(vectors)}"
                )
            for (original_idx, text), vector in zip(misses, vectors, strict=True):
                results[original_idx] = vector
                if self._cache:
                    self._cache.put(text, self.model_name, vector, input_type)

            logger.debug(
                f"Generated {len(misses)} {input_type} embeddings, "
                f"{len(texts) - len(misses)} from cache"
            )

        return results  # type: ignore[return-value]

    def get_cache_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        if self._cache:
            return self._cache.stats()
        return {"cache_enabled": False}
