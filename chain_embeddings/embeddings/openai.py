"""
OpenAI direct embedding provider implementation.

Uses the official OpenAI Python SDK. OpenAI embedding models have a single
adaptation, so ``input_type`` only partitions the cache.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from openai import AsyncOpenAI

from .base import CachingEmbeddingProvider, InputType

logger = logging.getLogger(__name__)


class OpenAIEmbeddings(CachingEmbeddingProvider):
    """
    OpenAI direct embedding provider with caching.

    Supports models:
    - text-embedding-3-small (1536 dimensions)
    - text-embedding-3-large (3072 dimensions)
    - text-embedding-ada-002 (1536 dimensions)
    """

    MODEL_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        dimensions: int | None = None,
        cache_size: int = 1000,
        base_url: str | None = None,
    ):
        """
        Initialize OpenAI embedding provider.

        Args:
            api_key: OpenAI API key
            model: Model name (default: text-embedding-3-small)
            dimensions: Vector dimensions (auto-detected if None)
            cache_size: Max cached embeddings (0 to disable)
            base_url: Optional base URL for custom endpoints
        """
        super().__init__(cache_size=cache_size)
        self.api_key = api_key
        self.model = model
        self.base_url = base_url

        if dimensions is None:
            if model in self.MODEL_DIMENSIONS:
                self._dimensions = self.MODEL_DIMENSIONS[model]
            else:
                logger.warning(
                    f"Unknown model '{model}', defaulting to 1536 dimensions. "
                    f"Pass explicit dimensions parameter if different."
                )
                self._dimensions = 1536
        else:
            self._dimensions = dimensions

        self._client: AsyncOpenAI | None = None

        logger.info(
            f"OpenAI embeddings initialized: model={model}, "
            f"dimensions={self._dimensions}, cache_size={cache_size}"
        )

    @classmethod
    def from_env(cls) -> OpenAIEmbeddings:
        """
        Create provider from environment variables.

        Required env vars:
            OPENAI_API_KEY: OpenAI API key

        Optional env vars:
            OPENAI_EMBEDDING_MODEL: Model name (default: text-embedding-3-small)
            OPENAI_EMBEDDING_DIMENSIONS: Vector dimensions (auto-detected)
            OPENAI_EMBEDDING_CACHE_SIZE: Cache size (default: 1000)
            OPENAI_BASE_URL: Custom base URL (optional)
        """
        api_key = os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("OPENAI_API_KEY environment variable required")

        dimensions_str = os.environ.get("OPENAI_EMBEDDING_DIMENSIONS")
        return cls(
            api_key=api_key,
            model=os.environ.get("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small"),
            dimensions=int(dimensions_str) if dimensions_str else None,
            cache_size=int(os.environ.get("OPENAI_EMBEDDING_CACHE_SIZE", "1000")),
            base_url=os.environ.get("OPENAI_BASE_URL"),
        )

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def model_name(self) -> str:
        return self.model

    def _ensure_client(self) -> AsyncOpenAI:
        """Lazy initialize the OpenAI client."""
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url, max_retries=0)
        return self._client

    async def _embed_uncached(
        self, texts: list[str], input_type: InputType
    ) -> list[list[float]]:
        client = self._ensure_client()
        kwargs: dict[str, Any] = {"input": texts, "model": self.model}
        # ada-002 rejects the dimensions parameter
        if self.model != "text-embedding-ada-002":
            kwargs["dimensions"] = self._dimensions

        response = await client.embeddings.create(**kwargs)
        return [list(item.embedding) for item in response.data]

    async def close(self) -> None:
        """Close the OpenAI client."""
        if self._client:
            await self._client.close()
            self._client = None
