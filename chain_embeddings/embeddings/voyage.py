"""
Voyage AI embedding provider.

Voyage models are trained with separate document and query adaptations, so
``input_type`` is passed straight through to the API. This is the default
provider for chain embeddings.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import voyageai

from .base import CachingEmbeddingProvider, InputType

logger = logging.getLogger(__name__)


class VoyageEmbeddings(CachingEmbeddingProvider):
    """
    Voyage AI embedding provider with caching.

    Supports models:
    - voyage-3-large (1024 dimensions by default)
    - voyage-3 (1024 dimensions)
    - voyage-3-lite (512 dimensions)
    """

    MODEL_DIMENSIONS = {
        "voyage-3-large": 1024,
        "voyage-3": 1024,
        "voyage-3-lite": 512,
    }

    def __init__(
        self,
        api_key: str,
        model: str = "voyage-3-large",
        dimensions: int | None = None,
        cache_size: int = 1000,
    ):
        """
        Initialize Voyage AI embedding provider.

        Args:
            api_key: Voyage API key
            model: Model name (default: voyage-3-large)
            dimensions: Output dimensions (model default if None)
            cache_size: Max cached embeddings (0 to disable)
        """
        super().__init__(cache_size=cache_size)
        self.api_key = api_key
        self.model = model
        self._output_dimension = dimensions
        self._dimensions = dimensions or self.MODEL_DIMENSIONS.get(model, 1024)
        self._client: Any = None  # voyageai.AsyncClient

        logger.info(
            f"Voyage embeddings initialized: model={model}, "
            f"dimensions={self._dimensions}, cache_size={cache_size}"
        )

    @classmethod
    def from_env(cls) -> VoyageEmbeddings:
        """
        Create provider from environment variables.

        Required env vars:
            VOYAGE_API_KEY: Voyage API key

        Optional env vars:
            VOYAGE_EMBEDDING_MODEL: Model name (default: voyage-3-large)
            VOYAGE_EMBEDDING_DIMENSIONS: Output dimensions
            VOYAGE_EMBEDDING_CACHE_SIZE: Cache size (default: 1000)
        """
        api_key = os.environ.get("VOYAGE_API_KEY")
        if not api_key:
            raise ValueError("VOYAGE_API_KEY environment variable required")

        dimensions_str = os.environ.get("VOYAGE_EMBEDDING_DIMENSIONS")
        return cls(
            api_key=api_key,
            model=os.environ.get("VOYAGE_EMBEDDING_MODEL", "voyage-3-large"),
            dimensions=int(dimensions_str) if dimensions_str else None,
            cache_size=int(os.environ.get("VOYAGE_EMBEDDING_CACHE_SIZE", "1000")),
        )

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def model_name(self) -> str:
        return self.model

    def _ensure_client(self) -> Any:
        """Lazy initialize the Voyage client (retries are handled by ResilientEmbedder)."""
        if self._client is None:
            self._client = voyageai.AsyncClient(api_key=self.api_key, max_retries=0)
        return self._client

    async def _embed_uncached(
        self, texts: list[str], input_type: InputType
    ) -> list[list[float]]:
        client = self._ensure_client()
        kwargs: dict[str, Any] = {"model": self.model, "input_type": input_type}
        if self._output_dimension:
            kwargs["output_dimension"] = self._output_dimension

        result = await client.embed(texts, **kwargs)
        if not result.embeddings:
            raise ValueError("No embeddings returned")
        return [[float(x) for x in embedding] for embedding in result.embeddings]

    async def close(self) -> None:
        # AsyncClient holds no open connections between calls
        self._client = None
