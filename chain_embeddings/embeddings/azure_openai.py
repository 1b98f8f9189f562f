"""
Azure OpenAI embedding provider implementation.

For workspaces whose data must stay inside an Azure tenant. Like the OpenAI
provider, ``input_type`` only partitions the cache.
"""

from __future__ import annotations

import logging
import os

from azure.ai.inference.aio import EmbeddingsClient
from azure.core.credentials import AzureKeyCredential
from azure.identity.aio import DefaultAzureCredential

from .base import CachingEmbeddingProvider, InputType

logger = logging.getLogger(__name__)


class AzureOpenAIEmbeddings(CachingEmbeddingProvider):
    """
    Azure OpenAI embedding provider with caching.

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
        endpoint: str,
        model: str = "text-embedding-3-small",
        deployment: str | None = None,
        api_key: str | None = None,
        use_default_credential: bool = True,
        dimensions: int | None = None,
        cache_size: int = 1000,
    ):
        """
        Initialize Azure OpenAI embedding provider.

        Args:
            endpoint: Azure OpenAI endpoint URL
            model: Model name (default: text-embedding-3-small)
            deployment: Deployment name (defaults to model name if None)
            api_key: API key for authentication (optional if using RBAC)
            use_default_credential: Use Azure RBAC auth (default: True)
            dimensions: Vector dimensions (auto-detected if None)
            cache_size: Max cached embeddings (0 to disable)
        """
        super().__init__(cache_size=cache_size)
        self.endpoint = endpoint
        self.model = model
        self.deployment = deployment or model
        self.api_key = api_key
        self.use_default_credential = use_default_credential
        self._credential: DefaultAzureCredential | None = None
        self._dimensions = dimensions or self.MODEL_DIMENSIONS.get(model, 1536)
        self._client: EmbeddingsClient | None = None

        auth_method = "RBAC" if use_default_credential else "API Key"
        logger.info(
            f"Azure OpenAI embeddings initialized: model={model}, deployment={self.deployment}, "
            f"dimensions={self._dimensions}, auth={auth_method}, cache_size={cache_size}"
        )

    @classmethod
    def from_env(cls) -> AzureOpenAIEmbeddings:
        """
        Create provider from environment variables.

        Required env vars:
            AZURE_OPENAI_ENDPOINT: Azure OpenAI endpoint URL

        Optional env vars:
            AZURE_OPENAI_EMBEDDING_MODEL: Model name (default: text-embedding-3-small)
            AZURE_OPENAI_EMBEDDING_DEPLOYMENT: Deployment name (defaults to model name)
            AZURE_OPENAI_API_KEY: API key (optional if using RBAC)
            AZURE_OPENAI_USE_RBAC: Use DefaultAzureCredential (default: true)
            AZURE_OPENAI_EMBEDDING_DIMENSIONS: Vector dimensions (auto-detected)
            AZURE_OPENAI_EMBEDDING_CACHE_SIZE: Cache size (default: 1000)
        """
        endpoint = os.environ.get("AZURE_OPENAI_ENDPOINT")
        if not endpoint:
            raise ValueError("AZURE_OPENAI_ENDPOINT environment variable required")

        api_key = os.environ.get("AZURE_OPENAI_API_KEY")
        use_rbac = os.environ.get("AZURE_OPENAI_USE_RBAC", "true").lower() in ("true", "1", "yes")
        if not use_rbac and not api_key:
            raise ValueError("AZURE_OPENAI_API_KEY required when AZURE_OPENAI_USE_RBAC=false")

        dimensions_str = os.environ.get("AZURE_OPENAI_EMBEDDING_DIMENSIONS")
        return cls(
            endpoint=endpoint,
            model=os.environ.get("AZURE_OPENAI_EMBEDDING_MODEL", "text-embedding-3-small"),
            deployment=os.environ.get("AZURE_OPENAI_EMBEDDING_DEPLOYMENT"),
            api_key=api_key,
            use_default_credential=use_rbac,
            dimensions=int(dimensions_str) if dimensions_str else None,
            cache_size=int(os.environ.get("AZURE_OPENAI_EMBEDDING_CACHE_SIZE", "1000")),
        )

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def model_name(self) -> str:
        return self.model

    def _ensure_client(self) -> EmbeddingsClient:
        """Lazy initialize the Azure client with appropriate authentication."""
        if self._client is None:
            if self.use_default_credential:
                self._credential = DefaultAzureCredential()
                self._client = EmbeddingsClient(
                    endpoint=self.endpoint,
                    credential=self._credential,
                    credential_scopes=["https://cognitiveservices.azure.com/.default"],
                    model=self.deployment,
                )
                logger.info(
                    f"Using DefaultAzureCredential for Azure OpenAI (deployment={self.deployment})"
                )
            else:
                if not self.api_key:
                    raise ValueError("API key required when not using default credential")
                self._client = EmbeddingsClient(
                    endpoint=self.endpoint,
                    credential=AzureKeyCredential(self.api_key),
                    model=self.deployment,
                )
        return self._client

    async def _embed_uncached(
        self, texts: list[str], input_type: InputType
    ) -> list[list[float]]:
        client = self._ensure_client()
        response = await client.embed(input=texts, dimensions=self._dimensions)
        return [[float(x) for x in item.embedding] for item in response.data]

    async def close(self) -> None:
        """Close the Azure client and credential."""
        if self._client:
            await self._client.close()
            self._client = None

        if self._credential:
            await self._credential.close()
            self._credential = None
