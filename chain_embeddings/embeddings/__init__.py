"""
Embedding provider abstraction and implementations.

Provides:
- Abstract EmbeddingProvider interface with document/query input types
- Voyage AI, OpenAI and Azure OpenAI implementations
- LRU cache for hot query embeddings
- Resilience utilities (retry, circuit breaker) and the ResilientEmbedder wrapper
"""

from .base import DOCUMENT, QUERY, CachingEmbeddingProvider, EmbeddingProvider, InputType
from .cache import EmbeddingCache
from .resilience import (
    CircuitBreaker,
    CircuitOpenError,
    ResilientEmbedder,
    RetryConfig,
    retry_with_backoff,
)


def create_embedding_provider(name: str) -> EmbeddingProvider:
    """Build a provider from its configured name, reading credentials from the environment."""
    if name == "voyage":
        from .voyage import VoyageEmbeddings

        return VoyageEmbeddings.from_env()
    if name == "openai":
        from .openai import OpenAIEmbeddings

        return OpenAIEmbeddings.from_env()
    if name == "azure_openai":
        from .azure_openai import AzureOpenAIEmbeddings

        return AzureOpenAIEmbeddings.from_env()
    raise ValueError(f"Unknown embedding provider: {name}")


__all__ = [
    "DOCUMENT",
    "QUERY",
    "InputType",
    "EmbeddingProvider",
    "CachingEmbeddingProvider",
    "EmbeddingCache",
    "CircuitBreaker",
    "CircuitOpenError",
    "ResilientEmbedder",
    "RetryConfig",
    "retry_with_backoff",
    "create_embedding_provider",
]
