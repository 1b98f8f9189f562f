"""
Chain Embeddings

Message-chain contextualization, embedding and semantic search for team chat.

Provides:
- Chain grouping of consecutive messages from one author (idle-gap based)
- Conversation transcripts and LLM-synthesized chain context
- Pluggable embedding providers (Voyage AI, OpenAI, Azure OpenAI) with
  document/query input types, caching, retry and a circuit breaker
- Atomic embed-and-supersede writes so each chain holds one vector
- Durable debounced task scheduling
- Similarity search hydrated with sender, channel and chain context

Usage:

    >>> from chain_embeddings import ChainIndexConfig, ChainIndexService
    >>> config = ChainIndexConfig.from_yaml("chain_index.yaml")
    >>> async with await ChainIndexService.create(config) as service:
    ...     await service.start()
    ...     await service.on_message_created(message_id)
    ...     results = await service.search("deployment failing on staging")

Store Selection:

    # SQLite for single-node deployments and tests
    from chain_embeddings.store import SQLiteMessageStore, SQLiteConfig

Embeddings:

    # Voyage AI (native document/query input types)
    from chain_embeddings.embeddings.voyage import VoyageEmbeddings

    embeddings = VoyageEmbeddings(api_key=..., model="voyage-3-large", cache_size=1000)
"""

from .assistant import WorkspaceAssistant
from .attachments import AttachmentDescriber, AttachmentDescription, AttachmentDescriptionRecorder
from .chains import ChainBuilder
from .config import ChainIndexConfig
from .context import ContextSynthesizer

# Embedding providers
from .embeddings import EmbeddingCache, EmbeddingProvider, ResilientEmbedder

# Exceptions
from .exceptions import (
    ChainIndexError,
    EmbeddingUnavailableError,
    EmbeddingWriteError,
    MessageNotFoundError,
    StorageConnectionError,
    StorageIOError,
    ValidationError,
)
from .history import HistoryFormatter
from .llm import ChatMessage, ChatModel
from .models import (
    Attachment,
    ChainMessage,
    ChainTask,
    ChainText,
    Channel,
    ContextRef,
    Message,
    MessageMatch,
    Profile,
    SearchResult,
)
from .pipeline import ChainEmbeddingPipeline, ChainOutcome
from .scheduler import ChainTaskScheduler
from .search import SearchService
from .service import ChainIndexService
from .store import MessageStore, SQLiteConfig, SQLiteMessageStore
from .writer import EmbeddingWriter

# Conditional imports for embedding providers
try:
    from .embeddings.voyage import VoyageEmbeddings  # noqa: F401

    _has_voyage = True
except ImportError:
    _has_voyage = False

try:
    from .embeddings.openai import OpenAIEmbeddings  # noqa: F401

    _has_openai = True
except ImportError:
    _has_openai = False

try:
    from .embeddings.azure_openai import AzureOpenAIEmbeddings  # noqa: F401

    _has_azure_openai = True
except ImportError:
    _has_azure_openai = False


__all__ = [
    # Service
    "ChainIndexService",
    "ChainIndexConfig",
    # Pipeline components
    "ChainBuilder",
    "HistoryFormatter",
    "ContextSynthesizer",
    "EmbeddingWriter",
    "ChainEmbeddingPipeline",
    "ChainOutcome",
    "ChainTaskScheduler",
    "SearchService",
    "WorkspaceAssistant",
    # Attachments
    "AttachmentDescriber",
    "AttachmentDescription",
    "AttachmentDescriptionRecorder",
    # Store
    "MessageStore",
    "SQLiteMessageStore",
    "SQLiteConfig",
    # Models
    "Attachment",
    "ChainMessage",
    "ChainTask",
    "ChainText",
    "Channel",
    "ContextRef",
    "Message",
    "MessageMatch",
    "Profile",
    "SearchResult",
    # Clients
    "EmbeddingProvider",
    "EmbeddingCache",
    "ResilientEmbedder",
    "ChatMessage",
    "ChatModel",
    # Exceptions
    "ChainIndexError",
    "MessageNotFoundError",
    "StorageIOError",
    "StorageConnectionError",
    "ValidationError",
    "EmbeddingUnavailableError",
    "EmbeddingWriteError",
]

if _has_voyage:
    __all__.extend(["VoyageEmbeddings"])

if _has_openai:
    __all__.extend(["OpenAIEmbeddings"])

if _has_azure_openai:
    __all__.extend(["AzureOpenAIEmbeddings"])

__version__ = "0.1.0"
