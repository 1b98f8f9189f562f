"""
Shared test configuration and fixtures.

Tests run against a real in-memory SQLite store with a deterministic mock
embedding provider and a scripted chat model, so no network access or API
keys are needed.
"""

import hashlib
import logging
from datetime import UTC, datetime, timedelta

import pytest

from chain_embeddings.chains import ChainBuilder
from chain_embeddings.context import ContextSynthesizer
from chain_embeddings.embeddings import EmbeddingProvider, ResilientEmbedder, RetryConfig
from chain_embeddings.embeddings.base import DOCUMENT, InputType
from chain_embeddings.history import HistoryFormatter
from chain_embeddings.llm import ChatMessage, ChatModel
from chain_embeddings.pipeline import ChainEmbeddingPipeline
from chain_embeddings.search import SearchService
from chain_embeddings.store import SQLiteConfig, SQLiteMessageStore
from chain_embeddings.writer import EmbeddingWriter

logger = logging.getLogger(__name__)

# Thursday, 5 October 2023, 10:00 UTC
BASE_TIME = datetime(2023, 10, 5, 10, 0, tzinfo=UTC)


def minutes_after_base(minutes: float) -> datetime:
    """Timestamp ``minutes`` after BASE_TIME."""
    return BASE_TIME + timedelta(minutes=minutes)


class MockEmbeddingProvider(EmbeddingProvider):
    """
    Mock embedding provider for testing without API costs.

    Texts listed in ``vectors`` get that exact vector; everything else gets
    ``default`` or a deterministic vector derived from a hash of the text.
    Every call is recorded with its input type.
    """

    def __init__(
        self,
        dimensions: int = 8,
        vectors: dict[str, list[float]] | None = None,
        default: list[float] | None = None,
    ):
        self._dimensions = dimensions
        self.vectors = vectors or {}
        self.default = default
        self.calls: list[tuple[str, str]] = []
        self.error: Exception | None = None
        self.closed = False

    @property
    def model_name(self) -> str:
        return "mock-embeddings"

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _vector(self, text: str) -> list[float]:
        if text in self.vectors:
            return self.vectors[text]
        if self.default is not None:
            return self.default
        digest = hashlib.sha256(text.encode()).digest()
        return [digest[i] / 255.0 + 0.01 for i in range(self._dimensions)]

    async def embed_text(self, text: str, input_type: InputType = DOCUMENT) -> list[float]:
        vectors = await self.embed_batch([text], input_type)
        return vectors[0]

    async def embed_batch(
        self, texts: list[str], input_type: InputType = DOCUMENT
    ) -> list[list[float]]:
        if self.error:
            raise self.error
        for text in texts:
            self.calls.append((text, input_type))
        return [self._vector(text) for text in texts]

    async def close(self) -> None:
        self.closed = True


class ScriptedChatModel(ChatModel):
    """Chat model returning a fixed reply (or raising) and recording requests."""

    def __init__(self, reply: str = "Alice is reporting a crash in the new build."):
        self.reply = reply
        self.error: Exception | None = None
        self.requests: list[dict] = []
        self.closed = False

    @property
    def model_name(self) -> str:
        return "scripted-chat"

    async def complete(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float = 0.3,
        max_tokens: int | None = None,
    ) -> str:
        self.requests.append(
            {"messages": messages, "temperature": temperature, "max_tokens": max_tokens}
        )
        if self.error:
            raise self.error
        return self.reply

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def at():
    """Helper turning minutes after 10:00 on 5 October 2023 into a timestamp."""
    return minutes_after_base


@pytest.fixture
async def store():
    """Initialized in-memory SQLite store."""
    store = await SQLiteMessageStore.create(SQLiteConfig(db_path=":memory:"))
    yield store
    await store.close()


@pytest.fixture
async def workspace(store):
    """
    Store seeded with two members, a channel and a direct-message conversation.

    - alice: display name "alice", full name "Alice Smith"
    - bob: no display name, full name "Bob Jones"
    - channel "chan-general" named "general"
    - conversation "dm-1" between alice and bob
    """
    await store.add_profile("alice", full_name="Alice Smith", display_name="alice")
    await store.add_profile("bob", full_name="Bob Jones")
    await store.add_channel("chan-general", "general")
    await store.add_conversation("dm-1", ["alice", "bob"])
    return store


@pytest.fixture
def mock_embeddings():
    return MockEmbeddingProvider()


@pytest.fixture
def chat_model():
    return ScriptedChatModel()


@pytest.fixture
def embedder(mock_embeddings):
    """Resilient embedder without retries so failures surface immediately."""
    return ResilientEmbedder(mock_embeddings, retry_config=RetryConfig(max_retries=0))


@pytest.fixture
def pipeline(workspace, embedder, chat_model):
    history = HistoryFormatter(workspace)
    return ChainEmbeddingPipeline(
        ChainBuilder(workspace),
        history,
        ContextSynthesizer(chat_model),
        embedder,
        EmbeddingWriter(workspace),
    )


@pytest.fixture
def search_service(workspace, embedder):
    return SearchService(workspace, embedder)
