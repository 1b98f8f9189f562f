"""
Service facade wiring the store, model clients, pipeline, scheduler and
search service together.

Usage:
    config = ChainIndexConfig.from_env()
    async with await ChainIndexService.create(config) as service:
        await service.start()
        message = await service.store.insert_message(user_id, "hello", channel_id=channel_id)
        await service.on_message_created(message.id)
        results = await service.search("greetings")
"""

from __future__ import annotations

import logging
from typing import Any

from .assistant import WorkspaceAssistant
from .attachments import AttachmentDescriber, AttachmentDescriptionRecorder
from .chains import ChainBuilder
from .config import ChainIndexConfig
from .context import ContextSynthesizer
from .embeddings import EmbeddingProvider, ResilientEmbedder, create_embedding_provider
from .formatting import resolve_timezone
from .history import HistoryFormatter
from .llm.base import ChatModel
from .logging_utils import configure_structured_logging
from .models import Attachment, ChainTask, SearchResult
from .pipeline import ChainEmbeddingPipeline
from .scheduler import ChainTaskScheduler
from .search import SearchService
from .store.base import MessageStore
from .store.sqlite import SQLiteConfig, SQLiteMessageStore
from .writer import EmbeddingWriter

logger = logging.getLogger(__name__)


class ChainIndexService:
    """Owns every collaborator; nothing here is a module-level singleton."""

    def __init__(
        self,
        config: ChainIndexConfig,
        store: MessageStore,
        embedding_provider: EmbeddingProvider,
        chat_model: ChatModel,
        describer: AttachmentDescriber | None = None,
    ):
        self.config = config
        self.store = store
        self.embedding_provider = embedding_provider
        self.chat_model = chat_model

        tz = resolve_timezone(config.display_timezone)
        self.embedder = ResilientEmbedder(embedding_provider, token_limit=config.embed_token_limit)
        self.history = HistoryFormatter(store, tz=tz, token_budget=config.history_token_budget)
        self.builder = ChainBuilder(
            store, max_idle_gap=config.max_idle_gap, fetch_limit=config.chain_fetch_limit
        )
        self.synthesizer = ContextSynthesizer(
            chat_model,
            temperature=config.context_temperature,
            max_tokens=config.context_max_tokens,
        )
        self.writer = EmbeddingWriter(store)
        self.pipeline = ChainEmbeddingPipeline(
            self.builder, self.history, self.synthesizer, self.embedder, self.writer, tz=tz
        )
        self.scheduler = ChainTaskScheduler(
            store,
            self.pipeline,
            processing_delay=config.processing_delay,
            poll_interval=config.task_poll_interval_seconds,
            max_attempts=config.task_max_attempts,
            retry_base_seconds=config.task_retry_base_seconds,
        )
        self.search_service = SearchService(
            store,
            self.embedder,
            threshold=config.match_threshold,
            count=config.match_count,
            include_chain=config.include_chain_context,
            max_idle_gap=config.max_idle_gap,
            chain_fetch_limit=config.chain_fetch_limit,
        )
        self.assistant = WorkspaceAssistant(chat_model, self.search_service, tz=tz)
        self.recorder = (
            AttachmentDescriptionRecorder(store, describer, tz=tz) if describer else None
        )

    @classmethod
    async def create(
        cls,
        config: ChainIndexConfig | None = None,
        *,
        store: MessageStore | None = None,
        embedding_provider: EmbeddingProvider | None = None,
        chat_model: ChatModel | None = None,
        describer: AttachmentDescriber | None = None,
        configure_logging: bool = False,
    ) -> ChainIndexService:
        """
        Build a service, creating any collaborator that was not injected.

        Missing clients are built from the environment: the configured
        embedding provider and an OpenAI chat model for ``context_model``.
        """
        config = config or ChainIndexConfig.from_env()
        if configure_logging:
            configure_structured_logging(
                level=logging.getLevelName(config.log_level.upper()),
                logger_name="chain_embeddings",
                json_output=config.json_logs,
            )

        if store is None:
            store = await SQLiteMessageStore.create(SQLiteConfig(db_path=config.db_path))
        else:
            await store.initialize()

        if embedding_provider is None:
            embedding_provider = create_embedding_provider(config.embedding_provider)
        if chat_model is None:
            from .llm.openai import OpenAIChatModel

            chat_model = OpenAIChatModel.from_env(model=config.context_model)

        logger.info(
            f"Chain index service ready (embeddings: {embedding_provider.model_name}, "
            f"context model: {chat_model.model_name})"
        )
        return cls(config, store, embedding_provider, chat_model, describer=describer)

    async def start(self) -> None:
        """Recover interrupted tasks and start the background worker."""
        await self.scheduler.start()

    async def close(self) -> None:
        await self.scheduler.stop()
        await self.embedding_provider.close()
        await self.chat_model.close()
        await self.store.close()

    async def __aenter__(self) -> ChainIndexService:
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        await self.close()

    def stats(self) -> dict[str, Any]:
        """Embedding circuit state for health checks."""
        return self.embedder.stats()

    async def on_message_created(self, message_id: str) -> ChainTask | None:
        """
        Hook for the message-insert path: queue the author's chain for processing.

        Never raises; a failure to schedule is logged and the message simply
        stays unembedded.
        """
        try:
            message = await self.store.get_message(message_id)
            if message is None:
                logger.info(f"Message {message_id} not found, nothing to schedule")
                return None
            return await self.scheduler.schedule(message)
        except Exception as e:
            logger.error(f"Failed to schedule chain processing for {message_id}: {e}")
            return None

    async def search(
        self,
        query: str,
        threshold: float | None = None,
        count: int | None = None,
        include_chain: bool | None = None,
    ) -> list[SearchResult]:
        return await self.search_service.search(query, threshold, count, include_chain)

    async def describe_attachment(self, attachment_id: str) -> Attachment | None:
        """
        Hook for the upload path: describe a newly attached file.

        Does nothing without a describer. Never raises.
        """
        if self.recorder is None:
            return None
        try:
            attachment = await self.store.get_attachment(attachment_id)
            if attachment is None:
                logger.info(f"Attachment {attachment_id} not found, nothing to describe")
                return None
            message = await self.store.get_message(attachment.message_id)
            if message is None:
                logger.info(f"Message for attachment {attachment_id} not found")
                return None

            if message.channel_id:
                channels = await self.store.get_channels([message.channel_id])
                channel = channels.get(message.channel_id)
                where = f"#{channel.name}" if channel else "a channel"
            else:
                where = "a direct message"

            return await self.recorder.record(
                attachment_id, message.sender_name, where, message.created_at
            )
        except Exception as e:
            logger.error(f"Failed to describe attachment {attachment_id}: {e}")
            return None
