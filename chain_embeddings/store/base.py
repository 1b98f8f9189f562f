"""
Abstract base class for the message store.

The store is the relational layer the pipeline reads messages from and
writes embeddings to. Implementations must:
- return messages with their author profile (one-to-one) and attachments
  (one-to-many) hydrated
- order messages by ``created_at`` with insertion order breaking ties
- commit a chain embedding and its superseding clear-out atomically
- expose a similarity RPC ranking stored vectors against a query vector
- persist debounced chain tasks durably
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from ..models import (
    Attachment,
    Channel,
    ChainTask,
    ContextRef,
    Message,
    MessageMatch,
    Profile,
)


class MessageStore(ABC):
    """Abstract base for all message store backends."""

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize connections and schema."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close connections and cleanup resources."""
        pass

    # =========================================================================
    # Reads
    # =========================================================================

    @abstractmethod
    async def get_message(self, message_id: str) -> Message | None:
        """Get one hydrated message, or None if it does not exist."""
        pass

    @abstractmethod
    async def get_messages(self, message_ids: list[str]) -> dict[str, Message]:
        """Get hydrated messages keyed by id; missing ids are absent."""
        pass

    @abstractmethod
    async def get_recent_author_messages(
        self,
        author_id: str,
        context: ContextRef,
        up_to: Message,
        limit: int = 100,
    ) -> list[Message]:
        """
        Get an author's messages in one context, newest first, ending at ``up_to``.

        Messages created after ``up_to`` (or at the same instant but inserted
        later) are excluded.
        """
        pass

    @abstractmethod
    async def get_context_messages(self, context: ContextRef) -> list[Message]:
        """Get every message in a channel or conversation, oldest first."""
        pass

    @abstractmethod
    async def get_channels(self, channel_ids: list[str]) -> dict[str, Channel]:
        pass

    @abstractmethod
    async def get_conversation_counterpart(
        self, conversation_id: str, exclude_user_id: str
    ) -> Profile | None:
        """Get the other participant of a direct-message conversation."""
        pass

    @abstractmethod
    async def get_attachment(self, attachment_id: str) -> Attachment | None:
        pass

    # =========================================================================
    # Embedding fields (written only by the EmbeddingWriter)
    # =========================================================================

    @abstractmethod
    async def commit_chain_embedding(
        self,
        message_id: str,
        embedding: list[float],
        context: str | None,
        formatted_chain: str,
        superseded_ids: list[str],
    ) -> None:
        """
        Write the chain embedding on ``message_id`` and clear it on ``superseded_ids``.

        Both happen in one transaction: either the new embedding is stored and
        every superseded message is cleared, or nothing changes.

        Raises:
            MessageNotFoundError: If ``message_id`` no longer exists
            EmbeddingWriteError: If the transaction fails
        """
        pass

    @abstractmethod
    async def clear_embeddings(self, message_ids: list[str]) -> int:
        """Null the embedding, context and formatted chain of messages.

        Clearing already-null fields is a no-op. Returns rows that changed.
        """
        pass

    @abstractmethod
    async def match_messages(
        self, query_vector: list[float], threshold: float, count: int
    ) -> list[MessageMatch]:
        """
        Similarity RPC: rows with cosine similarity above ``threshold``,
        most similar first, at most ``count`` rows.
        """
        pass

    # =========================================================================
    # Attachments
    # =========================================================================

    @abstractmethod
    async def update_attachment_description(
        self,
        attachment_id: str,
        caption: str | None,
        description: str | None,
        display_description: str | None,
    ) -> None:
        pass

    # =========================================================================
    # Durable chain tasks
    # =========================================================================

    @abstractmethod
    async def upsert_chain_task(
        self, author_id: str, context: ContextRef, message_id: str, due_at: datetime
    ) -> ChainTask:
        """Create or debounce the task for (author, context), resetting attempts."""
        pass

    @abstractmethod
    async def claim_due_tasks(self, now: datetime, limit: int = 10) -> list[ChainTask]:
        """Mark due pending tasks as running and return them."""
        pass

    @abstractmethod
    async def complete_chain_task(self, task: ChainTask) -> bool:
        """Delete the task unless it was rescheduled since it was claimed."""
        pass

    @abstractmethod
    async def fail_chain_task(
        self, task: ChainTask, error: str, retry_at: datetime | None
    ) -> None:
        """Record a failed attempt; ``retry_at=None`` marks the task dead."""
        pass

    @abstractmethod
    async def release_chain_task(self, task: ChainTask) -> bool:
        """Return one claimed task to pending without counting an attempt."""
        pass

    @abstractmethod
    async def requeue_running_tasks(self) -> int:
        """Return tasks left running by a crashed worker to pending."""
        pass

    @abstractmethod
    async def get_chain_task(self, author_id: str, context: ContextRef) -> ChainTask | None:
        pass

    async def __aenter__(self) -> MessageStore:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        await self.close()
