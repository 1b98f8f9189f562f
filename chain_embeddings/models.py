"""
Data model for chat messages, attachments, chains and search results.

Rows coming out of the store are converted to these dataclasses at the
boundary. Relationships are explicit: a message has exactly one author
profile (one-to-one) and any number of attachments (one-to-many).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Literal

from .exceptions import ValidationError

UNKNOWN_USER = "Unknown User"

ContextKind = Literal["channel", "conversation"]


class MimeCategory(Enum):
    """Coarse attachment type used for rendering description lines."""

    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    OTHER = "other"

    @classmethod
    def from_mime_type(cls, mime_type: str | None) -> MimeCategory:
        if not mime_type:
            return cls.OTHER
        major = mime_type.split("/", 1)[0].lower()
        try:
            return cls(major)
        except ValueError:
            return cls.OTHER

    @property
    def label(self) -> str:
        """Display label ("Image", "Audio", "Video")."""
        return self.value.capitalize()


@dataclass
class Profile:
    """A workspace member as seen by the pipeline."""

    id: str
    full_name: str | None = None
    display_name: str | None = None

    @property
    def display_label(self) -> str:
        """Display name, falling back to full name, then "Unknown User"."""
        return self.display_name or self.full_name or UNKNOWN_USER


@dataclass
class Channel:
    id: str
    name: str


@dataclass(frozen=True)
class ContextRef:
    """The channel or direct-message conversation a message belongs to."""

    kind: ContextKind
    id: str

    @classmethod
    def for_ids(cls, channel_id: str | None, conversation_id: str | None) -> ContextRef:
        """Build a ref, enforcing that exactly one of the two ids is set."""
        if channel_id and conversation_id:
            raise ValidationError(
                "channel_id", "message has both channel_id and conversation_id", channel_id
            )
        if channel_id:
            return cls("channel", channel_id)
        if conversation_id:
            return cls("conversation", conversation_id)
        raise ValidationError("channel_id", "message has neither channel_id nor conversation_id")

    @property
    def is_channel(self) -> bool:
        return self.kind == "channel"

    @property
    def key(self) -> str:
        return f"{self.kind}:{self.id}"


@dataclass
class Attachment:
    """A file attached to a message.

    ``description`` is the raw describer text. ``display_description`` is the
    same text wrapped with sender/channel/date metadata for display. Rows
    written before the two were split only carry the wrapped form.
    """

    id: str
    message_id: str
    file_name: str
    mime_type: str
    caption: str | None = None
    description: str | None = None
    display_description: str | None = None

    @property
    def mime_category(self) -> MimeCategory:
        return MimeCategory.from_mime_type(self.mime_type)


@dataclass
class Message:
    """A chat message row with its hydrated author and attachments."""

    id: str
    author_id: str
    content: str
    created_at: datetime
    channel_id: str | None = None
    conversation_id: str | None = None
    parent_id: str | None = None
    embedding: list[float] | None = None
    context: str | None = None
    formatted_chain: str | None = None
    author: Profile | None = None
    attachments: list[Attachment] = field(default_factory=list)
    sequence: int = 0  # insertion order, breaks created_at ties

    @property
    def context_ref(self) -> ContextRef:
        return ContextRef.for_ids(self.channel_id, self.conversation_id)

    @property
    def sender_name(self) -> str:
        return self.author.display_label if self.author else UNKNOWN_USER


@dataclass
class ChainText:
    """Rendered text of a chain.

    ``formatted_chain`` is stored for display; ``embedding_text`` is what the
    embedding model receives (the synthesized context line plus the chain).
    """

    formatted_chain: str
    context: str = ""

    @property
    def embedding_text(self) -> str:
        if self.context:
            return f"Context: {self.context}\n{self.formatted_chain}"
        return self.formatted_chain


@dataclass
class MessageMatch:
    """Raw row returned by the similarity RPC."""

    id: str
    content: str
    context: str | None
    similarity: float


@dataclass
class ChainMessage:
    """A member of a matched message's chain, for display."""

    content: str
    created_at: datetime


@dataclass
class SearchResult:
    """Hydrated search hit. Derived per query; never persisted."""

    message_id: str
    content: str
    similarity: float
    sender_name: str
    channel_name: str | None
    created_at: datetime
    context: str | None = None
    formatted_chain: str | None = None
    chain_messages: list[ChainMessage] = field(default_factory=list)


class TaskStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    DEAD = "dead"


@dataclass
class ChainTask:
    """Durable debounce record for one (author, context) pair."""

    author_id: str
    context: ContextRef
    message_id: str
    due_at: datetime
    attempts: int = 0
    status: TaskStatus = TaskStatus.PENDING
    last_error: str | None = None
    revision: int = 0  # bumped on every reschedule
