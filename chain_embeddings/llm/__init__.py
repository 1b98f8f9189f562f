"""Chat-completion model abstraction used for context synthesis and the assistant."""

from .base import ChatMessage, ChatModel
from .openai import OpenAIChatModel

__all__ = ["ChatMessage", "ChatModel", "OpenAIChatModel"]
