"""
Abstract base class for chat-completion models.

The context synthesizer and the workspace assistant only need single-turn
completions returning plain text, so the interface stays that small.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal

Role = Literal["system", "user", "assistant"]


@dataclass
class ChatMessage:
    role: Role
    content: str


class ChatModel(ABC):
    """Abstract base for chat-completion providers."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Name/identifier of the chat model."""
        pass

    @abstractmethod
    async def complete(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float = 0.3,
        max_tokens: int | None = None,
    ) -> str:
        """
        Run one completion and return the assistant text.

        Raises:
            Exception: If the call fails or the response carries no text
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Cleanup resources."""
        pass

    async def __aenter__(self) -> ChatModel:
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        await self.close()
