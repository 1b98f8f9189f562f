"""
OpenAI chat-completion model.
"""

from __future__ import annotations

import logging
import os

from openai import AsyncOpenAI

from .base import ChatMessage, ChatModel

logger = logging.getLogger(__name__)


class OpenAIChatModel(ChatModel):
    """Chat completions through the official OpenAI SDK."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self._client: AsyncOpenAI | None = None

    @classmethod
    def from_env(cls, model: str | None = None) -> OpenAIChatModel:
        """
        Create model from environment variables.

        Required env vars:
            OPENAI_API_KEY: OpenAI API key

        Optional env vars:
            OPENAI_CHAT_MODEL: Model name (default: gpt-4o-mini)
            OPENAI_BASE_URL: Custom base URL
        """
        api_key = os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("OPENAI_API_KEY environment variable required")
        return cls(
            api_key=api_key,
            model=model or os.environ.get("OPENAI_CHAT_MODEL", "gpt-4o-mini"),
            base_url=os.environ.get("OPENAI_BASE_URL"),
        )

    @property
    def model_name(self) -> str:
        return self.model

    def _ensure_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key, base_url=self.base_url, timeout=self.timeout
            )
        return self._client

    async def complete(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float = 0.3,
        max_tokens: int | None = None,
    ) -> str:
        client = self._ensure_client()
        response = await client.chat.completions.create(
            model=self.model,
            messages=[{"role": m.role, "content": m.content} for m in messages],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        if not response.choices:
            raise ValueError("Completion returned no choices")
        content = response.choices[0].message.content
        if content is None:
            raise ValueError("Completion returned no text content")
        return content

    async def close(self) -> None:
        if self._client:
            await self._client.close()
            self._client = None
