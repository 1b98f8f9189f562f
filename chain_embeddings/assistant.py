"""
Workspace assistant: answers a user's chat question with relevant messages
from the workspace, retrieved through the search service, as extra context.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone, tzinfo

from .formatting import format_timestamp
from .llm.base import ChatMessage, ChatModel
from .models import SearchResult
from .search import SearchService

logger = logging.getLogger(__name__)

PERSONA_TEMPLATE = (
    "You are {assistant_name}, a helpful AI assistant for the {workspace_name} workspace "
    "chat application. You are chatting with {user_name}. You should be friendly and "
    "conversational while remaining professional. You can help with questions about "
    "messages in the workspace, provide general assistance, or engage in casual conversation."
)


def format_search_context(results: list[SearchResult]) -> str | None:
    """System message body listing retrieved messages, or None when there are none."""
    if not results:
        return None
    lines = "\n\n".join(
        f"[{r.sender_name} in {r.channel_name or 'DM'}]: {r.content}" for r in results
    )
    return (
        "Here are some relevant messages from the workspace that might help with the "
        f"response:\n\n{lines}\n\nPlease use this context to inform your response when relevant."
    )


class WorkspaceAssistant:
    def __init__(
        self,
        model: ChatModel,
        search: SearchService,
        assistant_name: str = "Assistant",
        workspace_name: str = "team",
        temperature: float = 0.7,
        tz: tzinfo | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.model = model
        self.search = search
        self.assistant_name = assistant_name
        self.workspace_name = workspace_name
        self.temperature = temperature
        self.tz = tz
        self.clock = clock

    def build_messages(
        self,
        question: str,
        history: list[ChatMessage],
        user_name: str,
        results: list[SearchResult],
    ) -> list[ChatMessage]:
        persona = PERSONA_TEMPLATE.format(
            assistant_name=self.assistant_name,
            workspace_name=self.workspace_name,
            user_name=user_name,
        )
        messages = [ChatMessage(role="system", content=persona), *history]
        messages.append(
            ChatMessage(
                role="system",
                content=f"Current date and time: {format_timestamp(self.clock(), self.tz)}",
            )
        )
        context = format_search_context(results)
        if context:
            messages.append(ChatMessage(role="system", content=context))
        messages.append(ChatMessage(role="user", content=question))
        return messages

    async def respond(
        self,
        question: str,
        history: list[ChatMessage] | None = None,
        user_name: str = "a workspace member",
    ) -> str:
        """Answer ``question`` given the prior turns of the chat.

        Search problems degrade to answering without workspace context;
        chat model errors propagate to the caller.
        """
        try:
            results = await self.search.search(question)
        except Exception as e:
            logger.warning(f"Assistant search failed, answering without context: {e}")
            results = []
        logger.info(f"Assistant found {len(results)} relevant message(s)")

        messages = self.build_messages(question, history or [], user_name, results)
        reply = await self.model.complete(messages, temperature=self.temperature)
        return reply.strip()
