"""
History formatter: renders a channel or direct-message conversation as one
plain-text transcript for the context model.

Transcript layout::

    Channel: general
    Date: Thursday, 5 October 2023
    [Alice, 10:30]: has anyone tried the new build?
    [Image: "crash.png"] [Description: A stack trace in a terminal window]
    [Bob, 10:32]: yes, it crashes on start
"""

from __future__ import annotations

import logging
from datetime import tzinfo

from .formatting import (
    attachment_line,
    context_header,
    date_header,
    format_date,
    is_date_header,
    message_line,
)
from .models import ContextRef, Message
from .store.base import MessageStore
from .tokens import keep_last_lines

logger = logging.getLogger(__name__)


def render_messages(
    messages: list[Message], tz: tzinfo | None = None, include_dates: bool = True
) -> list[str]:
    """Message and attachment lines, with a date line whenever the day changes."""
    lines: list[str] = []
    current_date: str | None = None
    for message in messages:
        if include_dates:
            day = format_date(message.created_at, tz)
            if day != current_date:
                lines.append(date_header(message.created_at, tz))
                current_date = day
        lines.append(message_line(message.sender_name, message.created_at, message.content, tz))
        for attachment in message.attachments:
            line = attachment_line(attachment)
            if line:
                lines.append(line)
    return lines


class HistoryFormatter:
    """Builds transcripts and context headers from the message store."""

    def __init__(
        self,
        store: MessageStore,
        tz: tzinfo | None = None,
        token_budget: int | None = None,
    ):
        self.store = store
        self.tz = tz
        self.token_budget = token_budget

    async def resolve_header(self, context: ContextRef, author_id: str | None = None) -> str:
        """
        ``Channel: <name>`` or ``Direct Message Recipient: <name>``.

        For conversations the recipient is the participant other than
        ``author_id``.
        """
        if context.is_channel:
            channels = await self.store.get_channels([context.id])
            channel = channels.get(context.id)
            return context_header(context, channel.name if channel else None)

        counterpart = await self.store.get_conversation_counterpart(context.id, author_id or "")
        return context_header(context, counterpart.display_label if counterpart else None)

    async def format_history(self, context: ContextRef, author_id: str | None = None) -> str:
        """
        Full transcript of a context, oldest first.

        Returns "" when the context has no messages or the store read fails;
        callers treat that as "no history available".
        """
        try:
            messages = await self.store.get_context_messages(context)
            if not messages:
                return ""
            header = await self.resolve_header(context, author_id)
        except Exception as e:
            logger.error(f"Failed to load history for {context.key}: {e}")
            return ""

        lines = render_messages(messages, self.tz)
        if self.token_budget:
            lines = keep_last_lines(lines, self.token_budget, is_heading=is_date_header)
        body = "\n".join(lines)
        return f"{header}\n{body}"
