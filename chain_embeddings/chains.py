"""
Chain builder.

A chain is a run of messages from one author in one channel or
conversation where no two consecutive messages are further apart than the
idle gap. Only the newest member of a chain carries the chain's embedding.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from .models import Message
from .store.base import MessageStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_IDLE_GAP = timedelta(hours=1)
DEFAULT_FETCH_LIMIT = 100


def group_chain(recent_first: list[Message], max_idle_gap: timedelta) -> list[Message]:
    """
    Walk messages newest-first and keep the contiguous run ending at the first.

    Returns the accepted messages oldest-first.
    """
    chain: list[Message] = []
    cutoff: datetime | None = None
    for message in recent_first:
        if cutoff is not None and cutoff - message.created_at > max_idle_gap:
            break
        chain.append(message)
        cutoff = message.created_at
    chain.reverse()
    return chain


class ChainBuilder:
    def __init__(
        self,
        store: MessageStore,
        max_idle_gap: timedelta = DEFAULT_MAX_IDLE_GAP,
        fetch_limit: int = DEFAULT_FETCH_LIMIT,
    ):
        self.store = store
        self.max_idle_gap = max_idle_gap
        self.fetch_limit = fetch_limit

    async def build_chain(self, message_id: str) -> list[Message]:
        """Chain ending at ``message_id``, oldest first; [] if the message is gone."""
        message = await self.store.get_message(message_id)
        if message is None:
            logger.info(f"Message {message_id} no longer exists, no chain to build")
            return []
        return await self.build_chain_for(message)

    async def build_chain_for(self, message: Message) -> list[Message]:
        recent = await self.store.get_recent_author_messages(
            message.author_id, message.context_ref, up_to=message, limit=self.fetch_limit
        )
        if not recent or recent[0].id != message.id:
            # The trigger itself always anchors the chain
            recent = [message] + [m for m in recent if m.id != message.id]

        chain = group_chain(recent, self.max_idle_gap)
        logger.debug(
            f"Built chain of {len(chain)} message(s) ending at {message.id} "
            f"in {message.context_ref.key}"
        )
        return chain
