"""
Embedding writer: the only component that mutates a message's
``embedding``, ``context`` and ``formatted_chain`` fields.

Per message the fields move through ``unset -> embedded -> superseded``.
The newest chain member is embedded and every older member is cleared in
the same store transaction, so a chain never holds more than one vector.
"""

from __future__ import annotations

import logging

from .models import ChainText, Message
from .store.base import MessageStore

logger = logging.getLogger(__name__)


class EmbeddingWriter:
    def __init__(self, store: MessageStore):
        self.store = store

    @staticmethod
    def split_chain(chain: list[Message]) -> tuple[Message, list[str]]:
        """Terminal (newest) message and the ids it supersedes."""
        if not chain:
            raise ValueError("Cannot write an empty chain")
        terminal = chain[-1]
        return terminal, [m.id for m in chain[:-1] if m.id != terminal.id]

    async def write(self, chain: list[Message], embedding: list[float], text: ChainText) -> Message:
        """
        Store the chain embedding on the newest message and clear the rest.

        Raises:
            MessageNotFoundError: If the terminal message was deleted meanwhile
            EmbeddingWriteError: If the transaction failed (nothing was changed)
        """
        terminal, superseded = self.split_chain(chain)
        await self.store.commit_chain_embedding(
            terminal.id,
            embedding,
            text.context or None,
            text.formatted_chain,
            superseded,
        )
        if superseded:
            logger.info(f"Embedded chain on {terminal.id}, superseded {len(superseded)} message(s)")
        else:
            logger.info(f"Embedded single-message chain on {terminal.id}")
        return terminal

