"""
Semantic search over embedded chains.

A query is embedded in query mode, ranked by the store's similarity RPC,
and hydrated with sender, channel and chain context. Results keep the
RPC's order. Search is best-effort: any failure yields no results.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from .embeddings.resilience import ResilientEmbedder
from .models import ChainMessage, Message, MessageMatch, SearchResult
from .store.base import MessageStore

logger = logging.getLogger(__name__)

DEFAULT_MATCH_THRESHOLD = 0.3
DEFAULT_MATCH_COUNT = 10


class SearchService:
    def __init__(
        self,
        store: MessageStore,
        embedder: ResilientEmbedder,
        threshold: float = DEFAULT_MATCH_THRESHOLD,
        count: int = DEFAULT_MATCH_COUNT,
        include_chain: bool = True,
        max_idle_gap: timedelta = timedelta(hours=1),
        chain_fetch_limit: int = 100,
    ):
        self.store = store
        self.embedder = embedder
        self.threshold = threshold
        self.count = count
        self.include_chain = include_chain
        self.max_idle_gap = max_idle_gap
        self.chain_fetch_limit = chain_fetch_limit

    async def search(
        self,
        query: str,
        threshold: float | None = None,
        count: int | None = None,
        include_chain: bool | None = None,
    ) -> list[SearchResult]:
        """
        Find messages whose chains are semantically close to ``query``.

        Args:
            query: Free-text query
            threshold: Minimum cosine similarity (exclusive); defaults to the service's
            count: Maximum number of results; defaults to the service's
            include_chain: Attach chain messages and the stored formatted chain

        Returns:
            Results ordered by descending similarity; [] on blank query or failure
        """
        if not query or not query.strip():
            return []

        threshold = self.threshold if threshold is None else threshold
        count = self.count if count is None else count
        include_chain = self.include_chain if include_chain is None else include_chain
        if count <= 0:
            return []

        try:
            vector = await self.embedder.embed_query(query)
        except Exception as e:
            logger.error(f"Search embedding failed: {e}")
            return []

        try:
            matches = await self.store.match_messages(vector, threshold, count)
        except Exception as e:
            logger.error(f"Similarity search failed: {e}")
            return []

        if not matches:
            logger.info("Search returned no matches")
            return []

        try:
            return await self._hydrate(matches, include_chain)
        except Exception as e:
            logger.error(f"Failed to hydrate {len(matches)} search match(es): {e}")
            return []

    async def _hydrate(self, matches: list[MessageMatch], include_chain: bool) -> list[SearchResult]:
        messages = await self.store.get_messages([m.id for m in matches])
        channel_ids = [m.channel_id for m in messages.values() if m.channel_id]
        channels = await self.store.get_channels(channel_ids)

        results: list[SearchResult] = []
        for match in matches:
            message = messages.get(match.id)
            if message is None:
                logger.debug(f"Match {match.id} vanished before hydration, dropping")
                continue

            channel = channels.get(message.channel_id) if message.channel_id else None
            result = SearchResult(
                message_id=message.id,
                content=match.content,
                similarity=match.similarity,
                sender_name=message.sender_name,
                channel_name=channel.name if channel else None,
                created_at=message.created_at,
                context=match.context,
            )
            if include_chain:
                result.formatted_chain = message.formatted_chain
                result.chain_messages = await self._chain_messages(message)
            results.append(result)
        return results

    async def _chain_messages(self, message: Message) -> list[ChainMessage]:
        """Same author and context, within the idle gap before the match, oldest first."""
        recent = await self.store.get_recent_author_messages(
            message.author_id, message.context_ref, up_to=message, limit=self.chain_fetch_limit
        )
        window_start = message.created_at - self.max_idle_gap
        in_window = [m for m in recent if m.created_at >= window_start]
        return [ChainMessage(content=m.content, created_at=m.created_at) for m in reversed(in_window)]
