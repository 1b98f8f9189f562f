"""
Chain embedding pipeline.

One run turns a trigger message into a searchable chain:

1. build the chain ending at the trigger
2. render the chain text (header, message lines, attachment lines)
3. render the conversation transcript and synthesize a short context
4. embed ``Context: ...`` + chain text in document mode
5. write the embedding on the newest member and supersede the rest

Failures are reported as a ``ChainOutcome``; nothing raises out of
``process_message`` because it runs detached from message creation.
"""

from __future__ import annotations

from datetime import tzinfo
from enum import Enum

from .chains import ChainBuilder
from .context import ContextSynthesizer
from .embeddings.resilience import ResilientEmbedder
from .exceptions import ChainIndexError, EmbeddingUnavailableError, MessageNotFoundError
from .formatting import attachment_line, context_header
from .history import HistoryFormatter, render_messages
from .logging_utils import ChainLoggerAdapter, get_pipeline_logger
from .models import ChainText, Message
from .writer import EmbeddingWriter

logger = get_pipeline_logger("pipeline")


class ChainOutcome(Enum):
    EMBEDDED = "embedded"
    SKIPPED = "skipped"  # missing or empty data, nothing to retry
    UPSTREAM_FAILED = "upstream_failed"  # embedding service or store read unavailable
    WRITE_FAILED = "write_failed"  # transaction rolled back

    @property
    def retryable(self) -> bool:
        return self in (ChainOutcome.UPSTREAM_FAILED, ChainOutcome.WRITE_FAILED)


def _has_embeddable_text(chain: list[Message]) -> bool:
    for message in chain:
        if message.content.strip():
            return True
        if any(attachment_line(a) for a in message.attachments):
            return True
    return False


class ChainEmbeddingPipeline:
    def __init__(
        self,
        builder: ChainBuilder,
        history: HistoryFormatter,
        synthesizer: ContextSynthesizer,
        embedder: ResilientEmbedder,
        writer: EmbeddingWriter,
        tz: tzinfo | None = None,
    ):
        self.builder = builder
        self.history = history
        self.synthesizer = synthesizer
        self.embedder = embedder
        self.writer = writer
        self.tz = tz

    async def render_chain(self, chain: list[Message]) -> str:
        """Header line followed by each member's message and attachment lines."""
        trigger = chain[-1]
        context = trigger.context_ref
        try:
            header = await self.history.resolve_header(context, trigger.author_id)
        except Exception as e:
            logger.warning(f"Could not resolve header for {context.key}: {e}")
            header = context_header(context, None)
        lines = render_messages(chain, self.tz, include_dates=False)
        return "\n".join([header, *lines])

    async def process_message(self, message_id: str) -> ChainOutcome:
        """Embed the chain ending at ``message_id``. Never raises."""
        log = ChainLoggerAdapter(logger, {"message_id": message_id})
        try:
            return await self._process(message_id, log)
        except Exception as e:
            log.exception(f"Unexpected error processing message {message_id}: {e}")
            return ChainOutcome.UPSTREAM_FAILED

    async def _process(self, message_id: str, log: ChainLoggerAdapter) -> ChainOutcome:
        try:
            chain = await self.builder.build_chain(message_id)
        except ChainIndexError as e:
            log.error(f"Failed to build chain for {message_id}: {e}")
            return ChainOutcome.UPSTREAM_FAILED

        if not chain:
            return ChainOutcome.SKIPPED
        if not _has_embeddable_text(chain):
            log.info(f"Chain ending at {message_id} has no text to embed")
            return ChainOutcome.SKIPPED

        trigger = chain[-1]
        log = ChainLoggerAdapter(
            logger, {"message_id": message_id, "author_id": trigger.author_id}
        )

        formatted_chain = await self.render_chain(chain)
        transcript = await self.history.format_history(trigger.context_ref, trigger.author_id)
        context = ""
        if transcript:
            context = await self.synthesizer.synthesize(transcript, formatted_chain)
        if not context:
            log.info(f"No context synthesized for chain ending at {message_id}")

        text = ChainText(formatted_chain=formatted_chain, context=context)

        try:
            embedding = await self.embedder.embed_document(
                text.embedding_text, context_msg=f"chain {message_id}"
            )
        except EmbeddingUnavailableError as e:
            log.error(f"Embedding unavailable for chain ending at {message_id}: {e}")
            return ChainOutcome.UPSTREAM_FAILED

        try:
            await self.writer.write(chain, embedding, text)
        except MessageNotFoundError:
            log.info(f"Message {trigger.id} deleted before its embedding was written")
            return ChainOutcome.SKIPPED
        except ChainIndexError as e:
            log.error(f"Failed to write chain embedding for {message_id}: {e}")
            return ChainOutcome.WRITE_FAILED

        log.info(f"Embedded chain of {len(chain)} message(s) ending at {trigger.id}")
        return ChainOutcome.EMBEDDED
