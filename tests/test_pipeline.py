"""Tests for the chain embedding pipeline end to end against SQLite."""

import pytest

from chain_embeddings.pipeline import ChainOutcome

CHANNEL = "chan-general"


async def _embedded_ids(store, ids):
    stored = await store.get_messages(ids)
    return [i for i in ids if stored[i].embedding is not None]


class TestProcessMessage:
    """Tests for ChainEmbeddingPipeline.process_message."""

    @pytest.mark.asyncio
    async def test_two_messages_five_minutes_apart_form_one_chain(
        self, workspace, pipeline, mock_embeddings, at
    ):
        hi = await workspace.insert_message("alice", "hi", channel_id=CHANNEL, created_at=at(0))
        how = await workspace.insert_message("alice", "how are you", channel_id=CHANNEL,
                                             created_at=at(5))

        outcome = await pipeline.process_message(how.id)

        assert outcome is ChainOutcome.EMBEDDED
        assert await _embedded_ids(workspace, [hi.id, how.id]) == [how.id]

        stored = await workspace.get_message(how.id)
        assert stored.formatted_chain == (
            "Channel: general\n[alice, 10:00]: hi\n[alice, 10:05]: how are you"
        )
        assert stored.context == "Alice is reporting a crash in the new build."

        text, input_type = mock_embeddings.calls[-1]
        assert input_type == "document"
        assert text == (
            "Context: Alice is reporting a crash in the new build.\n"
            "Channel: general\n[alice, 10:00]: hi\n[alice, 10:05]: how are you"
        )

    @pytest.mark.asyncio
    async def test_messages_two_hours_apart_embed_independently(self, workspace, pipeline, at):
        first = await workspace.insert_message("alice", "morning", channel_id=CHANNEL,
                                               created_at=at(0))
        assert await pipeline.process_message(first.id) is ChainOutcome.EMBEDDED

        second = await workspace.insert_message("alice", "afternoon", channel_id=CHANNEL,
                                                created_at=at(120))
        assert await pipeline.process_message(second.id) is ChainOutcome.EMBEDDED

        assert await _embedded_ids(workspace, [first.id, second.id]) == [first.id, second.id]
        stored = await workspace.get_message(second.id)
        assert stored.formatted_chain == "Channel: general\n[alice, 12:00]: afternoon"

    @pytest.mark.asyncio
    async def test_growing_chain_keeps_single_embedding(self, workspace, pipeline, at):
        ids = []
        for i, text in enumerate(["one", "two", "three"]):
            message = await workspace.insert_message("alice", text, channel_id=CHANNEL,
                                                     created_at=at(i * 10))
            ids.append(message.id)
            assert await pipeline.process_message(message.id) is ChainOutcome.EMBEDDED
            assert await _embedded_ids(workspace, ids) == [message.id]

    @pytest.mark.asyncio
    async def test_single_message_chain(self, workspace, pipeline, at):
        lone = await workspace.insert_message("bob", "lone", channel_id=CHANNEL, created_at=at(0))

        assert await pipeline.process_message(lone.id) is ChainOutcome.EMBEDDED
        stored = await workspace.get_message(lone.id)
        assert stored.formatted_chain == "Channel: general\n[Bob Jones, 10:00]: lone"

    @pytest.mark.asyncio
    async def test_context_failure_still_embeds(self, workspace, pipeline, chat_model,
                                                mock_embeddings, at):
        chat_model.error = RuntimeError("model down")
        message = await workspace.insert_message("alice", "hi", channel_id=CHANNEL,
                                                 created_at=at(0))

        assert await pipeline.process_message(message.id) is ChainOutcome.EMBEDDED

        stored = await workspace.get_message(message.id)
        assert stored.context is None
        assert mock_embeddings.calls[-1][0] == "Channel: general\n[alice, 10:00]: hi"

    @pytest.mark.asyncio
    async def test_embedding_failure_leaves_store_untouched(
        self, workspace, pipeline, mock_embeddings, at
    ):
        first = await workspace.insert_message("alice", "a", channel_id=CHANNEL, created_at=at(0))
        await pipeline.process_message(first.id)
        second = await workspace.insert_message("alice", "b", channel_id=CHANNEL,
                                                created_at=at(1))
        mock_embeddings.error = RuntimeError("embedding service down")

        assert await pipeline.process_message(second.id) is ChainOutcome.UPSTREAM_FAILED
        assert await _embedded_ids(workspace, [first.id, second.id]) == [first.id]

    @pytest.mark.asyncio
    async def test_missing_message_is_skipped(self, pipeline):
        assert await pipeline.process_message("gone") is ChainOutcome.SKIPPED

    @pytest.mark.asyncio
    async def test_blank_chain_is_skipped(self, workspace, pipeline, mock_embeddings, at):
        blank = await workspace.insert_message("alice", "   ", channel_id=CHANNEL,
                                               created_at=at(0))

        assert await pipeline.process_message(blank.id) is ChainOutcome.SKIPPED
        assert mock_embeddings.calls == []

    @pytest.mark.asyncio
    async def test_attachment_lines_follow_their_message(self, workspace, pipeline, at):
        first = await workspace.insert_message("alice", "see this", channel_id=CHANNEL,
                                               created_at=at(0))
        await workspace.add_attachment(first.id, "crash.png", "image/png",
                                       description="A stack trace")
        second = await workspace.insert_message("alice", "any ideas?", channel_id=CHANNEL,
                                                created_at=at(2))

        await pipeline.process_message(second.id)

        stored = await workspace.get_message(second.id)
        assert stored.formatted_chain.splitlines() == [
            "Channel: general",
            "[alice, 10:00]: see this",
            '[Image: "crash.png"] [Description: A stack trace]',
            "[alice, 10:02]: any ideas?",
        ]

    @pytest.mark.asyncio
    async def test_attachment_only_message_is_embedded(self, workspace, pipeline, at):
        message = await workspace.insert_message("alice", "", channel_id=CHANNEL,
                                                 created_at=at(0))
        await workspace.add_attachment(message.id, "memo.m4a", "audio/mp4",
                                       description="Voice memo about the outage")

        assert await pipeline.process_message(message.id) is ChainOutcome.EMBEDDED

    @pytest.mark.asyncio
    async def test_direct_message_chain_header(self, workspace, pipeline, at):
        message = await workspace.insert_message("bob", "got a minute?", conversation_id="dm-1",
                                                 created_at=at(0))

        await pipeline.process_message(message.id)

        stored = await workspace.get_message(message.id)
        assert stored.formatted_chain.splitlines()[0] == "Direct Message Recipient: alice"

    @pytest.mark.asyncio
    async def test_store_failure_never_raises(self, workspace, pipeline, at):
        message = await workspace.insert_message("alice", "hi", channel_id=CHANNEL,
                                                 created_at=at(0))
        await workspace.close()

        assert await pipeline.process_message(message.id) is ChainOutcome.UPSTREAM_FAILED
