"""Tests for the service facade wiring everything together."""

from datetime import timedelta

import pytest

from chain_embeddings.attachments import AttachmentDescriber, AttachmentDescription
from chain_embeddings.config import ChainIndexConfig
from chain_embeddings.models import ContextRef, TaskStatus
from chain_embeddings.pipeline import ChainOutcome
from chain_embeddings.service import ChainIndexService
from chain_embeddings.store import SQLiteConfig, SQLiteMessageStore


@pytest.fixture
async def service(mock_embeddings, chat_model):
    config = ChainIndexConfig(processing_delay_seconds=0, match_threshold=0.0)
    store = SQLiteMessageStore(SQLiteConfig(db_path=":memory:"))
    service = await ChainIndexService.create(
        config, store=store, embedding_provider=mock_embeddings, chat_model=chat_model
    )
    yield service
    await service.close()


class TestChainIndexService:
    @pytest.mark.asyncio
    async def test_message_to_search_result(self, service, mock_embeddings, at):
        store = service.store
        await store.add_profile("alice", display_name="alice")
        await store.add_channel("chan-ops", "ops")
        mock_embeddings.default = [1.0, 0.0]
        message = await store.insert_message("alice", "staging is down", channel_id="chan-ops",
                                             created_at=at(0))

        task = await service.on_message_created(message.id)
        assert task is not None
        counts = await service.scheduler.run_due_tasks(task.due_at + timedelta(seconds=1))
        assert counts == {ChainOutcome.EMBEDDED: 1}

        results = await service.search("is staging up?")

        assert [r.message_id for r in results] == [message.id]
        assert results[0].channel_name == "ops"
        assert results[0].sender_name == "alice"

    @pytest.mark.asyncio
    async def test_on_message_created_for_missing_message(self, service):
        assert await service.on_message_created("missing") is None

    @pytest.mark.asyncio
    async def test_on_message_created_never_raises(self, service, at):
        await service.store.add_profile("alice")
        await service.store.add_channel("chan-ops", "ops")
        message = await service.store.insert_message("alice", "hi", channel_id="chan-ops",
                                                     created_at=at(0))
        await service.store.close()

        assert await service.on_message_created(message.id) is None

    @pytest.mark.asyncio
    async def test_config_flows_to_components(self, service):
        assert service.builder.max_idle_gap == timedelta(hours=1)
        assert service.search_service.threshold == 0.0
        assert service.scheduler.processing_delay == timedelta(0)
        assert service.synthesizer.max_tokens == 100

    @pytest.mark.asyncio
    async def test_close_releases_clients(self, mock_embeddings, chat_model):
        service = await ChainIndexService.create(
            ChainIndexConfig(), embedding_provider=mock_embeddings, chat_model=chat_model
        )
        await service.start()

        await service.close()

        assert mock_embeddings.closed
        assert chat_model.closed
        assert service.store.conn is None

    @pytest.mark.asyncio
    async def test_start_recovers_tasks(self, service, at):
        await service.store.add_profile("alice")
        await service.store.add_channel("chan-ops", "ops")
        message = await service.store.insert_message("alice", "hi", channel_id="chan-ops",
                                                     created_at=at(0))
        task = await service.on_message_created(message.id)
        await service.store.claim_due_tasks(task.due_at)

        await service.start()
        await service.scheduler.stop()

        stored = await service.store.get_chain_task("alice", ContextRef("channel", "chan-ops"))
        assert stored is None or stored.status is not TaskStatus.RUNNING

    @pytest.mark.asyncio
    async def test_stats_report_circuit_state(self, service):
        stats = service.stats()
        assert stats["model"] == "mock-embeddings"
        assert stats["circuit"]["state"] == "closed"


class CaptionDescriber(AttachmentDescriber):
    async def describe(self, attachment):
        return AttachmentDescription(caption="Graph", description="Error rate spiking at noon")


class TestAttachmentDescriptions:
    @pytest.mark.asyncio
    async def test_describe_attachment_on_upload(self, mock_embeddings, chat_model, at):
        service = await ChainIndexService.create(
            ChainIndexConfig(),
            store=SQLiteMessageStore(SQLiteConfig(db_path=":memory:")),
            embedding_provider=mock_embeddings,
            chat_model=chat_model,
            describer=CaptionDescriber(),
        )
        async with service:
            store = service.store
            await store.add_profile("alice", display_name="alice")
            await store.add_channel("chan-ops", "ops")
            message = await store.insert_message("alice", "see graph", channel_id="chan-ops",
                                                 created_at=at(0))
            upload = await store.add_attachment(message.id, "errors.png", "image/png")

            described = await service.describe_attachment(upload.id)

            assert described is not None
            stored = await store.get_attachment(upload.id)
            assert stored.description == "Error rate spiking at noon"
            assert stored.display_description == (
                "[alice shared 'errors.png' in #ops on Thursday, 5 October 2023, 10:00. "
                "Image description: Error rate spiking at noon]"
            )

    @pytest.mark.asyncio
    async def test_describe_attachment_without_describer(self, service, at):
        await service.store.add_channel("chan-ops", "ops")
        message = await service.store.insert_message("alice", "see graph",
                                                     channel_id="chan-ops", created_at=at(0))
        upload = await service.store.add_attachment(message.id, "errors.png", "image/png")

        assert await service.describe_attachment(upload.id) is None
        assert (await service.store.get_attachment(upload.id)).description is None
