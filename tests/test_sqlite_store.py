"""
Tests for the SQLite message store.

Uses real SQLite (in-memory) for accurate testing.
"""

import asyncio
import sqlite3
from datetime import timedelta

import pytest

from chain_embeddings.exceptions import (
    EmbeddingWriteError,
    MessageNotFoundError,
    StorageConnectionError,
    ValidationError,
)
from chain_embeddings.models import ContextRef, TaskStatus
from chain_embeddings.store import SQLiteConfig, SQLiteMessageStore

GENERAL = ContextRef("channel", "chan-general")


class TestSQLiteInitialization:
    @pytest.mark.asyncio
    async def test_create_with_defaults(self):
        store = await SQLiteMessageStore.create(SQLiteConfig())
        assert store._initialized is True
        await store.close()

    @pytest.mark.asyncio
    async def test_file_database(self, tmp_path):
        path = tmp_path / "index.db"
        async with SQLiteMessageStore(SQLiteConfig(db_path=path)) as store:
            await store.add_channel("c1", "general")
        async with SQLiteMessageStore(SQLiteConfig(db_path=path)) as store:
            assert (await store.get_channels(["c1"]))["c1"].name == "general"

    @pytest.mark.asyncio
    async def test_unreachable_path_raises_connection_error(self, tmp_path):
        config = SQLiteConfig(db_path=tmp_path / "missing-dir" / "index.db")
        with pytest.raises(StorageConnectionError):
            await SQLiteMessageStore.create(config)


class TestMessages:
    """Tests for message reads and hydration."""

    @pytest.mark.asyncio
    async def test_message_hydrates_author_and_attachments(self, workspace, at):
        message = await workspace.insert_message("alice", "hi", channel_id="chan-general",
                                                 created_at=at(0))
        await workspace.add_attachment(message.id, "a.png", "image/png", description="first")
        await workspace.add_attachment(message.id, "b.mp3", "audio/mpeg", description="second")

        stored = await workspace.get_message(message.id)

        assert stored.author.display_name == "alice"
        assert stored.created_at == at(0)
        assert stored.context_ref == GENERAL
        assert [a.file_name for a in stored.attachments] == ["a.png", "b.mp3"]

    @pytest.mark.asyncio
    async def test_message_without_profile(self, workspace, at):
        message = await workspace.insert_message("ghost", "boo", channel_id="chan-general",
                                                 created_at=at(0))
        stored = await workspace.get_message(message.id)
        assert stored.author is None
        assert stored.sender_name == "Unknown User"

    @pytest.mark.asyncio
    async def test_message_requires_exactly_one_context(self, workspace):
        with pytest.raises(ValidationError):
            await workspace.insert_message("alice", "nowhere")
        with pytest.raises(ValidationError):
            await workspace.insert_message("alice", "both", channel_id="chan-general",
                                           conversation_id="dm-1")

    @pytest.mark.asyncio
    async def test_get_messages_skips_missing(self, workspace, at):
        message = await workspace.insert_message("alice", "hi", channel_id="chan-general",
                                                 created_at=at(0))
        found = await workspace.get_messages([message.id, "missing"])
        assert list(found) == [message.id]

    @pytest.mark.asyncio
    async def test_recent_author_messages_newest_first(self, workspace, at):
        older = await workspace.insert_message("alice", "1", channel_id="chan-general",
                                               created_at=at(0))
        anchor = await workspace.insert_message("alice", "2", channel_id="chan-general",
                                                created_at=at(1))
        await workspace.insert_message("alice", "3", channel_id="chan-general", created_at=at(2))

        recent = await workspace.get_recent_author_messages("alice", GENERAL, up_to=anchor)

        assert [m.id for m in recent] == [anchor.id, older.id]

    @pytest.mark.asyncio
    async def test_counterpart(self, workspace):
        counterpart = await workspace.get_conversation_counterpart("dm-1", "alice")
        assert counterpart.id == "bob"
        assert await workspace.get_conversation_counterpart("dm-unknown", "alice") is None

    @pytest.mark.asyncio
    async def test_deleting_message_removes_attachments(self, workspace, at):
        message = await workspace.insert_message("alice", "hi", channel_id="chan-general",
                                                 created_at=at(0))
        attachment = await workspace.add_attachment(message.id, "a.png", "image/png")

        assert await workspace.delete_message(message.id) is True
        assert await workspace.get_attachment(attachment.id) is None


class TestMatchMessages:
    """Tests for the similarity RPC."""

    @pytest.mark.asyncio
    async def test_threshold_is_exclusive(self, workspace, at):
        message = await workspace.insert_message("alice", "x", channel_id="chan-general",
                                                 created_at=at(0))
        await workspace.commit_chain_embedding(message.id, [1.0, 0.0], None, "x", [])

        assert await workspace.match_messages([1.0, 0.0], 1.0, 5) == []
        assert len(await workspace.match_messages([1.0, 0.0], 0.99, 5)) == 1

    @pytest.mark.asyncio
    async def test_skips_zero_and_mismatched_vectors(self, workspace, at):
        a = await workspace.insert_message("alice", "a", channel_id="chan-general",
                                           created_at=at(0))
        b = await workspace.insert_message("alice", "b", channel_id="chan-general",
                                           created_at=at(1))
        await workspace.commit_chain_embedding(a.id, [0.0, 0.0], None, "a", [])
        await workspace.commit_chain_embedding(b.id, [1.0, 0.0, 0.0], None, "b", [])

        assert await workspace.match_messages([1.0, 0.0], 0.0, 5) == []
        assert await workspace.match_messages([0.0, 0.0], 0.0, 5) == []

    @pytest.mark.asyncio
    async def test_ties_keep_insertion_order(self, workspace, at):
        ids = []
        for i in range(3):
            message = await workspace.insert_message("alice", str(i), channel_id="chan-general",
                                                     created_at=at(i))
            await workspace.commit_chain_embedding(message.id, [1.0, 1.0], None, str(i), [])
            ids.append(message.id)

        matches = await workspace.match_messages([1.0, 1.0], 0.5, 5)

        assert [m.id for m in matches] == ids


class TestChainTasks:
    """Tests for the durable task table."""

    @pytest.mark.asyncio
    async def test_upsert_claim_complete(self, workspace, at):
        task = await workspace.upsert_chain_task("alice", GENERAL, "m1", at(1))
        assert task.status is TaskStatus.PENDING

        assert await workspace.claim_due_tasks(at(0)) == []
        (claimed,) = await workspace.claim_due_tasks(at(1))
        assert claimed.status is TaskStatus.RUNNING
        assert await workspace.claim_due_tasks(at(2)) == []

        assert await workspace.complete_chain_task(claimed) is True
        assert await workspace.get_chain_task("alice", GENERAL) is None

    @pytest.mark.asyncio
    async def test_fail_and_requeue(self, workspace, at):
        await workspace.upsert_chain_task("alice", GENERAL, "m1", at(0))
        (claimed,) = await workspace.claim_due_tasks(at(0))

        await workspace.fail_chain_task(claimed, "boom", retry_at=at(0) + timedelta(minutes=5))
        task = await workspace.get_chain_task("alice", GENERAL)
        assert task.attempts == 1
        assert task.last_error == "boom"
        assert task.due_at == at(5)

        (claimed,) = await workspace.claim_due_tasks(at(5))
        assert await workspace.requeue_running_tasks() == 1
        assert (await workspace.get_chain_task("alice", GENERAL)).status is TaskStatus.PENDING

    @pytest.mark.asyncio
    async def test_release_returns_claimed_task_to_pending(self, workspace, at):
        await workspace.upsert_chain_task("alice", GENERAL, "m1", at(0))
        (claimed,) = await workspace.claim_due_tasks(at(0))

        assert await workspace.release_chain_task(claimed) is True
        task = await workspace.get_chain_task("alice", GENERAL)
        assert task.status is TaskStatus.PENDING
        assert task.attempts == 0
        assert await workspace.release_chain_task(claimed) is False


class TestConcurrentWrites:
    """Writes sharing the one connection stay in their own transactions."""

    @pytest.mark.asyncio
    async def test_failed_chain_write_not_committed_by_concurrent_upsert(
        self, workspace, at, monkeypatch
    ):
        older = await workspace.insert_message("alice", "hi", channel_id="chan-general",
                                               created_at=at(0))
        newer = await workspace.insert_message("alice", "how are you",
                                               channel_id="chan-general", created_at=at(1))
        await workspace.commit_chain_embedding(older.id, [1.0, 0.0], None, "hi", [])

        execute = workspace.conn.execute
        clearing = asyncio.Event()
        release = asyncio.Event()

        async def failing_clear():
            clearing.set()
            await release.wait()
            raise sqlite3.OperationalError("disk I/O error")

        def execute_with_failing_clear(sql, parameters=None):
            if "embedding_json = NULL" in sql:
                return failing_clear()
            return execute(sql, parameters)

        monkeypatch.setattr(workspace.conn, "execute", execute_with_failing_clear)

        write = asyncio.create_task(
            workspace.commit_chain_embedding(
                newer.id, [0.0, 1.0], None, "hi\nhow are you", [older.id]
            )
        )
        await clearing.wait()
        upsert = asyncio.create_task(
            workspace.upsert_chain_task("bob", GENERAL, "m-bob", at(2))
        )
        await asyncio.sleep(0.05)
        assert not upsert.done()

        release.set()
        with pytest.raises(EmbeddingWriteError):
            await write
        task = await upsert
        monkeypatch.undo()

        stored = await workspace.get_messages([older.id, newer.id])
        assert stored[older.id].embedding == [1.0, 0.0]
        assert stored[newer.id].embedding is None
        assert task.message_id == "m-bob"

    @pytest.mark.asyncio
    async def test_rollback_keeps_concurrent_task(self, workspace, at):
        results = await asyncio.gather(
            workspace.commit_chain_embedding("missing", [1.0, 0.0], None, "chain", []),
            workspace.upsert_chain_task("bob", GENERAL, "m-bob", at(1)),
            return_exceptions=True,
        )

        assert isinstance(results[0], MessageNotFoundError)
        task = await workspace.get_chain_task("bob", GENERAL)
        assert task is not None
        assert task.message_id == "m-bob"

    @pytest.mark.asyncio
    async def test_chain_write_alongside_scheduling_traffic(self, workspace, at):
        older = await workspace.insert_message("alice", "hi", channel_id="chan-general",
                                               created_at=at(0))
        newer = await workspace.insert_message("alice", "how are you",
                                               channel_id="chan-general", created_at=at(1))
        await workspace.commit_chain_embedding(older.id, [1.0, 0.0], None, "hi", [])

        await asyncio.gather(
            workspace.commit_chain_embedding(
                newer.id, [0.0, 1.0], "Alice says hello.", "hi\nhow are you", [older.id]
            ),
            workspace.upsert_chain_task("alice", GENERAL, newer.id, at(2)),
            workspace.upsert_chain_task("bob", GENERAL, "m-bob", at(2)),
            workspace.insert_message("bob", "morning", channel_id="chan-general",
                                     created_at=at(2)),
        )

        stored = await workspace.get_messages([older.id, newer.id])
        assert stored[older.id].embedding is None
        assert stored[newer.id].embedding == [0.0, 1.0]
        assert await workspace.get_chain_task("alice", GENERAL) is not None
        assert await workspace.get_chain_task("bob", GENERAL) is not None
