"""
SQLite message store with brute-force vector search.

Embeddings are stored as JSON on the message row and ranked with numpy
cosine similarity. Suitable for single-node deployments, development and
testing; a Postgres/pgvector deployment implements the same interface.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import numpy as np

from ..exceptions import (
    EmbeddingWriteError,
    MessageNotFoundError,
    StorageConnectionError,
    StorageIOError,
)
from ..models import (
    Attachment,
    Channel,
    ChainTask,
    ContextRef,
    Message,
    MessageMatch,
    Profile,
    TaskStatus,
)
from .base import MessageStore

logger = logging.getLogger(__name__)

# SQLite caps bound parameters per statement; IN (...) lists are chunked below it
_IN_CHUNK = 500

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS profiles (
    id TEXT NOT NULL PRIMARY KEY,
    full_name TEXT,
    display_name TEXT
);

CREATE TABLE IF NOT EXISTS channels (
    id TEXT NOT NULL PRIMARY KEY,
    name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS conversation_participants (
    conversation_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    PRIMARY KEY (conversation_id, user_id)
);

CREATE TABLE IF NOT EXISTS messages (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    user_id TEXT NOT NULL,
    content TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    channel_id TEXT,
    conversation_id TEXT,
    parent_id TEXT,
    embedding_json TEXT,
    context TEXT,
    formatted_chain TEXT,
    CHECK ((channel_id IS NULL) <> (conversation_id IS NULL))
);

CREATE TABLE IF NOT EXISTS attachments (
    id TEXT NOT NULL PRIMARY KEY,
    message_id TEXT NOT NULL REFERENCES messages(id) ON DELETE CASCADE,
    file_name TEXT NOT NULL,
    mime_type TEXT NOT NULL,
    caption TEXT,
    description TEXT,
    display_description TEXT
);

CREATE TABLE IF NOT EXISTS chain_tasks (
    author_id TEXT NOT NULL,
    context_kind TEXT NOT NULL,
    context_id TEXT NOT NULL,
    message_id TEXT NOT NULL,
    due_at TEXT NOT NULL,
    attempts INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'pending',
    last_error TEXT,
    revision INTEGER NOT NULL DEFAULT 0,
    claimed_at TEXT,
    PRIMARY KEY (author_id, context_kind, context_id)
);

CREATE INDEX IF NOT EXISTS idx_messages_channel
    ON messages(channel_id, created_at, seq);
CREATE INDEX IF NOT EXISTS idx_messages_conversation
    ON messages(conversation_id, created_at, seq);
CREATE INDEX IF NOT EXISTS idx_messages_author
    ON messages(user_id, created_at DESC, seq DESC);
CREATE INDEX IF NOT EXISTS idx_attachments_message ON attachments(message_id);
CREATE INDEX IF NOT EXISTS idx_chain_tasks_due ON chain_tasks(status, due_at);
"""

_MESSAGE_SELECT = """
    SELECT m.seq, m.id, m.user_id, m.content, m.created_at, m.channel_id,
           m.conversation_id, m.parent_id, m.embedding_json, m.context,
           m.formatted_chain, p.id AS profile_id, p.full_name, p.display_name
    FROM messages m
    LEFT JOIN profiles p ON p.id = m.user_id
"""


def _to_db_ts(dt: datetime) -> str:
    """Fixed-width UTC ISO string so lexical order matches time order."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_db_ts(value: str) -> datetime:
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _context_column(context: ContextRef) -> str:
    return "channel_id" if context.is_channel else "conversation_id"


@dataclass
class SQLiteConfig:
    """Configuration for SQLite storage."""

    db_path: str | Path = ":memory:"

    @classmethod
    def from_env(cls) -> SQLiteConfig:
        """Create config from environment variables."""
        return cls(db_path=os.environ.get("CHAIN_INDEX_DB_PATH", ":memory:"))


class SQLiteMessageStore(MessageStore):
    """
    SQLite message store.

    Features:
    - Single file database (or in-memory for tests)
    - numpy cosine ranking for the similarity RPC
    - Atomic embedding commit + supersede
    - Durable chain task table for debounced processing
    """

    def __init__(self, config: SQLiteConfig):
        self.config = config
        self.conn: aiosqlite.Connection | None = None
        self._initialized = False
        # One connection is shared by every coroutine; writes take turns
        self._write_lock = asyncio.Lock()

    @classmethod
    async def create(cls, config: SQLiteConfig | None = None) -> SQLiteMessageStore:
        """Create and initialize the store."""
        store = cls(config or SQLiteConfig.from_env())
        await store.initialize()
        return store

    async def initialize(self) -> None:
        if self._initialized:
            return

        try:
            self.conn = await aiosqlite.connect(str(self.config.db_path))
            self.conn.row_factory = aiosqlite.Row
            await self.conn.execute("PRAGMA foreign_keys = ON")
            await self.conn.executescript(_SCHEMA_SQL)
            await self.conn.commit()
        except Exception as e:
            raise StorageConnectionError(str(self.config.db_path), e) from e

        self._initialized = True
        logger.info(f"SQLite message store initialized: {self.config.db_path}")

    async def close(self) -> None:
        if self.conn:
            await self.conn.close()
            self.conn = None
        self._initialized = False

    def _require_conn(self, operation: str) -> aiosqlite.Connection:
        if self.conn is None:
            raise StorageIOError(operation, cause=RuntimeError("Not initialized"))
        return self.conn

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        """Run a write unit in its own transaction, committed or rolled back whole.

        The write lock is held from BEGIN through COMMIT/ROLLBACK.
        """
        conn = self._require_conn(operation)
        async with self._write_lock:
            await conn.execute("BEGIN TRANSACTION")
            try:
                yield conn
                await conn.commit()
            except BaseException:
                await conn.rollback()
                raise

    # =========================================================================
    # Row conversion
    # =========================================================================

    def _row_to_message(self, row: Any) -> Message:
        author = None
        if row["profile_id"] is not None:
            author = Profile(
                id=row["profile_id"],
                full_name=row["full_name"],
                display_name=row["display_name"],
            )
        ContextRef.for_ids(row["channel_id"], row["conversation_id"])
        return Message(
            id=row["id"],
            author_id=row["user_id"],
            content=row["content"] or "",
            created_at=_from_db_ts(row["created_at"]),
            channel_id=row["channel_id"],
            conversation_id=row["conversation_id"],
            parent_id=row["parent_id"],
            embedding=json.loads(row["embedding_json"]) if row["embedding_json"] else None,
            context=row["context"],
            formatted_chain=row["formatted_chain"],
            author=author,
            sequence=row["seq"],
        )

    @staticmethod
    def _row_to_attachment(row: Any) -> Attachment:
        return Attachment(
            id=row["id"],
            message_id=row["message_id"],
            file_name=row["file_name"],
            mime_type=row["mime_type"],
            caption=row["caption"],
            description=row["description"],
            display_description=row["display_description"],
        )

    @staticmethod
    def _row_to_task(row: Any) -> ChainTask:
        return ChainTask(
            author_id=row["author_id"],
            context=ContextRef(row["context_kind"], row["context_id"]),
            message_id=row["message_id"],
            due_at=_from_db_ts(row["due_at"]),
            attempts=row["attempts"],
            status=TaskStatus(row["status"]),
            last_error=row["last_error"],
            revision=row["revision"],
        )

    async def _fetch_messages(self, where: str, params: list[Any], order: str) -> list[Message]:
        conn = self._require_conn("get_messages")
        async with conn.execute(f"{_MESSAGE_SELECT} WHERE {where} {order}", params) as cursor:
            rows = await cursor.fetchall()
        messages = [self._row_to_message(row) for row in rows]
        await self._attach_files(messages)
        return messages

    async def _attach_files(self, messages: list[Message]) -> None:
        if not messages:
            return
        conn = self._require_conn("get_attachments")
        by_id = {m.id: m for m in messages}
        ids = list(by_id)
        for start in range(0, len(ids), _IN_CHUNK):
            chunk = ids[start : start + _IN_CHUNK]
            placeholders = ", ".join("?" * len(chunk))
            async with conn.execute(
                f"SELECT * FROM attachments WHERE message_id IN ({placeholders}) ORDER BY rowid",
                chunk,
            ) as cursor:
                for row in await cursor.fetchall():
                    by_id[row["message_id"]].attachments.append(self._row_to_attachment(row))

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_message(self, message_id: str) -> Message | None:
        messages = await self._fetch_messages("m.id = ?", [message_id], "")
        return messages[0] if messages else None

    async def get_messages(self, message_ids: list[str]) -> dict[str, Message]:
        result: dict[str, Message] = {}
        for start in range(0, len(message_ids), _IN_CHUNK):
            chunk = message_ids[start : start + _IN_CHUNK]
            placeholders = ", ".join("?" * len(chunk))
            for message in await self._fetch_messages(f"m.id IN ({placeholders})", chunk, ""):
                result[message.id] = message
        return result

    async def get_recent_author_messages(
        self,
        author_id: str,
        context: ContextRef,
        up_to: Message,
        limit: int = 100,
    ) -> list[Message]:
        if limit <= 0:
            return []
        column = _context_column(context)
        anchor_ts = _to_db_ts(up_to.created_at)
        return await self._fetch_messages(
            f"m.user_id = ? AND m.{column} = ? "
            "AND (m.created_at < ? OR (m.created_at = ? AND m.seq <= ?))",
            [author_id, context.id, anchor_ts, anchor_ts, up_to.sequence],
            f"ORDER BY m.created_at DESC, m.seq DESC LIMIT {int(limit)}",
        )

    async def get_context_messages(self, context: ContextRef) -> list[Message]:
        column = _context_column(context)
        return await self._fetch_messages(
            f"m.{column} = ?", [context.id], "ORDER BY m.created_at ASC, m.seq ASC"
        )

    async def get_channels(self, channel_ids: list[str]) -> dict[str, Channel]:
        conn = self._require_conn("get_channels")
        ids = list(dict.fromkeys(channel_ids))
        if not ids:
            return {}
        placeholders = ", ".join("?" * len(ids))
        async with conn.execute(
            f"SELECT id, name FROM channels WHERE id IN ({placeholders})", ids
        ) as cursor:
            rows = await cursor.fetchall()
        return {row["id"]: Channel(id=row["id"], name=row["name"]) for row in rows}

    async def get_conversation_counterpart(
        self, conversation_id: str, exclude_user_id: str
    ) -> Profile | None:
        conn = self._require_conn("get_conversation_counterpart")
        async with conn.execute(
            """
            SELECT p.id, p.full_name, p.display_name
            FROM conversation_participants cp
            JOIN profiles p ON p.id = cp.user_id
            WHERE cp.conversation_id = ? AND cp.user_id <> ?
            ORDER BY cp.rowid
            LIMIT 1
            """,
            (conversation_id, exclude_user_id),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return Profile(id=row["id"], full_name=row["full_name"], display_name=row["display_name"])

    async def get_attachment(self, attachment_id: str) -> Attachment | None:
        conn = self._require_conn("get_attachment")
        async with conn.execute(
            "SELECT * FROM attachments WHERE id = ?", (attachment_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return self._row_to_attachment(row) if row else None

    # =========================================================================
    # Embedding fields
    # =========================================================================

    async def commit_chain_embedding(
        self,
        message_id: str,
        embedding: list[float],
        context: str | None,
        formatted_chain: str,
        superseded_ids: list[str],
    ) -> None:
        self._require_conn("commit_chain_embedding")
        try:
            async with self._transaction("commit_chain_embedding") as conn:
                cursor = await conn.execute(
                    """
                    UPDATE messages
                    SET embedding_json = ?, context = ?, formatted_chain = ?
                    WHERE id = ?
                    """,
                    (json.dumps(embedding), context or None, formatted_chain, message_id),
                )
                if cursor.rowcount == 0:
                    raise MessageNotFoundError(message_id)

                for start in range(0, len(superseded_ids), _IN_CHUNK):
                    chunk = [
                        i for i in superseded_ids[start : start + _IN_CHUNK] if i != message_id
                    ]
                    if not chunk:
                        continue
                    placeholders = ", ".join("?" * len(chunk))
                    await conn.execute(
                        f"""
                        UPDATE messages
                        SET embedding_json = NULL, context = NULL, formatted_chain = NULL
                        WHERE id IN ({placeholders})
                        """,
                        chunk,
                    )
        except MessageNotFoundError:
            raise
        except Exception as e:
            raise EmbeddingWriteError(message_id, superseded_ids, e) from e

    async def clear_embeddings(self, message_ids: list[str]) -> int:
        self._require_conn("clear_embeddings")
        cleared = 0
        try:
            async with self._transaction("clear_embeddings") as conn:
                for start in range(0, len(message_ids), _IN_CHUNK):
                    chunk = message_ids[start : start + _IN_CHUNK]
                    placeholders = ", ".join("?" * len(chunk))
                    cursor = await conn.execute(
                        f"""
                        UPDATE messages
                        SET embedding_json = NULL, context = NULL, formatted_chain = NULL
                        WHERE id IN ({placeholders})
                          AND (embedding_json IS NOT NULL OR context IS NOT NULL
                               OR formatted_chain IS NOT NULL)
                        """,
                        chunk,
                    )
                    cleared += cursor.rowcount
        except Exception as e:
            raise StorageIOError("clear_embeddings", "messages", e) from e
        return cleared

    async def match_messages(
        self, query_vector: list[float], threshold: float, count: int
    ) -> list[MessageMatch]:
        """Brute-force cosine ranking over every embedded message."""
        conn = self._require_conn("match_messages")
        if count <= 0:
            return []

        async with conn.execute(
            """
            SELECT id, content, context, embedding_json
            FROM messages
            WHERE embedding_json IS NOT NULL
            ORDER BY seq
            """
        ) as cursor:
            rows = await cursor.fetchall()

        query_np = np.asarray(query_vector, dtype=float)
        query_norm = np.linalg.norm(query_np)
        if not rows or query_norm == 0:
            return []

        kept_rows = []
        vectors = []
        for row in rows:
            vec = np.asarray(json.loads(row["embedding_json"]), dtype=float)
            if vec.shape != query_np.shape:
                logger.warning(
                    f"Skipping message {row['id']}: embedding has {vec.shape[0]} dimensions, "
                    f"query has {query_np.shape[0]}"
                )
                continue
            kept_rows.append(row)
            vectors.append(vec)

        if not vectors:
            return []

        matrix = np.vstack(vectors)
        denominators = np.linalg.norm(matrix, axis=1) * query_norm
        similarities = np.divide(
            matrix @ query_np,
            denominators,
            out=np.zeros(len(vectors)),
            where=denominators > 0,
        )

        order = np.argsort(-similarities, kind="stable")
        matches: list[MessageMatch] = []
        for idx in order:
            similarity = float(similarities[idx])
            if similarity <= threshold:
                break
            row = kept_rows[idx]
            matches.append(
                MessageMatch(
                    id=row["id"],
                    content=row["content"],
                    context=row["context"],
                    similarity=similarity,
                )
            )
            if len(matches) >= count:
                break
        return matches

    # =========================================================================
    # Attachments
    # =========================================================================

    async def update_attachment_description(
        self,
        attachment_id: str,
        caption: str | None,
        description: str | None,
        display_description: str | None,
    ) -> None:
        self._require_conn("update_attachment_description")
        try:
            async with self._transaction("update_attachment_description") as conn:
                await conn.execute(
                    """
                    UPDATE attachments
                    SET caption = ?, description = ?, display_description = ?
                    WHERE id = ?
                    """,
                    (caption, description, display_description, attachment_id),
                )
        except Exception as e:
            raise StorageIOError("update_attachment_description", "attachments", e) from e

    # =========================================================================
    # Durable chain tasks
    # =========================================================================

    async def upsert_chain_task(
        self, author_id: str, context: ContextRef, message_id: str, due_at: datetime
    ) -> ChainTask:
        async with self._transaction("upsert_chain_task") as conn:
            await conn.execute(
                """
                INSERT INTO chain_tasks (
                    author_id, context_kind, context_id, message_id, due_at,
                    attempts, status, last_error, revision
                ) VALUES (?, ?, ?, ?, ?, 0, 'pending', NULL, 0)
                ON CONFLICT (author_id, context_kind, context_id) DO UPDATE SET
                    message_id = excluded.message_id,
                    due_at = excluded.due_at,
                    attempts = 0,
                    status = 'pending',
                    last_error = NULL,
                    claimed_at = NULL,
                    revision = chain_tasks.revision + 1
                """,
                (author_id, context.kind, context.id, message_id, _to_db_ts(due_at)),
            )
        task = await self.get_chain_task(author_id, context)
        if task is None:
            raise StorageIOError("upsert_chain_task", "chain_tasks")
        return task

    async def claim_due_tasks(self, now: datetime, limit: int = 10) -> list[ChainTask]:
        claimed: list[ChainTask] = []
        async with self._transaction("claim_due_tasks") as conn:
            async with conn.execute(
                """
                SELECT * FROM chain_tasks
                WHERE status = 'pending' AND due_at <= ?
                ORDER BY due_at
                LIMIT ?
                """,
                (_to_db_ts(now), limit),
            ) as cursor:
                rows = await cursor.fetchall()

            for row in rows:
                task = self._row_to_task(row)
                cursor = await conn.execute(
                    """
                    UPDATE chain_tasks SET status = 'running', claimed_at = ?
                    WHERE author_id = ? AND context_kind = ? AND context_id = ?
                      AND status = 'pending' AND revision = ?
                    """,
                    (_to_db_ts(now), task.author_id, task.context.kind, task.context.id,
                     task.revision),
                )
                if cursor.rowcount:
                    task.status = TaskStatus.RUNNING
                    claimed.append(task)
        return claimed

    async def complete_chain_task(self, task: ChainTask) -> bool:
        async with self._transaction("complete_chain_task") as conn:
            cursor = await conn.execute(
                """
                DELETE FROM chain_tasks
                WHERE author_id = ? AND context_kind = ? AND context_id = ? AND revision = ?
                """,
                (task.author_id, task.context.kind, task.context.id, task.revision),
            )
        return cursor.rowcount > 0

    async def fail_chain_task(
        self, task: ChainTask, error: str, retry_at: datetime | None
    ) -> None:
        if retry_at is None:
            status, due_at = TaskStatus.DEAD.value, _to_db_ts(task.due_at)
        else:
            status, due_at = TaskStatus.PENDING.value, _to_db_ts(retry_at)
        async with self._transaction("fail_chain_task") as conn:
            await conn.execute(
                """
                UPDATE chain_tasks
                SET attempts = attempts + 1, last_error = ?, status = ?, due_at = ?,
                    claimed_at = NULL
                WHERE author_id = ? AND context_kind = ? AND context_id = ? AND revision = ?
                """,
                (error, status, due_at, task.author_id, task.context.kind, task.context.id,
                 task.revision),
            )

    async def release_chain_task(self, task: ChainTask) -> bool:
        async with self._transaction("release_chain_task") as conn:
            cursor = await conn.execute(
                """
                UPDATE chain_tasks SET status = 'pending', claimed_at = NULL
                WHERE author_id = ? AND context_kind = ? AND context_id = ?
                  AND revision = ? AND status = 'running'
                """,
                (task.author_id, task.context.kind, task.context.id, task.revision),
            )
        return cursor.rowcount > 0

    async def requeue_running_tasks(self) -> int:
        async with self._transaction("requeue_running_tasks") as conn:
            cursor = await conn.execute(
                "UPDATE chain_tasks SET status = 'pending', claimed_at = NULL "
                "WHERE status = 'running'"
            )
        return cursor.rowcount

    async def get_chain_task(self, author_id: str, context: ContextRef) -> ChainTask | None:
        conn = self._require_conn("get_chain_task")
        async with conn.execute(
            """
            SELECT * FROM chain_tasks
            WHERE author_id = ? AND context_kind = ? AND context_id = ?
            """,
            (author_id, context.kind, context.id),
        ) as cursor:
            row = await cursor.fetchone()
        return self._row_to_task(row) if row else None

    # =========================================================================
    # Writes owned by the chat application (used by ingestion and tests)
    # =========================================================================

    async def add_profile(
        self, profile_id: str, full_name: str | None = None, display_name: str | None = None
    ) -> Profile:
        async with self._transaction("add_profile") as conn:
            await conn.execute(
                """
                INSERT INTO profiles (id, full_name, display_name) VALUES (?, ?, ?)
                ON CONFLICT (id) DO UPDATE SET
                    full_name = excluded.full_name, display_name = excluded.display_name
                """,
                (profile_id, full_name, display_name),
            )
        return Profile(id=profile_id, full_name=full_name, display_name=display_name)

    async def add_channel(self, channel_id: str, name: str) -> Channel:
        async with self._transaction("add_channel") as conn:
            await conn.execute(
                "INSERT INTO channels (id, name) VALUES (?, ?) "
                "ON CONFLICT (id) DO UPDATE SET name = excluded.name",
                (channel_id, name),
            )
        return Channel(id=channel_id, name=name)

    async def add_conversation(self, conversation_id: str, participant_ids: list[str]) -> None:
        async with self._transaction("add_conversation") as conn:
            await conn.executemany(
                "INSERT OR IGNORE INTO conversation_participants (conversation_id, user_id) "
                "VALUES (?, ?)",
                [(conversation_id, user_id) for user_id in participant_ids],
            )

    async def insert_message(
        self,
        author_id: str,
        content: str,
        *,
        channel_id: str | None = None,
        conversation_id: str | None = None,
        created_at: datetime | None = None,
        parent_id: str | None = None,
        message_id: str | None = None,
    ) -> Message:
        """Insert a message row and return it hydrated."""
        ContextRef.for_ids(channel_id, conversation_id)
        self._require_conn("insert_message")
        message_id = message_id or str(uuid.uuid4())
        try:
            async with self._transaction("insert_message") as conn:
                await conn.execute(
                    """
                    INSERT INTO messages (
                        id, user_id, content, created_at, channel_id, conversation_id, parent_id
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        message_id,
                        author_id,
                        content,
                        _to_db_ts(created_at or datetime.now(timezone.utc)),
                        channel_id,
                        conversation_id,
                        parent_id,
                    ),
                )
        except Exception as e:
            raise StorageIOError("insert_message", "messages", e) from e

        message = await self.get_message(message_id)
        if message is None:
            raise MessageNotFoundError(message_id)
        return message

    async def add_attachment(
        self,
        message_id: str,
        file_name: str,
        mime_type: str,
        *,
        caption: str | None = None,
        description: str | None = None,
        display_description: str | None = None,
        attachment_id: str | None = None,
    ) -> Attachment:
        attachment = Attachment(
            id=attachment_id or str(uuid.uuid4()),
            message_id=message_id,
            file_name=file_name,
            mime_type=mime_type,
            caption=caption,
            description=description,
            display_description=display_description,
        )
        async with self._transaction("add_attachment") as conn:
            await conn.execute(
                """
                INSERT INTO attachments (
                    id, message_id, file_name, mime_type, caption, description,
                    display_description
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    attachment.id,
                    attachment.message_id,
                    attachment.file_name,
                    attachment.mime_type,
                    attachment.caption,
                    attachment.description,
                    attachment.display_description,
                ),
            )
        return attachment

    async def delete_message(self, message_id: str) -> bool:
        async with self._transaction("delete_message") as conn:
            cursor = await conn.execute("DELETE FROM messages WHERE id = ?", (message_id,))
        return cursor.rowcount > 0
