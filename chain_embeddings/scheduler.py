"""
Durable, debounced scheduling of chain processing.

Every new message upserts one task per (author, channel-or-conversation).
The task's due time moves forward with each message, so a burst of
messages is processed once, after the author goes quiet. Tasks live in the
store, not in the event loop, so they survive process restarts.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from .models import ChainTask, Message
from .pipeline import ChainEmbeddingPipeline, ChainOutcome
from .store.base import MessageStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChainTaskScheduler:
    """Debounce queue plus the polling worker that drains it."""

    def __init__(
        self,
        store: MessageStore,
        pipeline: ChainEmbeddingPipeline,
        processing_delay: timedelta = timedelta(seconds=48),
        poll_interval: float = 5.0,
        max_attempts: int = 5,
        retry_base_seconds: float = 30.0,
        batch_size: int = 10,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.pipeline = pipeline
        self.processing_delay = processing_delay
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.retry_base_seconds = retry_base_seconds
        self.batch_size = batch_size
        self.clock = clock

        self._running = False
        self._task: asyncio.Task | None = None

    async def schedule(self, message: Message) -> ChainTask:
        """Create or push back the task for the message's author and context."""
        due_at = self.clock() + self.processing_delay
        task = await self.store.upsert_chain_task(
            message.author_id, message.context_ref, message.id, due_at
        )
        logger.debug(
            f"Scheduled chain task for {message.author_id} in {task.context.key} "
            f"(revision {task.revision}, due {due_at.isoformat()})"
        )
        return task

    def retry_delay(self, attempts: int) -> timedelta:
        """Exponential backoff after ``attempts`` failed runs."""
        return timedelta(seconds=self.retry_base_seconds * (2 ** max(attempts - 1, 0)))

    async def run_due_tasks(self, now: datetime | None = None) -> dict[ChainOutcome, int]:
        """Claim and run every due task once. Returns outcome counts."""
        now = now or self.clock()
        counts: dict[ChainOutcome, int] = {}
        tasks = await self.store.claim_due_tasks(now, limit=self.batch_size)
        for task in tasks:
            try:
                outcome = await self.pipeline.process_message(task.message_id)
                counts[outcome] = counts.get(outcome, 0) + 1
                await self._settle(task, outcome, now)
            except Exception as e:
                logger.error(
                    f"Settling chain task for {task.author_id} in {task.context.key} "
                    f"failed: {e}"
                )
                await self._release(task)
        return counts

    async def _release(self, task: ChainTask) -> None:
        """Put a claimed task back in the queue so the next poll retries it."""
        try:
            await self.store.release_chain_task(task)
        except Exception as e:
            logger.error(
                f"Could not release chain task for {task.author_id} in "
                f"{task.context.key}, it stays running until recovery: {e}"
            )

    async def _settle(self, task: ChainTask, outcome: ChainOutcome, now: datetime) -> None:
        if not outcome.retryable:
            if not await self.store.complete_chain_task(task):
                logger.debug(
                    f"Chain task for {task.author_id} in {task.context.key} was rescheduled "
                    "while running, keeping the newer revision"
                )
            return

        attempts = task.attempts + 1
        error = f"pipeline outcome: {outcome.value}"
        if attempts >= self.max_attempts:
            logger.error(
                f"Chain task for {task.author_id} in {task.context.key} failed "
                f"{attempts} time(s), marking dead"
            )
            await self.store.fail_chain_task(task, error, retry_at=None)
            return

        retry_at = now + self.retry_delay(attempts)
        logger.warning(
            f"Chain task for {task.author_id} in {task.context.key} failed "
            f"(attempt {attempts}/{self.max_attempts}), retrying at {retry_at.isoformat()}"
        )
        await self.store.fail_chain_task(task, error, retry_at=retry_at)

    async def recover(self) -> int:
        """Return tasks stranded in ``running`` by a crash to the queue."""
        count = await self.store.requeue_running_tasks()
        if count:
            logger.info(f"Recovered {count} interrupted chain task(s)")
        return count

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        await self.recover()
        self._task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _poll_loop(self) -> None:
        while self._running:
            try:
                await self.run_due_tasks()
                await asyncio.sleep(self.poll_interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Chain task loop error: {e}")
                await asyncio.sleep(self.poll_interval)
