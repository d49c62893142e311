"""Background replay of queued submissions."""

from __future__ import annotations

import asyncio
from typing import Optional

from core.logging_utils import get_logger
from core.settings import WORKER
from services.credentials import CredentialProvider, MissingCredentialError, require_credential
from services.notifications import ITEM_FAILED, ITEM_SENT, STATS_UPDATED, QueueNotifier
from services.pinboard_client import PinboardClient
from services.pinboard_errors import PinboardError, RateLimitedError
from services.submission_queue import SubmissionQueue


logger = get_logger("worker")


def clamp_batch_size(limit: int) -> int:
    return max(WORKER.min_batch_size, min(WORKER.max_batch_size, int(limit)))


class QueueWorker:
    def __init__(
        self,
        client: PinboardClient,
        queue: SubmissionQueue,
        credentials: CredentialProvider,
        notifier: Optional[QueueNotifier] = None,
        *,
        tick_interval: float = WORKER.tick_interval_sec,
        batch_size: int = WORKER.batch_size,
    ) -> None:
        self.client = client
        self.queue = queue
        self.credentials = credentials
        self.notifier = notifier or QueueNotifier()
        self.tick_interval = tick_interval
        self.batch_size = clamp_batch_size(batch_size)
        self._stop_event: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Draining
    async def process_due_items(self, limit: Optional[int] = None) -> int:
        """Replay up to ``limit`` due entries; returns how many were delivered.

        Raises ``MissingCredentialError`` when no credential is configured.
        """

        credential = require_credential(self.credentials)
        batch = clamp_batch_size(limit or self.batch_size)
        due = await asyncio.to_thread(self.queue.due_items, batch)
        sent = 0

        for entry in due:
            try:
                await self.client.submit(credential, entry.submission)
            except PinboardError as exc:
                await asyncio.to_thread(
                    self.queue.mark_retry,
                    entry.id,
                    entry.attempt_count,
                    exc.message_for_user(),
                    exc.retry_after_secs(),
                )
                self.notifier.emit(ITEM_FAILED, entry.id)
                if isinstance(exc, RateLimitedError):
                    logger.info("Rate limited; deferring the rest of this batch")
                    break
                continue

            await asyncio.to_thread(self.queue.mark_sent, entry.id)
            self.notifier.emit(ITEM_SENT, entry.id)
            sent += 1

        stats = await asyncio.to_thread(self.queue.stats)
        self.notifier.emit(STATS_UPDATED, stats)
        if due:
            logger.info(
                "Processed %s queued item(s): %s sent, %s pending, %s failed",
                len(due),
                sent,
                stats.pending,
                stats.failed,
            )
        return sent

    async def tick(self) -> int:
        """One best-effort pass; errors are logged so the loop keeps running."""

        try:
            return await self.process_due_items()
        except MissingCredentialError:
            logger.debug("Queue tick skipped: Pinboard token is not set")
            return 0
        except Exception:
            logger.exception("Queue tick failed")
            return 0

    # ------------------------------------------------------------------
    # Lifecycle
    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        stop = stop_event or asyncio.Event()
        self._stop_event = stop
        logger.info("Queue worker started (every %ss, batch %s)", self.tick_interval, self.batch_size)
        while not stop.is_set():
            await self.tick()
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.tick_interval)
            except asyncio.TimeoutError:
                pass
        logger.info("Queue worker stopped")

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._stop_event = asyncio.Event()
            self._task = asyncio.create_task(self.run(self._stop_event))
        return self._task

    async def stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()


__all__ = ["QueueWorker", "clamp_batch_size"]
