"""Process-facing operations for whatever front end drives the app."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Iterable, List, Optional

from core.logging_utils import get_logger
from core.settings import QUEUE, WORKER
from helpers.bookmark_input import (
    SubmissionValidationError,
    merge_tags,
    normalize_url,
    prepare_submission,
)
from models.bookmark import DuplicateCheckResult, SubmitIntent, TagSuggestions
from services.credentials import (
    CredentialProvider,
    FileCredentialStore,
    require_credential,
    validate_credential,
)
from services.duplicates import check_duplicate_for_url
from services.notifications import QueueNotifier
from services.pinboard_client import PinboardClient
from services.pinboard_errors import PinboardError
from services.queue_worker import QueueWorker
from services.submission_queue import QueueEntry, QueueStats, SubmissionQueue
from services.submission_service import SubmissionService, SubmitResult


logger = get_logger("commands")


@dataclass(frozen=True)
class SessionInfo:
    credential_configured: bool
    queue_stats: QueueStats


@dataclass(frozen=True)
class QueueRetryResult:
    sent: int
    remaining: int


class AppCommands:
    def __init__(
        self,
        client: Optional[PinboardClient] = None,
        queue: Optional[SubmissionQueue] = None,
        credentials: Optional[CredentialProvider] = None,
        notifier: Optional[QueueNotifier] = None,
        *,
        worker_batch_size: int = WORKER.batch_size,
        worker_tick_interval: float = WORKER.tick_interval_sec,
    ) -> None:
        self.client = client or PinboardClient()
        self.queue = queue or SubmissionQueue()
        self.credentials = credentials or FileCredentialStore()
        self.notifier = notifier or QueueNotifier()
        self.submissions = SubmissionService(self.client, self.queue, self.credentials, self.notifier)
        self.worker = QueueWorker(
            self.client,
            self.queue,
            self.credentials,
            self.notifier,
            tick_interval=worker_tick_interval,
            batch_size=worker_batch_size,
        )

    async def aclose(self) -> None:
        await self.worker.stop()
        await self.client.aclose()

    # ------------------------------------------------------------------
    # Session & credential
    async def init_session(self) -> SessionInfo:
        configured = self.credentials.get() is not None
        stats = await asyncio.to_thread(self.queue.stats)
        return SessionInfo(credential_configured=configured, queue_stats=stats)

    def save_credential(self, value: str) -> None:
        self.credentials.set(validate_credential(value))

    def clear_credential(self) -> None:
        self.credentials.clear()

    # ------------------------------------------------------------------
    # Bookmarks
    async def submit_bookmark(
        self,
        url: str,
        *,
        title: str = "",
        notes: str = "",
        tags: Iterable[str] = (),
        private: bool = False,
        read_later: bool = False,
        intent: SubmitIntent | str = SubmitIntent.CREATE,
        merge_existing_tags: bool = False,
    ) -> SubmitResult:
        submission = prepare_submission(
            url,
            title=title,
            notes=notes,
            tags=tags,
            private=private,
            read_later=read_later,
            intent=intent,
        )
        if merge_existing_tags:
            submission = await self._with_existing_tags(submission)
        return await self.submissions.submit(submission)

    async def _with_existing_tags(self, submission):
        credential = require_credential(self.credentials)
        try:
            existing = await self.client.existing_record_for_url(credential, submission.url)
        except PinboardError as exc:
            logger.warning("Could not load existing tags for %s: %s", submission.url, exc.message_for_user())
            return submission
        if existing is None:
            return submission
        merged = merge_tags(existing.tags, submission.tags)
        return prepare_submission(
            submission.url,
            title=submission.title or existing.title,
            notes=submission.notes or existing.notes,
            tags=merged,
            private=submission.private,
            read_later=submission.read_later,
            intent=SubmitIntent.UPDATE,
        )

    async def check_duplicate(self, url: str) -> DuplicateCheckResult:
        return await check_duplicate_for_url(self.client, self.credentials, url)

    async def fetch_tag_suggestions(self, url: str) -> TagSuggestions:
        credential = require_credential(self.credentials)
        normalized = normalize_url(url)
        if not normalized:
            raise SubmissionValidationError("Invalid URL")
        return await self.client.tag_suggestions_for_url(credential, normalized)

    async def fetch_user_tags(self) -> List[str]:
        credential = require_credential(self.credentials)
        return await self.client.known_tags(credential)

    # ------------------------------------------------------------------
    # Queue
    async def queue_list(self, limit: int = QUEUE.list_limit) -> List[QueueEntry]:
        return await asyncio.to_thread(self.queue.list, limit)

    async def queue_failed(self, limit: int = QUEUE.list_limit) -> List[QueueEntry]:
        return await asyncio.to_thread(self.queue.failed_items, limit)

    async def queue_retry_now(self) -> QueueRetryResult:
        require_credential(self.credentials)
        forced = await asyncio.to_thread(self.queue.make_due_now)
        logger.info("Manual retry requested (%s item(s) moved forward)", forced)
        sent = await self.worker.process_due_items(WORKER.manual_batch_size)
        stats = await asyncio.to_thread(self.queue.stats)
        return QueueRetryResult(sent=sent, remaining=stats.pending)


__all__ = ["AppCommands", "QueueRetryResult", "SessionInfo"]
