from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.logging_utils import get_logger
from core.settings import QUEUE
from helpers.bookmark_input import clean_submission
from models.bookmark import BookmarkSubmission
from services.credentials import CredentialProvider, require_credential
from services.notifications import STATS_UPDATED, QueueNotifier
from services.pinboard_client import PinboardClient
from services.pinboard_errors import PinboardError
from services.submission_queue import SubmissionQueue


logger = get_logger("submit")


class SubmitStatus(str, Enum):
    SENT = "sent"
    QUEUED = "queued"
    REJECTED = "rejected"


@dataclass(frozen=True)
class SubmitResult:
    status: SubmitStatus
    message: str
    entry_id: Optional[int] = None

    @property
    def queued(self) -> bool:
        return self.status is SubmitStatus.QUEUED

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "message": self.message,
            "queued": self.queued,
            "entryId": self.entry_id,
        }


class SubmissionService:
    """Immediate send with fallback to the retry queue."""

    def __init__(
        self,
        client: PinboardClient,
        queue: SubmissionQueue,
        credentials: CredentialProvider,
        notifier: Optional[QueueNotifier] = None,
    ) -> None:
        self.client = client
        self.queue = queue
        self.credentials = credentials
        self.notifier = notifier

    async def submit(self, submission: BookmarkSubmission) -> SubmitResult:
        clean = clean_submission(submission)
        credential = require_credential(self.credentials)

        try:
            await self.client.submit(credential, clean)
        except PinboardError as exc:
            reason = exc.message_for_user()
            if not exc.is_retryable():
                logger.warning("Pinboard rejected %s: %s", clean.url, reason)
                return SubmitResult(SubmitStatus.REJECTED, f"Pinboard rejected bookmark: {reason}")

            delay = exc.retry_after_secs() or QUEUE.default_retry_delay_sec
            entry_id = await asyncio.to_thread(self.queue.enqueue, clean, reason, delay)
            if self.notifier is not None:
                self.notifier.emit(STATS_UPDATED, await asyncio.to_thread(self.queue.stats))
            return SubmitResult(
                SubmitStatus.QUEUED,
                f"Pinboard unavailable right now. Queued for retry: {reason}",
                entry_id,
            )

        return SubmitResult(SubmitStatus.SENT, "Saved to Pinboard")


__all__ = ["SubmissionService", "SubmitResult", "SubmitStatus"]
