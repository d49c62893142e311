from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Callable, List, Optional

from sqlalchemy import and_, func, or_
from sqlmodel import Session, select

from core.logging_utils import get_logger
from core.settings import QUEUE
from datetime_utils import now_unix
from models.bookmark import BookmarkSubmission
from models.queue_item import QueueItem, STATUS_FAILED, STATUS_PENDING
from services.backoff import retry_delay_seconds
from storage.db import get_session


logger = get_logger("queue")


@dataclass(frozen=True)
class QueueEntry:
    id: int
    submission: BookmarkSubmission
    attempt_count: int
    next_attempt_at: int
    last_error: Optional[str]
    status: str
    created_at: int
    updated_at: int

    @property
    def is_failed(self) -> bool:
        return self.status == STATUS_FAILED


@dataclass(frozen=True)
class QueueStats:
    pending: int
    failed: int

    def to_dict(self) -> dict:
        return {"pending": self.pending, "failed": self.failed}


def _decode_payload(row: QueueItem) -> BookmarkSubmission:
    try:
        return BookmarkSubmission.from_dict(json.loads(row.payload_json))
    except (json.JSONDecodeError, TypeError, ValueError, AttributeError) as exc:
        logger.warning("Queue item %s has an unreadable payload: %s", row.id, exc)
        return BookmarkSubmission.placeholder()


def _to_entry(row: QueueItem) -> QueueEntry:
    return QueueEntry(
        id=int(row.id),
        submission=_decode_payload(row),
        attempt_count=row.attempt_count,
        next_attempt_at=row.next_attempt_at,
        last_error=row.last_error,
        status=row.status,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SubmissionQueue:
    """Durable retry queue for bookmark submissions.

    Every method opens its own session and commits before returning, so the
    submit path and the background worker can call in concurrently and rely on
    SQLite's per-statement atomicity instead of an in-process lock.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = get_session,
        *,
        clock: Callable[[], int] = now_unix,
        max_attempts: int = QUEUE.max_attempts,
        min_delay: int = QUEUE.min_delay_sec,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock
        self.max_attempts = max_attempts
        self.min_delay = min_delay

    def enqueue(self, submission: BookmarkSubmission, error: str, initial_delay: int) -> int:
        now = int(self._clock())
        record = QueueItem(
            payload_json=json.dumps(submission.to_dict(), ensure_ascii=False),
            status=STATUS_PENDING,
            attempt_count=0,
            next_attempt_at=now + max(int(initial_delay), self.min_delay),
            last_error=error,
            created_at=now,
            updated_at=now,
        )
        with self._session_factory() as session:
            session.add(record)
            session.commit()
            session.refresh(record)
            entry_id = int(record.id)
        logger.info(
            "Queued %s as #%s (next attempt in %ss): %s",
            submission.url,
            entry_id,
            record.next_attempt_at - now,
            error,
        )
        return entry_id

    def due_items(self, limit: int = 10) -> List[QueueEntry]:
        now = int(self._clock())
        with self._session_factory() as session:
            stmt = (
                select(QueueItem)
                .where(QueueItem.status == STATUS_PENDING)
                .where(QueueItem.next_attempt_at <= now)
                .order_by(QueueItem.next_attempt_at.asc(), QueueItem.id.asc())
                .limit(limit)
            )
            rows = list(session.exec(stmt))
        return [_to_entry(row) for row in rows]

    def list(self, limit: int = QUEUE.list_limit) -> List[QueueEntry]:
        with self._session_factory() as session:
            stmt = (
                select(QueueItem)
                .where(QueueItem.status == STATUS_PENDING)
                .order_by(QueueItem.created_at.asc(), QueueItem.id.asc())
                .limit(limit)
            )
            rows = list(session.exec(stmt))
        return [_to_entry(row) for row in rows]

    def failed_items(self, limit: int = QUEUE.list_limit) -> List[QueueEntry]:
        with self._session_factory() as session:
            stmt = (
                select(QueueItem)
                .where(QueueItem.status == STATUS_FAILED)
                .order_by(QueueItem.updated_at.desc(), QueueItem.id.desc())
                .limit(limit)
            )
            rows = list(session.exec(stmt))
        return [_to_entry(row) for row in rows]

    def get(self, entry_id: int) -> Optional[QueueEntry]:
        with self._session_factory() as session:
            row = session.get(QueueItem, entry_id)
            return _to_entry(row) if row else None

    def mark_sent(self, entry_id: int) -> None:
        with self._session_factory() as session:
            record = session.get(QueueItem, entry_id)
            if record:
                session.delete(record)
                session.commit()
        logger.info("Queue item #%s delivered", entry_id)

    def mark_retry(
        self,
        entry_id: int,
        attempts: int,
        error: str,
        retry_after: Optional[int] = None,
    ) -> None:
        now = int(self._clock())
        next_count = int(attempts) + 1
        with self._session_factory() as session:
            record = session.get(QueueItem, entry_id)
            if not record:
                return
            record.attempt_count = next_count
            record.last_error = error
            record.updated_at = now
            if next_count >= self.max_attempts:
                record.status = STATUS_FAILED
                logger.warning(
                    "Queue item #%s failed permanently after %s attempts: %s",
                    entry_id,
                    next_count,
                    error,
                )
            else:
                record.next_attempt_at = now + retry_delay_seconds(next_count, retry_after)
                logger.info(
                    "Queue item #%s attempt %s failed, retrying in %ss: %s",
                    entry_id,
                    next_count,
                    record.next_attempt_at - now,
                    error,
                )
            session.add(record)
            session.commit()

    def make_due_now(self) -> int:
        """Pull every pending entry's next attempt forward to now."""

        now = int(self._clock())
        with self._session_factory() as session:
            stmt = (
                select(QueueItem)
                .where(QueueItem.status == STATUS_PENDING)
                .where(QueueItem.next_attempt_at > now)
            )
            rows = list(session.exec(stmt))
            for record in rows:
                record.next_attempt_at = now
                record.updated_at = now
                session.add(record)
            session.commit()
        return len(rows)

    def stats(self) -> QueueStats:
        with self._session_factory() as session:
            pending = session.exec(
                select(func.count()).select_from(QueueItem).where(QueueItem.status == STATUS_PENDING)
            ).one()
            failed = session.exec(
                select(func.count())
                .select_from(QueueItem)
                .where(
                    or_(
                        QueueItem.status == STATUS_FAILED,
                        and_(QueueItem.status == STATUS_PENDING, QueueItem.attempt_count > 0),
                    )
                )
            ).one()
        return QueueStats(pending=int(pending), failed=int(failed))


__all__ = ["SubmissionQueue", "QueueEntry", "QueueStats"]
