import asyncio

import pytest

from helpers.bookmark_input import SubmissionValidationError
from models.bookmark import BookmarkSubmission, SubmitIntent
from services.credentials import MemoryCredentialStore, MissingCredentialError
from services.notifications import STATS_UPDATED, QueueNotifier
from services.pinboard_errors import ApiError, NetworkError, RateLimitedError
from services.submission_queue import SubmissionQueue
from services.submission_service import SubmissionService, SubmitStatus


class FakeClient:
    def __init__(self, error=None):
        self.error = error
        self.sent = []

    async def submit(self, credential, submission):
        self.sent.append(submission)
        if self.error is not None:
            raise self.error


def _submission(url="example.com/page", tags=("Tech", "tech", "rust")) -> BookmarkSubmission:
    return BookmarkSubmission(
        url=url,
        title=" Example ",
        notes="",
        tags=tags,
        private=False,
        read_later=False,
        intent=SubmitIntent.CREATE,
    )


@pytest.fixture()
def queue(session_factory, clock):
    return SubmissionQueue(session_factory, clock=clock)


def _service(client, queue, credential="alice:T", notifier=None):
    return SubmissionService(client, queue, MemoryCredentialStore(credential), notifier)


def test_success_sends_cleaned_submission(queue):
    client = FakeClient()
    result = asyncio.run(_service(client, queue).submit(_submission()))

    assert result.status is SubmitStatus.SENT
    assert result.message == "Saved to Pinboard"
    assert result.queued is False
    assert client.sent[0].url == "https://example.com/page"
    assert client.sent[0].tags == ("Tech", "rust")
    assert queue.stats().pending == 0


def test_retryable_failure_is_queued_with_default_delay(queue, clock):
    notifier = QueueNotifier()
    stats_events = []
    notifier.subscribe(STATS_UPDATED, stats_events.append)
    client = FakeClient(NetworkError("connection reset"))

    result = asyncio.run(_service(client, queue, notifier=notifier).submit(_submission()))

    assert result.status is SubmitStatus.QUEUED
    assert result.queued is True
    assert result.message.startswith("Pinboard unavailable right now. Queued for retry:")
    entry = queue.get(result.entry_id)
    assert entry.submission.url == "https://example.com/page"
    assert entry.attempt_count == 0
    assert entry.next_attempt_at == clock.now + 15
    assert "connection reset" in entry.last_error
    assert stats_events and stats_events[-1].pending == 1


def test_rate_limited_submission_honours_hint(queue, clock):
    client = FakeClient(RateLimitedError(300))
    result = asyncio.run(_service(client, queue).submit(_submission()))

    assert result.status is SubmitStatus.QUEUED
    assert queue.get(result.entry_id).next_attempt_at == clock.now + 300


def test_terminal_failure_is_rejected_and_not_persisted(queue):
    client = FakeClient(ApiError("item already exists", retryable=False))
    result = asyncio.run(_service(client, queue).submit(_submission()))

    assert result.status is SubmitStatus.REJECTED
    assert result.message.startswith("Pinboard rejected bookmark:")
    assert "item already exists" in result.message
    assert result.entry_id is None
    assert queue.list(10) == []


def test_invalid_url_fails_before_sending(queue):
    client = FakeClient()
    with pytest.raises(SubmissionValidationError):
        asyncio.run(_service(client, queue).submit(_submission(url="   ")))
    assert client.sent == []


def test_missing_credential_fails_before_sending(queue):
    client = FakeClient()
    with pytest.raises(MissingCredentialError):
        asyncio.run(_service(client, queue, credential=None).submit(_submission()))
    assert client.sent == []
    assert queue.list(10) == []


def test_result_to_dict(queue):
    result = asyncio.run(_service(FakeClient(NetworkError("down")), queue).submit(_submission()))
    data = result.to_dict()
    assert data["status"] == "queued"
    assert data["queued"] is True
    assert data["entryId"] == result.entry_id
