import pytest

from services.notifications import ITEM_FAILED, ITEM_SENT, STATS_UPDATED, QueueNotifier


def test_emit_reaches_subscribers_of_that_event():
    notifier = QueueNotifier()
    sent, failed = [], []
    notifier.subscribe(ITEM_SENT, sent.append)
    notifier.subscribe(ITEM_FAILED, failed.append)

    notifier.emit(ITEM_SENT, 7)

    assert sent == [7]
    assert failed == []


def test_failing_listener_does_not_block_others():
    notifier = QueueNotifier()
    received = []

    def broken(payload):
        raise RuntimeError("listener bug")

    notifier.subscribe(STATS_UPDATED, broken)
    notifier.subscribe(STATS_UPDATED, received.append)
    notifier.emit(STATS_UPDATED, {"pending": 1})

    assert received == [{"pending": 1}]


def test_unsubscribe_and_unknown_event():
    notifier = QueueNotifier()
    received = []
    notifier.subscribe(ITEM_SENT, received.append)
    notifier.unsubscribe(ITEM_SENT, received.append)
    notifier.emit(ITEM_SENT, 1)
    assert received == []

    with pytest.raises(ValueError):
        notifier.subscribe("queue:unknown", received.append)
    notifier.emit("queue:unknown", 1)
