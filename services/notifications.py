from __future__ import annotations

from typing import Any, Callable, Dict, Set

from core.logging_utils import get_logger


ITEM_SENT = "queue:item_sent"
ITEM_FAILED = "queue:item_failed"
STATS_UPDATED = "queue:stats_updated"

logger = get_logger("notifications")


class QueueNotifier:
    """Fire-and-forget fan-out of queue events to UI listeners."""

    def __init__(self) -> None:
        self._listeners: Dict[str, Set[Callable[[Any], Any]]] = {
            ITEM_SENT: set(),
            ITEM_FAILED: set(),
            STATS_UPDATED: set(),
        }

    def subscribe(self, event: str, callback: Callable[[Any], Any]) -> None:
        if event not in self._listeners:
            raise ValueError(f"Unsupported event: {event}")
        self._listeners[event].add(callback)

    def unsubscribe(self, event: str, callback: Callable[[Any], Any]) -> None:
        if event not in self._listeners:
            return
        self._listeners[event].discard(callback)

    def emit(self, event: str, payload: Any) -> None:
        listeners = list(self._listeners.get(event, []))
        for listener in listeners:
            try:
                listener(payload)
            except Exception:
                logger.debug("Listener for %s failed", event, exc_info=True)


__all__ = ["QueueNotifier", "ITEM_SENT", "ITEM_FAILED", "STATS_UPDATED"]
