from __future__ import annotations

from typing import Optional

from core.settings import QUEUE


def backoff_seconds(attempt: int) -> int:
    if attempt <= 1:
        return 15
    if attempt == 2:
        return 45
    if attempt == 3:
        return 180
    if attempt == 4:
        return 900
    return 3600


def retry_delay_seconds(attempt: int, retry_after: Optional[int] = None) -> int:
    """Delay before the next attempt; a server hint may only lengthen it."""

    base = max(backoff_seconds(attempt), QUEUE.min_delay_sec)
    return max(base, retry_after or 0)


__all__ = ["backoff_seconds", "retry_delay_seconds"]
