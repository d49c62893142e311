
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Optional


UTC = timezone.utc


def now_unix() -> int:
    """Current wall-clock time in whole epoch seconds."""

    return int(time.time())


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def from_unix(seconds: Optional[int]) -> Optional[datetime]:
    if seconds is None:
        return None
    return datetime.fromtimestamp(int(seconds), UTC)


def to_rfc3339_utc(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime to RFC3339 in UTC."""

    if dt is None:
        return None
    value = ensure_utc(dt)
    if value is None:
        return None
    return value.replace(microsecond=0).isoformat().replace("+00:00", "Z")


def format_unix(seconds: Optional[int]) -> str:
    value = to_rfc3339_utc(from_unix(seconds))
    return value or "-"


__all__ = [
    "UTC",
    "ensure_utc",
    "format_unix",
    "from_unix",
    "now_unix",
    "to_rfc3339_utc",
]
