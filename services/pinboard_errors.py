"""Failure taxonomy for Pinboard API calls.

Every failed call is turned into exactly one :class:`PinboardError`.  The
client never retries on its own; callers read ``is_retryable()`` and
``retry_after_secs()`` to decide whether the submission goes to the queue.
"""

from __future__ import annotations

from typing import Optional

from core.settings import PINBOARD


RETRYABLE_STATUS = {408, 425, 429}

RATE_LIMIT_MARKERS = ("rate", "too many requests")
TERMINAL_MARKERS = (
    "item already exists",
    "invalid",
    "missing",
    "not found",
    "forbidden",
    "unauthorized",
    "auth",
)
TRANSIENT_MARKERS = ("something went wrong", "temporar", "timeout", "unavailable")


def truncate_message(text: str, limit: Optional[int] = None) -> str:
    limit = PINBOARD.error_message_limit if limit is None else limit
    collapsed = " ".join(str(text or "").split())
    if len(collapsed) <= limit:
        return collapsed
    return collapsed[: max(limit - 3, 0)].rstrip() + "..."


class PinboardError(Exception):
    kind = "pinboard"

    def __init__(
        self,
        message: str,
        *,
        retryable: bool,
        retry_after: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.retryable = retryable
        self.retry_after = retry_after

    def is_retryable(self) -> bool:
        return self.retryable

    def retry_after_secs(self) -> Optional[int]:
        return self.retry_after

    def message_for_user(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, "
            f"retryable={self.retryable}, retry_after={self.retry_after})"
        )


class NetworkError(PinboardError):
    kind = "network"

    def __init__(self, detail: str) -> None:
        super().__init__(truncate_message(f"network error: {detail}"), retryable=True)


class RateLimitedError(PinboardError):
    kind = "rate_limited"

    def __init__(self, retry_after: Optional[int] = None, detail: str = "") -> None:
        wait = retry_after if retry_after and retry_after > 0 else PINBOARD.default_rate_limit_retry_sec
        message = f"rate limited by Pinboard, retry in {wait}s"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(truncate_message(message), retryable=True, retry_after=wait)


class HttpStatusError(PinboardError):
    kind = "http"

    def __init__(self, status: int, reason: str = "") -> None:
        retryable = status in RETRYABLE_STATUS or status >= 500
        message = f"Pinboard returned HTTP {status}"
        if reason:
            message = f"{message} {reason}"
        super().__init__(truncate_message(message), retryable=retryable)
        self.status = status


class InvalidResponseError(PinboardError):
    kind = "invalid_response"

    def __init__(self, detail: str = "") -> None:
        message = "invalid API response"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(truncate_message(message), retryable=True)


class ApiError(PinboardError):
    kind = "api"

    def __init__(self, code: str, *, retryable: bool) -> None:
        super().__init__(truncate_message(f"Pinboard API error: {code}"), retryable=retryable)
        self.code = code


def is_done(code: Optional[str]) -> bool:
    return (code or "").strip().lower() == "done"


def classify_result_code(code: str) -> PinboardError:
    """Map a non-``done`` result code to the matching error."""

    text = (code or "").strip()
    lowered = text.lower()
    if any(marker in lowered for marker in RATE_LIMIT_MARKERS):
        return RateLimitedError(detail=text)
    if any(marker in lowered for marker in TERMINAL_MARKERS):
        transient = any(marker in lowered for marker in TRANSIENT_MARKERS)
        return ApiError(text, retryable=transient)
    return ApiError(text, retryable=True)


def parse_retry_after(value: Optional[str]) -> Optional[int]:
    """Only positive integer second counts are honoured."""

    if value is None:
        return None
    try:
        seconds = int(str(value).strip())
    except ValueError:
        return None
    return seconds if seconds > 0 else None


def classify_status(status: int, retry_after_header: Optional[str] = None, reason: str = "") -> PinboardError:
    if status == 429:
        return RateLimitedError(parse_retry_after(retry_after_header), detail="HTTP 429")
    return HttpStatusError(status, reason)


__all__ = [
    "ApiError",
    "HttpStatusError",
    "InvalidResponseError",
    "NetworkError",
    "PinboardError",
    "RateLimitedError",
    "classify_result_code",
    "classify_status",
    "is_done",
    "parse_retry_after",
    "truncate_message",
]
