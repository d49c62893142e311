"""Async Pinboard v1 API client.

All outbound calls share one spacing clock, so the service never sees two
requests closer than ``PINBOARD.min_request_interval_sec`` from this process.
"""

from __future__ import annotations

import asyncio
import json
import re
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from core.logging_utils import get_logger
from core.settings import PINBOARD
from models.bookmark import BookmarkSubmission, ExistingBookmark, TagSuggestions
from services.pinboard_errors import (
    InvalidResponseError,
    NetworkError,
    classify_result_code,
    classify_status,
    is_done,
    truncate_message,
)


_CODE_MARKER_RE = re.compile(r'code\s*=\s*"([^"]*)"', re.I)

logger = get_logger("api")


class RequestSpacer:
    """Lock-protected "last call" clock shared by every request.

    A caller reserves the next free slot under the lock and then sleeps
    outside it, so concurrent callers queue up one interval apart.
    """

    def __init__(
        self,
        interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_call: Optional[float] = None

    async def wait(self) -> float:
        async with self._lock:
            now = self._clock()
            slot = now
            if self._last_call is not None:
                slot = max(now, self._last_call + self.interval)
            self._last_call = slot
        delay = slot - now
        if delay > 0:
            await self._sleep(delay)
        return delay


def _extract_tag_list(value: Any, key: str) -> List[str]:
    if isinstance(value, dict):
        found = value.get(key)
        if isinstance(found, list):
            return [str(tag) for tag in found if isinstance(tag, str)]
        for child in value.values():
            if isinstance(child, dict) and isinstance(child.get(key), list):
                return [str(tag) for tag in child[key] if isinstance(tag, str)]
    if isinstance(value, list):
        for item in value:
            if isinstance(item, dict) and isinstance(item.get(key), list):
                return [str(tag) for tag in item[key] if isinstance(tag, str)]
    return []


def _yes_no(flag: bool) -> str:
    return "yes" if flag else "no"


class PinboardClient:
    def __init__(
        self,
        base_url: str = PINBOARD.base_url,
        *,
        timeout: float = PINBOARD.request_timeout_sec,
        min_interval: float = PINBOARD.min_request_interval_sec,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        spacer: Optional[RequestSpacer] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._spacer = spacer or RequestSpacer(min_interval)
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "PinboardClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={"User-Agent": PINBOARD.user_agent},
                follow_redirects=True,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Public API
    async def submit(self, credential: str, submission: BookmarkSubmission) -> None:
        """Send ``posts/add``; raises a classified ``PinboardError`` on failure."""

        payload = await self._get(
            "posts/add",
            credential,
            {
                "url": submission.url,
                "description": submission.title,
                "extended": submission.notes,
                "tags": " ".join(submission.tags),
                "replace": _yes_no(submission.replace),
                "shared": _yes_no(not submission.private),
                "toread": _yes_no(submission.read_later),
            },
        )
        code = None
        if isinstance(payload, dict):
            code = payload.get("result_code") or payload.get("code")
        if not isinstance(code, str) or not code.strip():
            raise InvalidResponseError("missing result code")
        if not is_done(code):
            error = classify_result_code(code)
            logger.warning(
                "posts/add rejected for %s: %s (retryable=%s)",
                submission.url,
                code,
                error.is_retryable(),
            )
            raise error
        logger.info("Saved %s", submission.url)

    async def existing_record_for_url(self, credential: str, url: str) -> Optional[ExistingBookmark]:
        payload = self._check_lookup(await self._get("posts/get", credential, {"url": url}))
        posts = payload.get("posts") if isinstance(payload, dict) else None
        if not isinstance(posts, list) or not posts or not isinstance(posts[0], dict):
            return None
        return ExistingBookmark.from_post(posts[0], url)

    async def tag_suggestions_for_url(self, credential: str, url: str) -> TagSuggestions:
        payload = self._check_lookup(await self._get("posts/suggest", credential, {"url": url}))
        return TagSuggestions(
            popular=_extract_tag_list(payload, "popular"),
            recommended=_extract_tag_list(payload, "recommended"),
        )

    async def known_tags(self, credential: str) -> List[str]:
        """All of the user's tags, most used first."""

        payload = self._check_lookup(await self._get("tags/get", credential, {}))
        if not isinstance(payload, dict):
            return []
        counts: Dict[str, int] = {}
        for tag, count in payload.items():
            try:
                counts[str(tag)] = int(count)
            except (TypeError, ValueError):
                counts[str(tag)] = 0
        return sorted(counts, key=lambda tag: (-counts[tag], tag.lower()))

    # ------------------------------------------------------------------
    # Transport helpers
    @staticmethod
    def _check_lookup(payload: Any) -> Any:
        if isinstance(payload, dict) and isinstance(payload.get("result_code"), str):
            code = payload["result_code"]
            if is_done(code):
                return {}
            raise classify_result_code(code)
        return payload

    async def _get(self, path: str, credential: str, params: Dict[str, str]) -> Any:
        await self._spacer.wait()
        query = {"format": "json", "auth_token": credential, **params}
        logger.debug("GET %s", path)
        try:
            response = await self.client.get(f"/{path}", params=query)
        except httpx.RequestError as exc:
            logger.warning("GET %s failed: %s", path, type(exc).__name__)
            raise NetworkError(self._describe_transport_error(exc)) from exc

        if response.status_code < 200 or response.status_code >= 300:
            error = classify_status(
                response.status_code,
                response.headers.get("Retry-After"),
                response.reason_phrase,
            )
            logger.warning(
                "GET %s returned HTTP %s (retryable=%s, retry_after=%s)",
                path,
                response.status_code,
                error.is_retryable(),
                error.retry_after_secs(),
            )
            raise error

        return self._parse_body(path, response.text)

    @staticmethod
    def _describe_transport_error(exc: httpx.RequestError) -> str:
        # httpx puts the full URL, auth token included, into some messages.
        detail = str(exc).split("?", 1)[0].strip()
        return detail or type(exc).__name__

    @staticmethod
    def _parse_body(path: str, text: str) -> Any:
        try:
            return json.loads(text)
        except (TypeError, ValueError):
            pass
        match = _CODE_MARKER_RE.search(text or "")
        if match:
            logger.debug("GET %s returned a bare code marker: %s", path, match.group(1))
            return {"result_code": match.group(1)}
        logger.warning("GET %s returned an unparseable body", path)
        raise InvalidResponseError(truncate_message(text or "empty body"))


__all__ = ["PinboardClient", "RequestSpacer"]
