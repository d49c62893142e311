"""Normalization of user-entered URLs and tags."""
from __future__ import annotations

import re
from typing import Iterable, List, Optional
from urllib.parse import urlsplit, urlunsplit

from models.bookmark import BookmarkSubmission, SubmitIntent


ALLOWED_SCHEMES = ("http", "https")
_WHITESPACE_RE = re.compile(r"\s")


class SubmissionValidationError(ValueError):
    """Raised for input that can never be sent, no matter how often retried."""


def normalize_url(value: Optional[str]) -> Optional[str]:
    """Return a scheme-qualified URL or ``None`` when ``value`` is not usable.

    Bare hosts get ``https://``; an empty path becomes ``/``.
    """

    trimmed = (value or "").strip()
    if not trimmed:
        return None
    if _WHITESPACE_RE.search(trimmed):
        return None

    lowered = trimmed.lower()
    if not lowered.startswith(("http://", "https://")):
        if "://" in trimmed:
            return None
        trimmed = f"https://{trimmed}"

    try:
        parts = urlsplit(trimmed)
        port = parts.port
    except ValueError:
        return None

    scheme = parts.scheme.lower()
    if scheme not in ALLOWED_SCHEMES or not parts.hostname:
        return None

    host = parts.hostname
    if ":" in host:
        host = f"[{host}]"
    if "@" in parts.netloc:
        userinfo = parts.netloc.rsplit("@", 1)[0]
        netloc = f"{userinfo}@{host}"
    else:
        netloc = host
    if port is not None:
        netloc = f"{netloc}:{port}"

    path = parts.path or "/"
    return urlunsplit((scheme, netloc, path, parts.query, parts.fragment))


def parse_tags(value: Optional[str]) -> List[str]:
    return [tag for tag in (value or "").split() if tag.strip()]


def merge_tags(existing: Iterable[str], incoming: Iterable[str]) -> List[str]:
    """Case-insensitive union that keeps first-seen casing and order."""

    merged: List[str] = []
    seen = set()
    for tag in [*existing, *incoming]:
        key = tag.lower()
        if key in seen:
            continue
        seen.add(key)
        merged.append(tag)
    return merged


def normalize_tags(tags: Iterable[str]) -> List[str]:
    flattened: List[str] = []
    for tag in tags:
        flattened.extend(parse_tags(tag))
    return merge_tags([], flattened)


def prepare_submission(
    url: str,
    *,
    title: str = "",
    notes: str = "",
    tags: Iterable[str] = (),
    private: bool = False,
    read_later: bool = False,
    intent: SubmitIntent | str = SubmitIntent.CREATE,
) -> BookmarkSubmission:
    normalized = normalize_url(url)
    if not normalized:
        raise SubmissionValidationError("Invalid URL")
    try:
        parsed_intent = SubmitIntent.parse(intent)
    except ValueError as exc:
        raise SubmissionValidationError(str(exc)) from exc
    return BookmarkSubmission(
        url=normalized,
        title=(title or "").strip(),
        notes=(notes or "").strip(),
        tags=tuple(normalize_tags(tags)),
        private=bool(private),
        read_later=bool(read_later),
        intent=parsed_intent,
    )


def clean_submission(submission: BookmarkSubmission) -> BookmarkSubmission:
    """Re-validate a submission built elsewhere before it is sent or queued."""

    return prepare_submission(
        submission.url,
        title=submission.title,
        notes=submission.notes,
        tags=submission.tags,
        private=submission.private,
        read_later=submission.read_later,
        intent=submission.intent,
    )


__all__ = [
    "SubmissionValidationError",
    "clean_submission",
    "merge_tags",
    "normalize_tags",
    "normalize_url",
    "parse_tags",
    "prepare_submission",
]
