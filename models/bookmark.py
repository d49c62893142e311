"""Bookmark payloads exchanged with Pinboard and stored in the retry queue."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class SubmitIntent(str, Enum):
    CREATE = "create"
    UPDATE = "update"

    @classmethod
    def parse(cls, value: Any) -> "SubmitIntent":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for intent in cls:
            if intent.value == text:
                return intent
        raise ValueError(f"Unsupported intent: {value!r}")


@dataclass(frozen=True)
class BookmarkSubmission:
    """A bookmark the user wants saved; immutable once built."""

    url: str
    title: str = ""
    notes: str = ""
    tags: Tuple[str, ...] = ()
    private: bool = False
    read_later: bool = False
    intent: SubmitIntent = SubmitIntent.CREATE

    @property
    def replace(self) -> bool:
        """Whether Pinboard may overwrite an existing bookmark for this URL."""

        return self.intent is SubmitIntent.UPDATE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "notes": self.notes,
            "tags": list(self.tags),
            "private": self.private,
            "readLater": self.read_later,
            "intent": self.intent.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookmarkSubmission":
        tags = data.get("tags") or []
        if isinstance(tags, str):
            tags = tags.split()
        return cls(
            url=str(data.get("url") or ""),
            title=str(data.get("title") or ""),
            notes=str(data.get("notes") or ""),
            tags=tuple(str(tag) for tag in tags),
            private=bool(data.get("private", False)),
            read_later=bool(data.get("readLater", data.get("read_later", False))),
            intent=SubmitIntent.parse(data.get("intent") or SubmitIntent.CREATE.value),
        )

    @classmethod
    def placeholder(cls) -> "BookmarkSubmission":
        """Stand-in for a stored payload that could not be decoded."""

        return cls(url="", intent=SubmitIntent.UPDATE)


@dataclass(frozen=True)
class ExistingBookmark:
    url: str
    title: str = ""
    notes: str = ""
    tags: Tuple[str, ...] = ()
    private: bool = False
    read_later: bool = False
    time: str = ""

    @classmethod
    def from_post(cls, post: Dict[str, Any], fallback_url: str) -> "ExistingBookmark":
        raw_tags = post.get("tags") or post.get("tag") or ""
        if isinstance(raw_tags, list):
            tags = tuple(str(tag) for tag in raw_tags)
        else:
            tags = tuple(str(raw_tags).split())
        return cls(
            url=str(post.get("href") or post.get("url") or fallback_url),
            title=str(post.get("description") or ""),
            notes=str(post.get("extended") or ""),
            tags=tags,
            private=post.get("shared") == "no",
            read_later=post.get("toread") == "yes",
            time=str(post.get("time") or ""),
        )


@dataclass(frozen=True)
class DuplicateCheckResult:
    exists: bool
    bookmark: Optional[ExistingBookmark] = None


@dataclass(frozen=True)
class TagSuggestions:
    popular: List[str] = field(default_factory=list)
    recommended: List[str] = field(default_factory=list)

    def combined(self) -> List[str]:
        seen = set()
        merged: List[str] = []
        for tag in [*self.recommended, *self.popular]:
            key = tag.lower()
            if key not in seen:
                seen.add(key)
                merged.append(tag)
        return merged


__all__ = [
    "BookmarkSubmission",
    "DuplicateCheckResult",
    "ExistingBookmark",
    "SubmitIntent",
    "TagSuggestions",
]
