"""ORM models and value objects exposed by the Pinmark application."""
from .bookmark import (
    BookmarkSubmission,
    DuplicateCheckResult,
    ExistingBookmark,
    SubmitIntent,
    TagSuggestions,
)
from .queue_item import QueueItem

__all__ = [
    "BookmarkSubmission",
    "DuplicateCheckResult",
    "ExistingBookmark",
    "QueueItem",
    "SubmitIntent",
    "TagSuggestions",
]
