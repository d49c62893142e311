"""SQLModel table for bookmark submissions awaiting delivery."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from datetime_utils import now_unix


STATUS_PENDING = "pending"
STATUS_FAILED = "failed"


class QueueItem(SQLModel, table=True):
    __tablename__ = "queue_items"
    __table_args__ = (
        Index("idx_queue_items_due", "status", "next_attempt_at"),
        {"sqlite_autoincrement": True},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    payload_json: str
    status: str = Field(default=STATUS_PENDING)
    attempt_count: int = Field(default=0)
    next_attempt_at: int = Field(default_factory=now_unix)
    last_error: Optional[str] = None
    created_at: int = Field(default_factory=now_unix)
    updated_at: int = Field(default_factory=now_unix)


__all__ = ["QueueItem", "STATUS_PENDING", "STATUS_FAILED"]
