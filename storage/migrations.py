"""Ad-hoc database migrations for Pinmark."""

from __future__ import annotations

from sqlalchemy import text


def _table_exists(conn, table: str) -> bool:
    result = conn.execute(
        text("SELECT name FROM sqlite_master WHERE type='table' AND name=:name"),
        {"name": table},
    )
    return result.first() is not None


def _column_exists(conn, table: str, column: str) -> bool:
    result = conn.execute(text(f"PRAGMA table_info('{table}')"))
    return any(row[1] == column for row in result)


def ensure_queue_table(conn) -> None:
    conn.execute(
        text(
            """
            CREATE TABLE IF NOT EXISTS queue_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                payload_json TEXT NOT NULL,
                status TEXT NOT NULL,
                attempt_count INTEGER NOT NULL DEFAULT 0,
                next_attempt_at INTEGER NOT NULL,
                last_error TEXT,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL
            )
            """
        )
    )


def ensure_queue_columns(conn) -> None:
    if not _table_exists(conn, "queue_items"):
        return
    if not _column_exists(conn, "queue_items", "updated_at"):
        conn.execute(text("ALTER TABLE queue_items ADD COLUMN updated_at INTEGER NOT NULL DEFAULT 0"))
        conn.execute(text("UPDATE queue_items SET updated_at = created_at WHERE updated_at = 0"))


def ensure_queue_indexes(conn) -> None:
    conn.execute(
        text(
            """
            CREATE INDEX IF NOT EXISTS idx_queue_items_due
            ON queue_items (status, next_attempt_at)
            """
        )
    )


def run_all(engine) -> None:
    with engine.begin() as conn:
        # SQLModel creates the table, but legacy DBs may predate some columns
        ensure_queue_table(conn)
        ensure_queue_columns(conn)
        ensure_queue_indexes(conn)


__all__ = ["run_all"]
