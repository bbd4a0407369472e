"""SQLite-backed action log store with WAL mode and indexed queries.

Provides functions to initialize the database, insert action log entries,
and query the log with flexible filtering.  Uses parameterized queries
exclusively (never string concatenation) to prevent SQL injection.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from collab.audit.models import ActionLogEntry


def open_db(db_path: Path | str, timeout: float = 5.0) -> sqlite3.Connection:
    """Open the service database with WAL mode and foreign keys enabled.

    The connection may be shared across worker threads; callers serialize
    access (see ``SqliteCollabStore``).  ``isolation_level=None`` leaves
    transaction control to explicit ``BEGIN`` statements.

    Args:
        db_path: Path to the SQLite database file, or ``":memory:"``.
        timeout: Seconds to wait on a locked database before failing.

    Returns:
        An open sqlite3.Connection.
    """
    conn = sqlite3.connect(
        str(db_path),
        timeout=timeout,
        check_same_thread=False,
        isolation_level=None,
    )
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def init_action_log_table(conn: sqlite3.Connection) -> None:
    """Create the ``deal_action_logs`` table and its indexes if missing.

    Args:
        conn: An open sqlite3.Connection.
    """
    conn.execute("""
        CREATE TABLE IF NOT EXISTS deal_action_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
            event TEXT NOT NULL,
            request_id TEXT,
            deal_id TEXT,
            metadata TEXT
        )
    """)

    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_action_log_request ON deal_action_logs (request_id)"
    )
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_action_log_deal ON deal_action_logs (deal_id)"
    )
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_action_log_created ON deal_action_logs (created_at)"
    )


def insert_action_log(conn: sqlite3.Connection, entry: ActionLogEntry) -> int:
    """Insert an action log entry into the database.

    Serializes the metadata dict to a JSON string if present.

    Args:
        conn: An open database connection.
        entry: The entry to insert.

    Returns:
        The row ID of the inserted entry.
    """
    metadata_json: str | None = None
    if entry.metadata is not None:
        metadata_json = json.dumps(entry.metadata)

    created_at = datetime.now(tz=UTC).strftime("%Y-%m-%dT%H:%M:%SZ")

    cursor = conn.execute(
        """
        INSERT INTO deal_action_logs (created_at, event, request_id, deal_id, metadata)
        VALUES (?, ?, ?, ?, ?)
        """,
        (
            created_at,
            entry.event.value,
            entry.request_id,
            entry.deal_id,
            metadata_json,
        ),
    )
    return cursor.lastrowid or 0


def query_action_log(
    conn: sqlite3.Connection,
    *,
    request_id: str | None = None,
    deal_id: str | None = None,
    event: str | None = None,
    from_date: str | None = None,
    to_date: str | None = None,
    limit: int = 50,
) -> list[dict[str, Any]]:
    """Query the action log with flexible filtering.

    All filters are optional.  Results are ordered newest first.

    Args:
        conn: An open database connection.
        request_id: Filter by collaboration request id.
        deal_id: Filter by deal id.
        event: Filter by event name.
        from_date: Entries on or after this ISO 8601 date.
        to_date: Entries on or before this ISO 8601 date.
        limit: Maximum number of results to return (default 50).

    Returns:
        A list of dicts, one per matching entry, newest first.
    """
    conditions: list[str] = []
    params: list[str | int] = []

    if request_id is not None:
        conditions.append("request_id = ?")
        params.append(request_id)

    if deal_id is not None:
        conditions.append("deal_id = ?")
        params.append(deal_id)

    if event is not None:
        conditions.append("event = ?")
        params.append(event)

    if from_date is not None:
        conditions.append("created_at >= ?")
        params.append(from_date)

    if to_date is not None:
        conditions.append("created_at <= ?")
        params.append(to_date)

    where_clause = ""
    if conditions:
        where_clause = "WHERE " + " AND ".join(conditions)

    query = (
        f"SELECT id, created_at, event, request_id, deal_id, metadata "
        f"FROM deal_action_logs {where_clause} ORDER BY created_at DESC, id DESC LIMIT ?"
    )
    params.append(limit)

    cursor = conn.execute(query, params)
    columns = [d[0] for d in cursor.description]

    results: list[dict[str, Any]] = []
    for row in cursor.fetchall():
        row_dict = dict(zip(columns, row, strict=True))
        if row_dict.get("metadata") is not None:
            row_dict["metadata"] = json.loads(row_dict["metadata"])
        results.append(row_dict)

    return results


def close_db(conn: sqlite3.Connection) -> None:
    """Close the database connection.

    Args:
        conn: The database connection to close.
    """
    conn.close()
