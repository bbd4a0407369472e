"""SQLite schema for collaboration requests and brand deals.

Follows the same pattern as ``init_action_log_table`` in
``collab.audit.store``: idempotent DDL executed at startup.
"""

from __future__ import annotations

import sqlite3


def init_collab_tables(conn: sqlite3.Connection) -> None:
    """Create the ``collab_requests`` and ``brand_deals`` tables if missing.

    ``brand_deals.collab_request_id`` is unique so a request can never own
    more than one deal, whatever the caller does.

    Args:
        conn: An open sqlite3.Connection (WAL mode recommended).
    """
    conn.execute("""
        CREATE TABLE IF NOT EXISTS collab_requests (
            id TEXT PRIMARY KEY,
            creator_id TEXT NOT NULL,
            brand_name TEXT NOT NULL,
            brand_email TEXT NOT NULL,
            brand_phone TEXT,
            status TEXT NOT NULL,
            deal_id TEXT,
            terms_json TEXT NOT NULL,
            supersedes TEXT REFERENCES collab_requests (id),
            superseded_by TEXT,
            decline_reason TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS brand_deals (
            id TEXT PRIMARY KEY,
            creator_id TEXT NOT NULL,
            collab_request_id TEXT NOT NULL UNIQUE REFERENCES collab_requests (id),
            brand_name TEXT NOT NULL,
            brand_email TEXT NOT NULL,
            deal_type TEXT NOT NULL,
            deal_amount TEXT NOT NULL,
            currency TEXT NOT NULL,
            deliverables_json TEXT NOT NULL DEFAULT '[]',
            due_date TEXT NOT NULL,
            status TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """)

    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_collab_requests_status "
        "ON collab_requests (status, created_at)"
    )
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_collab_requests_creator ON collab_requests (creator_id)"
    )
