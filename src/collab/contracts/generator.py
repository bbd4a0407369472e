"""Hand-off of accepted requests to contract generation.

Document rendering is owned by a separate worker.  This module defines the
``ContractGenerator`` interface the state machine calls after an acceptance
commits, and ``ContractJobQueue``, a SQLite-backed implementation that
records one job per deal for the worker to pick up.
"""

from __future__ import annotations

import sqlite3
import threading
from datetime import UTC, datetime
from typing import Any, Protocol

import structlog

from collab.domain.models import BrandDeal, CollaborationRequest, new_id

logger = structlog.get_logger()


class ContractGenerator(Protocol):
    """Produces a contract document for an accepted request."""

    def enqueue(self, request: CollaborationRequest, deal: BrandDeal) -> str: ...


def init_contract_jobs_table(conn: sqlite3.Connection) -> None:
    """Create the ``contract_jobs`` table if it does not already exist.

    ``deal_id`` is unique: enqueuing the same deal twice returns the
    original job.

    Args:
        conn: An open sqlite3.Connection.
    """
    conn.execute("""
        CREATE TABLE IF NOT EXISTS contract_jobs (
            id TEXT PRIMARY KEY,
            deal_id TEXT NOT NULL UNIQUE,
            request_id TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'queued',
            created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
        )
    """)


class ContractJobQueue:
    """Queue contract generation jobs in SQLite, one per deal.

    Uses its own connection so job inserts never join a transaction that
    the request store has open.

    Args:
        conn: An open connection whose database has the ``contract_jobs``
            table (see ``init_contract_jobs_table``).
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = threading.Lock()

    def enqueue(self, request: CollaborationRequest, deal: BrandDeal) -> str:
        """Queue contract generation for *deal*.

        Returns:
            The job id; the existing id if the deal was already queued.
        """
        now = datetime.now(tz=UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
        with self._lock:
            self._conn.execute(
                "INSERT OR IGNORE INTO contract_jobs (id, deal_id, request_id, status, created_at) "
                "VALUES (?, ?, ?, 'queued', ?)",
                (new_id(), deal.id, request.id, now),
            )
            self._conn.commit()
            row = self._conn.execute(
                "SELECT id FROM contract_jobs WHERE deal_id = ?", (deal.id,)
            ).fetchone()
        job_id: str = row[0]
        logger.info("contract_job_queued", job_id=job_id, deal_id=deal.id)
        return job_id

    def pending_jobs(self) -> list[dict[str, Any]]:
        """Return queued jobs, oldest first."""
        with self._lock:
            cursor = self._conn.execute(
                "SELECT id, deal_id, request_id, status, created_at FROM contract_jobs "
                "WHERE status = 'queued' ORDER BY created_at, id"
            )
            columns = [d[0] for d in cursor.description]
            return [dict(zip(columns, r, strict=True)) for r in cursor.fetchall()]
