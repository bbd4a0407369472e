"""SQLite-backed store for collaboration requests, deals, and the action log.

Mirrors the audit store pattern: accepts a sqlite3.Connection and uses
parameterized queries exclusively.  Every write runs inside an explicit
``BEGIN IMMEDIATE`` transaction so the status compare-and-swap and any
dependent rows (the deal on acceptance, the child request on counter)
commit together.  The status flip is the commit point: a request is never
visible as ``accepted`` without its deal.

The connection is shared by worker threads.  Access is serialized with a
lock whose acquisition, like SQLite's busy wait, is bounded by
``timeout``.  Running out of time surfaces as :class:`TransientError`.
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

import structlog

from collab.audit.models import ActionLogEntry
from collab.audit.store import insert_action_log
from collab.domain.errors import ConflictError, RequestNotFoundError, TransientError
from collab.domain.models import BrandDeal, CollaborationRequest, utc_now
from collab.domain.types import RequestStatus
from collab.store.serializers import (
    DEAL_COLUMNS,
    REQUEST_COLUMNS,
    deal_to_row,
    format_ts,
    request_to_row,
    row_to_deal,
    row_to_request,
)

logger = structlog.get_logger()

# Columns a transition's mutate callback may set alongside the status.
MUTABLE_COLUMNS: frozenset[str] = frozenset({"deal_id", "superseded_by", "decline_reason"})

_REQUEST_SELECT = f"SELECT {', '.join(REQUEST_COLUMNS)} FROM collab_requests"
_DEAL_SELECT = f"SELECT {', '.join(DEAL_COLUMNS)} FROM brand_deals"


def _fetch_dict(cursor: sqlite3.Cursor) -> dict[str, Any] | None:
    row = cursor.fetchone()
    if row is None:
        return None
    columns = [d[0] for d in cursor.description]
    return dict(zip(columns, row, strict=True))


class StoreTransaction:
    """Write handle passed to a transition's ``mutate`` callback.

    Writes made through it commit or roll back together with the status
    change.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def insert_request(self, request: CollaborationRequest) -> CollaborationRequest:
        """Insert a new collaboration request row."""
        placeholders = ", ".join("?" for _ in REQUEST_COLUMNS)
        self._conn.execute(
            f"INSERT INTO collab_requests ({', '.join(REQUEST_COLUMNS)}) "
            f"VALUES ({placeholders})",
            request_to_row(request),
        )
        return request

    def insert_deal(self, deal: BrandDeal) -> BrandDeal:
        """Insert a new brand deal row."""
        placeholders = ", ".join("?" for _ in DEAL_COLUMNS)
        self._conn.execute(
            f"INSERT INTO brand_deals ({', '.join(DEAL_COLUMNS)}) VALUES ({placeholders})",
            deal_to_row(deal),
        )
        return deal

    def create_deal(
        self, request: CollaborationRequest, now: datetime | None = None
    ) -> BrandDeal:
        """Build and insert the deal that accepting *request* creates."""
        return self.insert_deal(BrandDeal.from_request(request, now))


Mutation = Callable[[StoreTransaction, CollaborationRequest], dict[str, Any] | None]


class SqliteCollabStore:
    """Durable storage for requests and deals with compare-and-swap transitions.

    Args:
        conn: An open connection whose database already has the collab
            tables (see ``init_collab_tables``) and the action log table
            (see ``init_action_log_table``).
        timeout: Seconds any single store call may wait for access.
    """

    def __init__(self, conn: sqlite3.Connection, timeout: float = 5.0) -> None:
        self._conn = conn
        self._timeout = timeout
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @contextmanager
    def _locked(self) -> Iterator[sqlite3.Connection]:
        if not self._lock.acquire(timeout=self._timeout):
            raise TransientError(f"store busy for more than {self._timeout}s")
        try:
            yield self._conn
        finally:
            self._lock.release()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._locked() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.OperationalError as exc:
                raise TransientError(str(exc)) from exc
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            try:
                conn.execute("COMMIT")
            except sqlite3.OperationalError as exc:
                conn.execute("ROLLBACK")
                raise TransientError(str(exc)) from exc

    def ping(self) -> None:
        """Run a trivial query under the store lock.

        Raises:
            TransientError: If the lock cannot be acquired in time.
            sqlite3.Error: If the connection cannot answer.
        """
        with self._locked() as conn:
            conn.execute("SELECT 1").fetchone()

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def get_collaboration_request(self, request_id: str) -> CollaborationRequest:
        """Load a request by id.

        Raises:
            RequestNotFoundError: If no request has this id.
            TransientError: If the store could not be reached in time.
        """
        try:
            with self._locked() as conn:
                row = _fetch_dict(conn.execute(f"{_REQUEST_SELECT} WHERE id = ?", (request_id,)))
        except sqlite3.OperationalError as exc:
            raise TransientError(str(exc)) from exc
        if row is None:
            raise RequestNotFoundError(request_id)
        return row_to_request(row)

    def get_deal(self, deal_id: str) -> BrandDeal | None:
        """Load a deal by id, or ``None`` if it does not exist."""
        with self._locked() as conn:
            row = _fetch_dict(conn.execute(f"{_DEAL_SELECT} WHERE id = ?", (deal_id,)))
        return row_to_deal(row) if row is not None else None

    def list_deals_for_request(self, request_id: str) -> list[BrandDeal]:
        """Return every deal created from *request_id* (at most one)."""
        with self._locked() as conn:
            cursor = conn.execute(
                f"{_DEAL_SELECT} WHERE collab_request_id = ?", (request_id,)
            )
            columns = [d[0] for d in cursor.description]
            rows = [dict(zip(columns, r, strict=True)) for r in cursor.fetchall()]
        return [row_to_deal(r) for r in rows]

    def list_stale_pending(self, cutoff: datetime) -> list[str]:
        """Return ids of pending requests created before *cutoff*, oldest first."""
        with self._locked() as conn:
            cursor = conn.execute(
                "SELECT id FROM collab_requests WHERE status = ? AND created_at < ? "
                "ORDER BY created_at",
                (RequestStatus.PENDING.value, format_ts(cutoff)),
            )
            return [r[0] for r in cursor.fetchall()]

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    def insert_collaboration_request(
        self, request: CollaborationRequest
    ) -> CollaborationRequest:
        """Persist a newly submitted collaboration request."""
        with self._transaction() as conn:
            StoreTransaction(conn).insert_request(request)
        return request

    def create_deal(self, request: CollaborationRequest) -> BrandDeal:
        """Create the deal for *request* in its own transaction.

        The state machine creates deals inside the acceptance transition
        instead; this entry point exists for stores driven without one.
        """
        with self._transaction() as conn:
            return StoreTransaction(conn).create_deal(request)

    def transition_collaboration_request(
        self,
        request_id: str,
        expected_status: RequestStatus,
        new_status: RequestStatus,
        mutate: Mutation | None = None,
        now: datetime | None = None,
    ) -> CollaborationRequest:
        """Move a request to *new_status* only if it is still *expected_status*.

        The status check, ``mutate`` and the status update share one
        transaction.  ``mutate`` receives a :class:`StoreTransaction` and
        the current request and may return column updates drawn from
        ``MUTABLE_COLUMNS``.  The updated row is validated before commit,
        so a transition that would break the deal/status invariant rolls
        back.

        Returns:
            The request as committed.

        Raises:
            RequestNotFoundError: If no request has this id.
            ConflictError: If the stored status is not *expected_status*.
            TransientError: If the store could not be reached in time.
            ValueError: If ``mutate`` returns a column it may not set.
        """
        now = now or utc_now()
        with self._transaction() as conn:
            row = _fetch_dict(conn.execute(f"{_REQUEST_SELECT} WHERE id = ?", (request_id,)))
            if row is None:
                raise RequestNotFoundError(request_id)
            current = row_to_request(row)
            if current.status != expected_status:
                raise ConflictError(request_id, expected_status, current.status)

            updates: dict[str, Any] = {}
            if mutate is not None:
                updates = dict(mutate(StoreTransaction(conn), current) or {})
            unknown = set(updates) - MUTABLE_COLUMNS
            if unknown:
                raise ValueError(f"transition may not set columns: {sorted(unknown)}")

            assignments = ["status = ?", "updated_at = ?"]
            params: list[Any] = [new_status.value, format_ts(now)]
            for column in sorted(updates):
                assignments.append(f"{column} = ?")
                params.append(updates[column])
            params.extend([request_id, expected_status.value])

            cursor = conn.execute(
                f"UPDATE collab_requests SET {', '.join(assignments)} "
                "WHERE id = ? AND status = ?",
                params,
            )
            if cursor.rowcount != 1:
                raise ConflictError(request_id, expected_status, current.status)

            committed = _fetch_dict(
                conn.execute(f"{_REQUEST_SELECT} WHERE id = ?", (request_id,))
            )
            assert committed is not None
            return row_to_request(committed)

    def append_action_log(self, entry: ActionLogEntry) -> int | None:
        """Append an action log entry without ever failing the caller.

        Returns:
            The row ID of the entry, or ``None`` if it could not be written.
        """
        try:
            with self._locked() as conn:
                return insert_action_log(conn, entry)
        except (sqlite3.Error, TransientError):
            logger.exception(
                "action_log_append_failed",
                log_event=entry.event.value,
                request_id=entry.request_id,
                deal_id=entry.deal_id,
            )
            return None
