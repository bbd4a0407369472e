"""Tests for SqliteCollabStore: reads, compare-and-swap transitions, and rollback."""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from collab.audit.models import ActionLogEntry, ActionLogEvent
from collab.audit.store import open_db, query_action_log
from collab.domain.errors import ConflictError, RequestNotFoundError, TransientError
from collab.domain.models import BrandContact, CollaborationRequest, DealTerms
from collab.domain.types import DealStatus, RequestStatus
from collab.store.schema import init_collab_tables
from collab.store.store import SqliteCollabStore


def _accept_with_deal(tx, request):
    deal = tx.create_deal(request)
    return {"deal_id": deal.id}


class TestReads:
    def test_get_round_trips_request(self, store, pending_request):
        loaded = store.get_collaboration_request(pending_request.id)
        assert loaded == pending_request

    def test_get_missing_raises_not_found(self, store):
        with pytest.raises(RequestNotFoundError) as exc_info:
            store.get_collaboration_request("missing")
        assert exc_info.value.request_id == "missing"

    def test_get_deal_missing_returns_none(self, store):
        assert store.get_deal("missing") is None

    def test_create_deal_standalone(self, store, pending_request):
        deal = store.create_deal(pending_request)
        assert store.get_deal(deal.id) == deal
        assert store.list_deals_for_request(pending_request.id) == [deal]

    def test_list_stale_pending(self, store, brand_contact, paid_terms):
        old = datetime(2025, 11, 1, tzinfo=UTC)
        stale = store.insert_collaboration_request(
            CollaborationRequest(
                creator_id="creator-1",
                brand_contact=brand_contact,
                terms=paid_terms,
                created_at=old,
                updated_at=old,
            )
        )
        store.insert_collaboration_request(
            CollaborationRequest(
                creator_id="creator-1", brand_contact=brand_contact, terms=paid_terms
            )
        )
        cutoff = datetime.now(tz=UTC) - timedelta(days=30)
        assert store.list_stale_pending(cutoff) == [stale.id]


class TestTransition:
    def test_accept_creates_deal_in_same_transaction(self, store, pending_request):
        updated = store.transition_collaboration_request(
            pending_request.id,
            RequestStatus.PENDING,
            RequestStatus.ACCEPTED,
            mutate=_accept_with_deal,
        )
        assert updated.status == RequestStatus.ACCEPTED
        deal = store.get_deal(updated.deal_id)
        assert deal is not None
        assert deal.collab_request_id == pending_request.id
        assert deal.deal_amount == Decimal("25000")
        assert deal.status == DealStatus.DRAFTING

    def test_plain_transition(self, store, pending_request):
        updated = store.transition_collaboration_request(
            pending_request.id,
            RequestStatus.PENDING,
            RequestStatus.DECLINED,
            mutate=lambda tx, request: {"decline_reason": "budget"},
        )
        assert updated.status == RequestStatus.DECLINED
        assert updated.decline_reason == "budget"
        assert updated.updated_at >= pending_request.updated_at

    def test_wrong_expected_status_conflicts(self, store, pending_request):
        store.transition_collaboration_request(
            pending_request.id, RequestStatus.PENDING, RequestStatus.DECLINED
        )
        with pytest.raises(ConflictError) as exc_info:
            store.transition_collaboration_request(
                pending_request.id,
                RequestStatus.PENDING,
                RequestStatus.ACCEPTED,
                mutate=_accept_with_deal,
            )
        assert exc_info.value.actual == RequestStatus.DECLINED
        assert store.list_deals_for_request(pending_request.id) == []

    def test_missing_request_raises_not_found(self, store):
        with pytest.raises(RequestNotFoundError):
            store.transition_collaboration_request(
                "missing", RequestStatus.PENDING, RequestStatus.DECLINED
            )

    def test_accept_without_deal_rolls_back(self, store, pending_request):
        with pytest.raises(ValueError):
            store.transition_collaboration_request(
                pending_request.id, RequestStatus.PENDING, RequestStatus.ACCEPTED
            )
        assert store.get_collaboration_request(pending_request.id).status == RequestStatus.PENDING

    def test_failing_mutate_rolls_back_its_writes(self, store, pending_request):
        def mutate(tx, request):
            tx.create_deal(request)
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            store.transition_collaboration_request(
                pending_request.id, RequestStatus.PENDING, RequestStatus.ACCEPTED, mutate=mutate
            )
        assert store.list_deals_for_request(pending_request.id) == []
        assert store.get_collaboration_request(pending_request.id).is_pending

    def test_rejects_unknown_columns(self, store, pending_request):
        with pytest.raises(ValueError, match="may not set columns"):
            store.transition_collaboration_request(
                pending_request.id,
                RequestStatus.PENDING,
                RequestStatus.DECLINED,
                mutate=lambda tx, request: {"creator_id": "someone-else"},
            )

    def test_second_deal_for_request_is_refused(self, store, pending_request):
        store.create_deal(pending_request)
        with pytest.raises(sqlite3.IntegrityError):
            store.create_deal(pending_request)

    def test_counter_child_commits_with_parent(self, store, pending_request):
        terms = DealTerms(collab_type="paid", amount=Decimal("30000"))

        def mutate(tx, request):
            child = tx.insert_request(
                CollaborationRequest(
                    creator_id=request.creator_id,
                    brand_contact=request.brand_contact,
                    terms=terms,
                    supersedes=request.id,
                )
            )
            return {"superseded_by": child.id}

        parent = store.transition_collaboration_request(
            pending_request.id, RequestStatus.PENDING, RequestStatus.COUNTERED, mutate=mutate
        )
        child = store.get_collaboration_request(parent.superseded_by)
        assert child.supersedes == parent.id
        assert child.is_pending
        assert child.terms.amount == Decimal("30000")


class TestTimeouts:
    def test_lock_timeout_raises_transient(self, db_conn, pending_request):
        store = SqliteCollabStore(db_conn, timeout=0.05)
        store._lock.acquire()
        try:
            with pytest.raises(TransientError):
                store.get_collaboration_request(pending_request.id)
        finally:
            store._lock.release()

    def test_ping_waits_for_the_lock(self, db_conn):
        store = SqliteCollabStore(db_conn, timeout=0.05)
        store.ping()
        store._lock.acquire()
        try:
            with pytest.raises(TransientError):
                store.ping()
        finally:
            store._lock.release()

    def test_busy_database_raises_transient(self, tmp_path):
        path = tmp_path / "collab.db"
        first = open_db(path, timeout=0.05)
        init_collab_tables(first)
        second = open_db(path, timeout=0.05)
        store = SqliteCollabStore(first, timeout=0.05)

        request = CollaborationRequest(
            creator_id="creator-1",
            brand_contact=BrandContact(name="Acme", email="team@acme.example"),
            terms=DealTerms(collab_type="paid", amount=Decimal("10")),
        )
        second.execute("BEGIN IMMEDIATE")
        try:
            with pytest.raises(TransientError):
                store.insert_collaboration_request(request)
        finally:
            second.execute("ROLLBACK")
            first.close()
            second.close()


class TestAppendActionLog:
    def test_appends_entry(self, store, db_conn):
        row_id = store.append_action_log(
            ActionLogEntry(event=ActionLogEvent.REQUEST_DECLINED, request_id="req-1")
        )
        assert row_id is not None
        rows = query_action_log(db_conn, request_id="req-1")
        assert rows[0]["event"] == "request_declined"

    def test_failure_is_swallowed_and_returns_none(self):
        conn = sqlite3.connect(":memory:", check_same_thread=False, isolation_level=None)
        store = SqliteCollabStore(conn)
        # No action log table: the insert fails.
        result = store.append_action_log(
            ActionLogEntry(event=ActionLogEvent.REQUEST_DECLINED, request_id="req-1")
        )
        assert result is None
        conn.close()

    def test_lock_held_elsewhere_returns_none(self, db_conn):
        store = SqliteCollabStore(db_conn, timeout=0.05)
        store._lock.acquire()
        try:
            result = store.append_action_log(ActionLogEntry(event=ActionLogEvent.INTEGRITY_ERROR))
        finally:
            store._lock.release()
        assert result is None
