"""Tests for the SQLite-backed contract job queue."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator

import pytest

from collab.audit.store import open_db
from collab.contracts.generator import ContractJobQueue, init_contract_jobs_table
from collab.domain.models import BrandDeal


@pytest.fixture
def queue() -> Iterator[ContractJobQueue]:
    conn = open_db(":memory:")
    init_contract_jobs_table(conn)
    yield ContractJobQueue(conn)
    conn.close()


class TestInitTable:
    def test_idempotent(self):
        conn = sqlite3.connect(":memory:")
        init_contract_jobs_table(conn)
        init_contract_jobs_table(conn)
        tables = [r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")]
        assert "contract_jobs" in tables
        conn.close()


class TestEnqueue:
    def test_returns_job_id_and_lists_job(self, queue, pending_request):
        deal = BrandDeal.from_request(pending_request)

        job_id = queue.enqueue(pending_request, deal)

        jobs = queue.pending_jobs()
        assert len(jobs) == 1
        assert jobs[0]["id"] == job_id
        assert jobs[0]["deal_id"] == deal.id
        assert jobs[0]["request_id"] == pending_request.id
        assert jobs[0]["status"] == "queued"

    def test_same_deal_enqueued_once(self, queue, pending_request):
        deal = BrandDeal.from_request(pending_request)

        first = queue.enqueue(pending_request, deal)
        second = queue.enqueue(pending_request, deal)

        assert first == second
        assert len(queue.pending_jobs()) == 1

    def test_one_job_per_deal(self, queue, pending_request, barter_request):
        queue.enqueue(pending_request, BrandDeal.from_request(pending_request))
        queue.enqueue(barter_request, BrandDeal.from_request(barter_request))

        assert {j["request_id"] for j in queue.pending_jobs()} == {
            pending_request.id,
            barter_request.id,
        }
