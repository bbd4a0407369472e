"""Shared pytest fixtures for the collaboration action test suite."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from collab.audit.logger import ActionLogger
from collab.audit.store import init_action_log_table, open_db
from collab.domain.models import BrandContact, CollaborationRequest, DealTerms
from collab.domain.types import CollabType
from collab.notify.models import DeliveryResult
from collab.state_machine.machine import DealStateMachine
from collab.store.schema import init_collab_tables
from collab.store.store import SqliteCollabStore
from collab.tokens.codec import ActionTokenCodec
from collab.tokens.links import ActionLinkBuilder

TEST_SECRET = "test-secret-with-at-least-32-characters!"

# 2026-01-01T00:00:00Z
T0_MS = 1_767_225_600_000


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now_ms: int = T0_MS) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, delta: timedelta) -> None:
        self.now_ms += delta // timedelta(milliseconds=1)


@pytest.fixture
def clock() -> FakeClock:
    """A frozen clock at 2026-01-01T00:00:00Z."""
    return FakeClock()


@pytest.fixture
def codec(clock: FakeClock) -> ActionTokenCodec:
    """A token codec driven by the fake clock."""
    return ActionTokenCodec(TEST_SECRET, clock=clock)


@pytest.fixture
def link_builder(codec: ActionTokenCodec) -> ActionLinkBuilder:
    """Link builder for the public test origin."""
    return ActionLinkBuilder(codec, "https://app.example.com")


@pytest.fixture
def db_conn() -> Iterator[sqlite3.Connection]:
    """In-memory database with the collab and action log tables."""
    conn = open_db(":memory:")
    init_collab_tables(conn)
    init_action_log_table(conn)
    yield conn
    conn.close()


@pytest.fixture
def store(db_conn: sqlite3.Connection) -> SqliteCollabStore:
    """Store over the in-memory database."""
    return SqliteCollabStore(db_conn, timeout=2.0)


@pytest.fixture
def action_logger(store: SqliteCollabStore) -> ActionLogger:
    """Action logger writing through the store."""
    return ActionLogger(store)


@pytest.fixture
def notifier() -> MagicMock:
    """Notifier that reports every message as delivered."""
    mock = MagicMock()
    mock.send.return_value = DeliveryResult(delivered=True, provider_id="msg-1")
    return mock


@pytest.fixture
def contract_generator() -> MagicMock:
    """Contract generator that queues every deal as job-1."""
    mock = MagicMock()
    mock.enqueue.return_value = "job-1"
    return mock


@pytest.fixture
def machine(
    store: SqliteCollabStore,
    action_logger: ActionLogger,
    notifier: MagicMock,
    contract_generator: MagicMock,
    link_builder: ActionLinkBuilder,
) -> DealStateMachine:
    """State machine wired to the in-memory store and mock collaborators."""
    return DealStateMachine(
        store,
        action_logger,
        notifier,
        contract_generator,
        link_builder=link_builder,
    )


@pytest.fixture
def brand_contact() -> BrandContact:
    """A representative brand contact."""
    return BrandContact(
        name="Acme Snacks", email="partnerships@acme.example", phone="+911234567890"
    )


@pytest.fixture
def paid_terms() -> DealTerms:
    """Paid collaboration terms with a deadline."""
    return DealTerms(
        collab_type=CollabType.PAID,
        amount=Decimal("25000"),
        deliverables=["1 Instagram Reel", "2 Stories"],
        deadline=date(2026, 3, 1),
    )


@pytest.fixture
def barter_terms() -> DealTerms:
    """Barter collaboration terms without a deadline."""
    return DealTerms(
        collab_type=CollabType.BARTER,
        barter_value=Decimal("4999"),
        barter_description="Skincare hamper",
        deliverables=["1 YouTube Short"],
    )


@pytest.fixture
def pending_request(
    store: SqliteCollabStore, brand_contact: BrandContact, paid_terms: DealTerms
) -> CollaborationRequest:
    """A stored, pending paid request."""
    return store.insert_collaboration_request(
        CollaborationRequest(
            creator_id="creator-1",
            brand_contact=brand_contact,
            terms=paid_terms,
        )
    )


@pytest.fixture
def barter_request(
    store: SqliteCollabStore, brand_contact: BrandContact, barter_terms: DealTerms
) -> CollaborationRequest:
    """A stored, pending barter request."""
    return store.insert_collaboration_request(
        CollaborationRequest(
            creator_id="creator-2",
            brand_contact=brand_contact,
            terms=barter_terms,
        )
    )
