"""Tests for row <-> model conversion in the collaboration store."""

from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal

from collab.domain.models import BrandDeal
from collab.store.serializers import (
    DEAL_COLUMNS,
    REQUEST_COLUMNS,
    deal_to_row,
    format_ts,
    parse_ts,
    request_to_row,
    row_to_deal,
    row_to_request,
)


class TestTimestamps:
    def test_normalizes_to_utc(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        value = datetime(2026, 1, 1, 5, 30, tzinfo=ist)
        assert format_ts(value) == "2026-01-01T00:00:00.000000Z"

    def test_parse_inverts_format(self):
        value = datetime(2026, 1, 1, 12, 0, 0, 123456, tzinfo=UTC)
        assert parse_ts(format_ts(value)) == value

    def test_lexical_order_matches_time_order(self):
        earlier = datetime(2026, 1, 1, 9, 0, tzinfo=UTC)
        later = datetime(2026, 1, 1, 10, 0, tzinfo=UTC)
        assert format_ts(earlier) < format_ts(later)


class TestRequestRows:
    def test_row_has_one_value_per_column(self, pending_request):
        assert len(request_to_row(pending_request)) == len(REQUEST_COLUMNS)

    def test_money_survives_without_precision_loss(self, pending_request):
        row = dict(zip(REQUEST_COLUMNS, request_to_row(pending_request), strict=True))
        assert row_to_request(row).terms.amount == Decimal("25000")


class TestDealRows:
    def test_deal_row_round_trip(self, pending_request):
        deal = BrandDeal.from_request(pending_request)
        row = dict(zip(DEAL_COLUMNS, deal_to_row(deal), strict=True))
        assert row["deal_amount"] == "25000"
        assert row_to_deal(row) == deal
