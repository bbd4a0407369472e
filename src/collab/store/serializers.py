"""Row <-> model conversion for the SQLite collaboration store.

Monetary values travel as strings (pydantic's JSON mode for ``Decimal``) so
no precision is lost.  Timestamps are stored as fixed-width UTC strings so
that lexical comparison in SQL matches chronological order.
"""

from __future__ import annotations

import json
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any

from collab.domain.models import BrandContact, BrandDeal, CollaborationRequest, DealTerms

_TS_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

REQUEST_COLUMNS = (
    "id",
    "creator_id",
    "brand_name",
    "brand_email",
    "brand_phone",
    "status",
    "deal_id",
    "terms_json",
    "supersedes",
    "superseded_by",
    "decline_reason",
    "created_at",
    "updated_at",
)

DEAL_COLUMNS = (
    "id",
    "creator_id",
    "collab_request_id",
    "brand_name",
    "brand_email",
    "deal_type",
    "deal_amount",
    "currency",
    "deliverables_json",
    "due_date",
    "status",
    "created_at",
    "updated_at",
)


def format_ts(value: datetime) -> str:
    """Render an aware datetime as a fixed-width UTC string."""
    return value.astimezone(UTC).strftime(_TS_FORMAT)


def parse_ts(value: str) -> datetime:
    """Parse a string produced by :func:`format_ts`."""
    return datetime.strptime(value, _TS_FORMAT).replace(tzinfo=UTC)


def request_to_row(request: CollaborationRequest) -> tuple[Any, ...]:
    """Flatten a request into a tuple ordered like ``REQUEST_COLUMNS``."""
    return (
        request.id,
        request.creator_id,
        request.brand_contact.name,
        request.brand_contact.email,
        request.brand_contact.phone,
        request.status.value,
        request.deal_id,
        request.terms.model_dump_json(),
        request.supersedes,
        request.superseded_by,
        request.decline_reason,
        format_ts(request.created_at),
        format_ts(request.updated_at),
    )


def row_to_request(row: dict[str, Any]) -> CollaborationRequest:
    """Rebuild a request from a row dict keyed by ``REQUEST_COLUMNS``.

    Runs full model validation, so a row that breaks the deal/status
    invariant raises ``pydantic.ValidationError``.
    """
    return CollaborationRequest(
        id=row["id"],
        creator_id=row["creator_id"],
        brand_contact=BrandContact(
            name=row["brand_name"],
            email=row["brand_email"],
            phone=row["brand_phone"],
        ),
        status=row["status"],
        deal_id=row["deal_id"],
        terms=DealTerms.model_validate_json(row["terms_json"]),
        supersedes=row["supersedes"],
        superseded_by=row["superseded_by"],
        decline_reason=row["decline_reason"],
        created_at=parse_ts(row["created_at"]),
        updated_at=parse_ts(row["updated_at"]),
    )


def deal_to_row(deal: BrandDeal) -> tuple[Any, ...]:
    """Flatten a deal into a tuple ordered like ``DEAL_COLUMNS``."""
    return (
        deal.id,
        deal.creator_id,
        deal.collab_request_id,
        deal.brand_name,
        deal.brand_email,
        deal.deal_type.value,
        str(deal.deal_amount),
        deal.currency,
        json.dumps(deal.deliverables),
        deal.due_date.isoformat(),
        deal.status.value,
        format_ts(deal.created_at),
        format_ts(deal.updated_at),
    )


def row_to_deal(row: dict[str, Any]) -> BrandDeal:
    """Rebuild a deal from a row dict keyed by ``DEAL_COLUMNS``."""
    return BrandDeal(
        id=row["id"],
        creator_id=row["creator_id"],
        collab_request_id=row["collab_request_id"],
        brand_name=row["brand_name"],
        brand_email=row["brand_email"],
        deal_type=row["deal_type"],
        deal_amount=Decimal(row["deal_amount"]),
        currency=row["currency"],
        deliverables=json.loads(row["deliverables_json"]),
        due_date=date.fromisoformat(row["due_date"]),
        status=row["status"],
        created_at=parse_ts(row["created_at"]),
        updated_at=parse_ts(row["updated_at"]),
    )
