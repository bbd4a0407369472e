"""Pydantic v2 models for collaboration requests and brand deals."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from collab.domain.types import (
    CollabType,
    DealStatus,
    DealType,
    RequestStatus,
    deal_type_for,
)

# Default time a creator has to deliver when the brand gave no deadline.
DEFAULT_DUE_DAYS = 30


def new_id() -> str:
    """Return a fresh opaque identifier."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(tz=UTC)


class BrandContact(BaseModel):
    """Who to reach at the brand about a collaboration request."""

    model_config = ConfigDict(frozen=True)

    name: str
    email: str
    phone: str | None = None

    @field_validator("name")
    @classmethod
    def name_must_not_be_empty(cls, v: str) -> str:
        """Ensure the brand name is not empty or whitespace-only."""
        if not v.strip():
            raise ValueError("brand name must not be empty")
        return v

    @field_validator("email")
    @classmethod
    def email_must_look_valid(cls, v: str) -> str:
        """Reject values that cannot be an email address."""
        local, sep, domain = v.partition("@")
        if not sep or not local or "." not in domain or " " in v:
            raise ValueError(f"invalid email address: {v!r}")
        return v


class DealTerms(BaseModel):
    """Proposed deal terms attached to a collaboration request.

    Uses Decimal for monetary values -- float inputs are rejected.
    """

    model_config = ConfigDict(frozen=True)

    collab_type: CollabType
    amount: Decimal | None = None
    barter_value: Decimal | None = None
    barter_description: str | None = None
    deliverables: list[str] = Field(default_factory=list)
    deadline: date | None = None
    notes: str | None = None

    @field_validator("amount", "barter_value", mode="before")
    @classmethod
    def reject_float_inputs(cls, v: object) -> object:
        """Reject float inputs for monetary fields to prevent precision errors."""
        if isinstance(v, float):
            raise ValueError("Use Decimal or string, not float, for monetary values")
        return v

    @field_validator("amount", "barter_value")
    @classmethod
    def money_must_not_be_negative(cls, v: Decimal | None) -> Decimal | None:
        """Ensure monetary values are not negative."""
        if v is not None and v < 0:
            raise ValueError("monetary values must not be negative")
        return v

    def deal_amount(self) -> Decimal:
        """Return the amount recorded on the deal created from these terms."""
        if deal_type_for(self.collab_type) == DealType.BARTER:
            return self.barter_value or Decimal("0")
        return self.amount or Decimal("0")


class CollaborationRequest(BaseModel):
    """A brand's proposal to a creator, actioned through signed links.

    ``deal_id`` is set if and only if the request is accepted.  A countered
    request points at its replacement via ``superseded_by`` and the
    replacement points back via ``supersedes``.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    creator_id: str
    brand_contact: BrandContact
    status: RequestStatus = RequestStatus.PENDING
    deal_id: str | None = None
    terms: DealTerms
    supersedes: str | None = None
    superseded_by: str | None = None
    decline_reason: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("id", "creator_id")
    @classmethod
    def ids_must_not_be_empty(cls, v: str) -> str:
        """Ensure identifiers are non-empty."""
        if not v.strip():
            raise ValueError("identifiers must not be empty")
        return v

    @model_validator(mode="after")
    def deal_id_only_when_accepted(self) -> CollaborationRequest:
        """Ensure ``deal_id`` is present exactly when the status is accepted."""
        accepted = self.status == RequestStatus.ACCEPTED
        if accepted != (self.deal_id is not None):
            raise ValueError(
                f"deal_id must be set if and only if status is accepted "
                f"(status={self.status}, deal_id={self.deal_id})"
            )
        return self

    @property
    def is_pending(self) -> bool:
        """Return True if the request can still be actioned."""
        return self.status == RequestStatus.PENDING


class BrandDeal(BaseModel):
    """A deal created from an accepted collaboration request."""

    id: str = Field(default_factory=new_id)
    creator_id: str
    collab_request_id: str
    brand_name: str
    brand_email: str
    deal_type: DealType
    deal_amount: Decimal
    currency: str = "INR"
    deliverables: list[str] = Field(default_factory=list)
    due_date: date
    status: DealStatus = DealStatus.DRAFTING
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_request(
        cls, request: CollaborationRequest, now: datetime | None = None
    ) -> BrandDeal:
        """Build the deal that accepting *request* creates.

        Args:
            request: The collaboration request being accepted.
            now: Acceptance time; defaults to the current UTC time.

        Returns:
            A new ``BrandDeal`` in ``Drafting`` status.
        """
        now = now or utc_now()
        terms = request.terms
        due_date = terms.deadline or (now + timedelta(days=DEFAULT_DUE_DAYS)).date()
        return cls(
            creator_id=request.creator_id,
            collab_request_id=request.id,
            brand_name=request.brand_contact.name,
            brand_email=request.brand_contact.email,
            deal_type=deal_type_for(terms.collab_type),
            deal_amount=terms.deal_amount(),
            deliverables=list(terms.deliverables),
            due_date=due_date,
            created_at=now,
            updated_at=now,
        )
