"""Domain enumerations for collaboration requests, deals, and action tokens."""

from enum import StrEnum


class RequestStatus(StrEnum):
    """Lifecycle states of a collaboration request."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    COUNTERED = "countered"
    EXPIRED = "expired"


class DealStatus(StrEnum):
    """Lifecycle states of a brand deal owned by the creator."""

    DRAFTING = "Drafting"
    AWAITING_SIGNATURE = "AwaitingSignature"
    ACTIVE = "Active"
    COMPLETED = "Completed"
    DISPUTED = "Disputed"


class ActionKind(StrEnum):
    """Actions a brand can take through a signed link."""

    ACCEPT = "accept"
    DECLINE = "decline"


class CollabType(StrEnum):
    """Compensation model proposed by the brand."""

    PAID = "paid"
    BARTER = "barter"
    BOTH = "both"


class DealType(StrEnum):
    """Compensation model recorded on the resulting deal."""

    PAID = "paid"
    BARTER = "barter"


def deal_type_for(collab_type: CollabType) -> DealType:
    """Map a request's collab type onto the deal type stored on acceptance.

    ``both`` is treated as paid: the cash component drives the contract.
    """
    if collab_type == CollabType.BARTER:
        return DealType.BARTER
    return DealType.PAID
