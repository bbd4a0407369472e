"""Domain types, models, and errors for the collaboration action service."""

from collab.domain.errors import (
    CollabError,
    ConflictError,
    InvalidActionKindError,
    InvalidTokenError,
    InvalidTransitionError,
    MalformedTokenError,
    RequestNotFoundError,
    SignatureMismatchError,
    TokenExpiredError,
    TransientError,
)
from collab.domain.models import (
    BrandContact,
    BrandDeal,
    CollaborationRequest,
    DealTerms,
)
from collab.domain.types import (
    ActionKind,
    CollabType,
    DealStatus,
    DealType,
    RequestStatus,
    deal_type_for,
)

__all__ = [
    "ActionKind",
    "BrandContact",
    "BrandDeal",
    "CollabError",
    "CollabType",
    "CollaborationRequest",
    "ConflictError",
    "DealStatus",
    "DealTerms",
    "DealType",
    "InvalidActionKindError",
    "InvalidTokenError",
    "InvalidTransitionError",
    "MalformedTokenError",
    "RequestNotFoundError",
    "RequestStatus",
    "SignatureMismatchError",
    "TokenExpiredError",
    "TransientError",
    "deal_type_for",
]
