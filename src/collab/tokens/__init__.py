"""Signed action tokens and the links that carry them."""

from collab.tokens.codec import (
    DEFAULT_TTL,
    DELIMITER,
    TOKEN_VERSION,
    ActionTokenCodec,
    VerifiedAction,
    epoch_ms,
)
from collab.tokens.links import ActionLinkBuilder

__all__ = [
    "DEFAULT_TTL",
    "DELIMITER",
    "TOKEN_VERSION",
    "ActionLinkBuilder",
    "ActionTokenCodec",
    "VerifiedAction",
    "epoch_ms",
]
