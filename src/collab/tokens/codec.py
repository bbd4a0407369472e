"""Stateless signed action tokens for brand-facing links.

Wire format (five dot-delimited fields)::

    v1.<request_id>.<accept|decline>.<expiry_epoch_ms>.<base64url-signature>

The signature is HMAC-SHA256 over the exact bytes of the first four fields
joined by ``.``, encoded as URL-safe base64 without padding.  Tokens carry
no server-side state: they are bearer capabilities that stay valid until
their expiry.  Reuse is guarded by the state machine, which refuses to move
a request out of a terminal status.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import re
import time
from collections.abc import Callable
from datetime import timedelta

from pydantic import BaseModel, ConfigDict, SecretStr

from collab.domain.errors import (
    InvalidActionKindError,
    MalformedTokenError,
    SignatureMismatchError,
    TokenExpiredError,
)
from collab.domain.types import ActionKind

TOKEN_VERSION = "v1"
DELIMITER = "."
FIELD_COUNT = 5
DEFAULT_TTL = timedelta(days=7)

_EXPIRY_PATTERN = re.compile(r"^\d{1,16}$", re.ASCII)


def epoch_ms() -> int:
    """Return the current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


class VerifiedAction(BaseModel):
    """The authenticated content of a successfully verified token."""

    model_config = ConfigDict(frozen=True)

    request_id: str
    action: ActionKind


class ActionTokenCodec:
    """Mint and verify signed, time-bounded action tokens.

    The signing secret is fixed for the lifetime of the instance.  Rotating
    it (a deploy-time change) invalidates every outstanding token.

    Args:
        secret: The process-wide signing secret.
        clock: Returns the current time in epoch milliseconds.  Injected so
            expiry can be tested without sleeping.
    """

    def __init__(
        self,
        secret: SecretStr | str | bytes,
        clock: Callable[[], int] = epoch_ms,
    ) -> None:
        if isinstance(secret, SecretStr):
            secret = secret.get_secret_value()
        if isinstance(secret, str):
            secret = secret.encode("utf-8")
        if not secret:
            raise ValueError("action token secret must not be empty")
        self._key = secret
        self._clock = clock

    def __repr__(self) -> str:
        return f"{type(self).__name__}(secret=**********)"

    def _sign(self, payload: str) -> str:
        digest = hmac.new(self._key, payload.encode("utf-8"), hashlib.sha256).digest()
        return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")

    def mint(
        self,
        request_id: str,
        action: ActionKind | str,
        ttl: timedelta = DEFAULT_TTL,
    ) -> str:
        """Create a signed token authorizing *action* on *request_id*.

        Args:
            request_id: Opaque, non-empty request identifier.  Must not
                contain the ``.`` delimiter.
            action: One of the enumerated :class:`ActionKind` values.
            ttl: How long the token stays valid from now.  A negative ttl
                yields an already-expired token.

        Returns:
            The token string in wire format.

        Raises:
            ValueError: If *request_id* is empty or contains the delimiter.
            InvalidActionKindError: If *action* is not an enumerated kind.
        """
        if not request_id or DELIMITER in request_id:
            raise ValueError(
                f"request_id must be non-empty and must not contain {DELIMITER!r}"
            )
        try:
            kind = ActionKind(action)
        except ValueError:
            raise InvalidActionKindError(action) from None

        expiry_ms = self._clock() + ttl // timedelta(milliseconds=1)
        payload = DELIMITER.join((TOKEN_VERSION, request_id, kind.value, str(expiry_ms)))
        return f"{payload}{DELIMITER}{self._sign(payload)}"

    def verify(self, token: str) -> VerifiedAction:
        """Check a token's signature and expiry and return its content.

        The signature is compared in constant time before any other field is
        interpreted, so a forged token is never parsed further.

        Args:
            token: The token string taken from a link.

        Returns:
            The request id and action the token authorizes.

        Raises:
            MalformedTokenError: Wrong field count or unparseable fields.
            SignatureMismatchError: The signature does not match the payload.
            TokenExpiredError: The token is correctly signed but expired.
            InvalidActionKindError: A correctly signed token names an action
                this service does not know (an integrity failure).
        """
        fields = token.split(DELIMITER)
        if len(fields) != FIELD_COUNT:
            raise MalformedTokenError(f"expected {FIELD_COUNT} fields, got {len(fields)}")

        version, request_id, action, expiry, signature = fields
        if version != TOKEN_VERSION:
            raise MalformedTokenError(f"unsupported token version {version!r}")

        payload = DELIMITER.join((version, request_id, action, expiry))
        expected = self._sign(payload)
        if not hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8")):
            raise SignatureMismatchError("signature does not match payload")

        if not _EXPIRY_PATTERN.match(expiry):
            raise MalformedTokenError("expiry is not a decimal integer")
        expiry_ms = int(expiry)
        if self._clock() >= expiry_ms:
            raise TokenExpiredError(expiry_ms)

        if not request_id:
            raise MalformedTokenError("empty request id")
        try:
            kind = ActionKind(action)
        except ValueError:
            raise InvalidActionKindError(action) from None

        return VerifiedAction(request_id=request_id, action=kind)
