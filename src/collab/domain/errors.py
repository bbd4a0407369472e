"""Domain-specific exception classes for the collaboration action service."""

from collab.domain.types import RequestStatus


class CollabError(Exception):
    """Base class for all domain errors in the collaboration action service."""


class InvalidTokenError(CollabError):
    """Base class for action tokens that must be rejected.

    Subclasses are only distinguished internally (logs, metrics).  Callers
    outside the token layer must report every subclass as the same
    "invalid or expired link" outcome.
    """


class MalformedTokenError(InvalidTokenError):
    """Raised when a token does not have the expected shape."""


class SignatureMismatchError(InvalidTokenError):
    """Raised when a token's signature does not match its payload."""


class TokenExpiredError(InvalidTokenError):
    """Raised when a correctly signed token is past its expiry.

    Attributes:
        expiry_ms: The expiry encoded in the token, in epoch milliseconds.
    """

    def __init__(self, expiry_ms: int) -> None:
        self.expiry_ms = expiry_ms
        super().__init__(f"Token expired at {expiry_ms}")


class InvalidActionKindError(CollabError):
    """Raised when an action value is not one of the enumerated kinds.

    Attributes:
        action: The rejected action value.
    """

    def __init__(self, action: object) -> None:
        self.action = action
        super().__init__(f"Unknown action kind: {action!r}")


class RequestNotFoundError(CollabError):
    """Raised when a collaboration request id does not resolve.

    Attributes:
        request_id: The id that was looked up.
    """

    def __init__(self, request_id: str) -> None:
        self.request_id = request_id
        super().__init__(f"Collaboration request '{request_id}' not found")


class InvalidTransitionError(CollabError):
    """Raised when an event is not allowed from the request's current status.

    Attributes:
        current_status: The status the request was in.
        event: The event that was rejected.
    """

    def __init__(self, current_status: RequestStatus, event: str) -> None:
        self.current_status = current_status
        self.event = event
        super().__init__(f"Cannot apply event '{event}' in status '{current_status}'")


class ConflictError(CollabError):
    """Raised by the store when a compare-and-swap transition loses.

    Attributes:
        request_id: The request that was being transitioned.
        expected: The status the caller expected.
        actual: The status found at commit time.
    """

    def __init__(
        self, request_id: str, expected: RequestStatus, actual: RequestStatus
    ) -> None:
        self.request_id = request_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Request '{request_id}' is '{actual}', expected '{expected}'"
        )


class TransientError(CollabError):
    """Raised when the store times out or is temporarily unavailable.

    Safe to retry: the compare-and-swap either applies once or reports that
    the transition already happened.
    """
