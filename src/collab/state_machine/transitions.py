"""Transition map defining all valid (status, event) -> status mappings."""

from enum import StrEnum

from collab.domain.errors import InvalidTransitionError
from collab.domain.types import ActionKind, RequestStatus


class RequestEvent(StrEnum):
    """Events that can move a collaboration request out of ``pending``."""

    ACCEPT = "accept"
    DECLINE = "decline"
    COUNTER = "counter"
    EXPIRE = "expire"


# All valid (current_status, event) -> next_status mappings.
# Any pair not in this dict is an invalid transition.
TRANSITIONS: dict[tuple[RequestStatus, str], RequestStatus] = {
    (RequestStatus.PENDING, RequestEvent.ACCEPT): RequestStatus.ACCEPTED,
    (RequestStatus.PENDING, RequestEvent.DECLINE): RequestStatus.DECLINED,
    (RequestStatus.PENDING, RequestEvent.COUNTER): RequestStatus.COUNTERED,
    (RequestStatus.PENDING, RequestEvent.EXPIRE): RequestStatus.EXPIRED,
}

# States that reject all events -- no outgoing transitions allowed.
TERMINAL_STATES: frozenset[RequestStatus] = frozenset(
    {
        RequestStatus.ACCEPTED,
        RequestStatus.DECLINED,
        RequestStatus.COUNTERED,
        RequestStatus.EXPIRED,
    }
)

# The event a brand's signed link triggers.
ACTION_EVENTS: dict[ActionKind, RequestEvent] = {
    ActionKind.ACCEPT: RequestEvent.ACCEPT,
    ActionKind.DECLINE: RequestEvent.DECLINE,
}


def next_status(current: RequestStatus, event: str) -> RequestStatus:
    """Return the status *event* leads to from *current*.

    Raises:
        InvalidTransitionError: If the pair is not in ``TRANSITIONS``.
    """
    key = (current, event)
    if current in TERMINAL_STATES or key not in TRANSITIONS:
        raise InvalidTransitionError(current, event)
    return TRANSITIONS[key]


def valid_events(current: RequestStatus) -> list[str]:
    """Return a sorted list of events valid from *current*."""
    if current in TERMINAL_STATES:
        return []
    return sorted(event for status, event in TRANSITIONS if status == current)
