"""Collaboration request state machine: transitions and side effects."""

from collab.state_machine.machine import (
    ActionOutcome,
    ActionResult,
    DealStateMachine,
    creator_recipient,
)
from collab.state_machine.transitions import (
    ACTION_EVENTS,
    TERMINAL_STATES,
    TRANSITIONS,
    RequestEvent,
    next_status,
    valid_events,
)

__all__ = [
    "ACTION_EVENTS",
    "TERMINAL_STATES",
    "TRANSITIONS",
    "ActionOutcome",
    "ActionResult",
    "DealStateMachine",
    "RequestEvent",
    "creator_recipient",
    "next_status",
    "valid_events",
]
