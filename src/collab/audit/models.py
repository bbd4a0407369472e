"""Action log models for the collaboration request audit trail.

Every state transition and every notable side-effect attempt (notification,
contract hand-off, attachment scan) produces exactly one entry.
"""

from enum import StrEnum

from pydantic import BaseModel


class ActionLogEvent(StrEnum):
    """Types of events recorded in the action log."""

    REQUEST_ACCEPTED = "request_accepted"
    REQUEST_DECLINED = "request_declined"
    REQUEST_COUNTERED = "request_countered"
    REQUEST_EXPIRED = "request_expired"
    NOTIFICATION_SENT = "notification_sent"
    NOTIFICATION_FAILED = "notification_failed"
    CONTRACT_QUEUED = "contract_queued"
    CONTRACT_DEFERRED = "contract_deferred"
    CONTRACT_FAILED = "contract_failed"
    ATTACHMENT_SCANNED = "attachment_scanned"
    ATTACHMENT_SCAN_FAILED = "attachment_scan_failed"
    INTEGRITY_ERROR = "integrity_error"


class ActionLogEntry(BaseModel):
    """A single append-only action log entry.

    ``request_id`` and ``deal_id`` are both optional so attachment events
    and integrity errors can be recorded without a resolved request.
    """

    event: ActionLogEvent
    request_id: str | None = None
    deal_id: str | None = None
    metadata: dict[str, str] | None = None
