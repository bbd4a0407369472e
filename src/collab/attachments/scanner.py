"""Attachment virus scanning hand-off.

Brands may attach briefs or product sheets to a collaboration request.  The
scanner itself is an external service; this module defines its interface
and records every verdict in the action log next to the request's
transitions.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Protocol

import structlog

from collab.audit.logger import ActionLogger

logger = structlog.get_logger()


class ScanVerdict(StrEnum):
    """Result of scanning one attachment."""

    CLEAN = "clean"
    INFECTED = "infected"
    ERROR = "error"


class Scanner(Protocol):
    """Scans attachment bytes and returns a verdict."""

    def scan(self, name: str, content: bytes) -> ScanVerdict: ...


def record_scan(
    scanner: Scanner,
    action_logger: ActionLogger,
    name: str,
    content: bytes,
    request_id: str | None = None,
) -> ScanVerdict:
    """Scan one attachment and audit the verdict.

    A scanner that raises is recorded as an ``error`` verdict; the caller
    decides whether to keep or drop the attachment.

    Args:
        scanner: The scanning service.
        action_logger: Where the verdict is recorded.
        name: Attachment file name.
        content: Attachment bytes.
        request_id: The collaboration request the attachment belongs to.

    Returns:
        The verdict.
    """
    error_message: str | None = None
    try:
        verdict = ScanVerdict(scanner.scan(name, content))
    except Exception as exc:
        logger.exception("attachment_scan_failed", attachment=name, request_id=request_id)
        verdict = ScanVerdict.ERROR
        error_message = f"{type(exc).__name__}: {exc}"

    if verdict == ScanVerdict.INFECTED:
        logger.warning("attachment_infected", attachment=name, request_id=request_id)

    action_logger.log_attachment_scan(
        request_id,
        attachment_name=name,
        verdict=verdict.value,
        error_message=error_message,
    )
    return verdict
