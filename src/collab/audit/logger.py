"""Convenience class for appending action log entries.

Each method creates a properly structured :class:`ActionLogEntry` and hands
it to the store's best-effort ``append_action_log``.  Appending never raises:
a failed write is logged locally and reported as ``None``.
"""

from __future__ import annotations

from typing import Any

from collab.audit.models import ActionLogEntry, ActionLogEvent


class ActionLogger:
    """Typed convenience API for the append-only action log.

    Args:
        store: Any object exposing ``append_action_log(entry) -> int | None``,
            normally a ``SqliteCollabStore``.
    """

    def __init__(self, store: Any) -> None:
        self._store = store

    def append(self, entry: ActionLogEntry) -> int | None:
        """Append a pre-built entry.

        Returns:
            The row ID of the entry, or ``None`` if the write failed.
        """
        result: int | None = self._store.append_action_log(entry)
        return result

    def log_transition(
        self,
        event: ActionLogEvent,
        request_id: str,
        from_status: str,
        to_status: str,
        deal_id: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> int | None:
        """Log a committed collaboration request transition.

        Stores ``from_status`` and ``to_status`` in metadata alongside any
        caller-supplied keys.

        Args:
            event: One of the ``REQUEST_*`` events.
            request_id: The transitioned request.
            from_status: Status before the transition.
            to_status: Status after the transition.
            deal_id: The deal created by the transition, if any.
            metadata: Additional key-value metadata.

        Returns:
            The row ID of the inserted entry, or ``None`` on failure.
        """
        meta = {"from_status": from_status, "to_status": to_status}
        if metadata:
            meta.update(metadata)
        return self.append(
            ActionLogEntry(event=event, request_id=request_id, deal_id=deal_id, metadata=meta)
        )

    def log_notification(
        self,
        request_id: str,
        template: str,
        channel: str,
        recipient: str,
        delivered: bool,
        deal_id: str | None = None,
        provider_id: str | None = None,
        error_class: str | None = None,
        error_message: str | None = None,
    ) -> int | None:
        """Log one notification delivery attempt.

        Failures carry enough detail (template, recipient, channel, error
        class) for someone to follow up by hand.

        Returns:
            The row ID of the inserted entry, or ``None`` on failure.
        """
        meta: dict[str, str] = {
            "template": template,
            "channel": channel,
            "recipient": recipient,
        }
        if provider_id is not None:
            meta["provider_id"] = provider_id
        if error_class is not None:
            meta["error_class"] = error_class
        if error_message is not None:
            meta["error_message"] = error_message

        event = (
            ActionLogEvent.NOTIFICATION_SENT if delivered else ActionLogEvent.NOTIFICATION_FAILED
        )
        return self.append(
            ActionLogEntry(event=event, request_id=request_id, deal_id=deal_id, metadata=meta)
        )

    def log_contract(
        self,
        event: ActionLogEvent,
        request_id: str,
        deal_id: str,
        detail: dict[str, str] | None = None,
    ) -> int | None:
        """Log a contract hand-off outcome (queued, deferred, or failed).

        Returns:
            The row ID of the inserted entry, or ``None`` on failure.
        """
        return self.append(
            ActionLogEntry(event=event, request_id=request_id, deal_id=deal_id, metadata=detail)
        )

    def log_attachment_scan(
        self,
        request_id: str | None,
        attachment_name: str,
        verdict: str,
        error_message: str | None = None,
    ) -> int | None:
        """Log the verdict of an attachment virus scan.

        Returns:
            The row ID of the inserted entry, or ``None`` on failure.
        """
        meta = {"attachment": attachment_name, "verdict": verdict}
        if error_message is not None:
            meta["error_message"] = error_message
        event = (
            ActionLogEvent.ATTACHMENT_SCAN_FAILED
            if verdict == "error"
            else ActionLogEvent.ATTACHMENT_SCANNED
        )
        return self.append(ActionLogEntry(event=event, request_id=request_id, metadata=meta))

    def log_integrity_error(
        self,
        error_message: str,
        request_id: str | None = None,
        context: str | None = None,
    ) -> int | None:
        """Log a condition that should be impossible if tokens are only minted here.

        Returns:
            The row ID of the inserted entry, or ``None`` on failure.
        """
        meta: dict[str, str] = {"error_message": error_message}
        if context is not None:
            meta["context"] = context
        return self.append(
            ActionLogEntry(
                event=ActionLogEvent.INTEGRITY_ERROR, request_id=request_id, metadata=meta
            )
        )
