"""Sentry SDK initialization with structlog-sentry bridge.

Error-level log events (integrity errors, unexpected failures during a
redemption) reach Sentry through the structlog processor chain.  Request
data attached to events is scrubbed of action tokens before it leaves the
process.
"""

from __future__ import annotations

import logging
from typing import Any

import sentry_sdk
import structlog
from sentry_sdk.integrations.logging import LoggingIntegration
from structlog_sentry import SentryProcessor

from collab.observability.middleware import REDACTED, redact_path


def scrub_action_tokens(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any]:
    """``before_send`` hook removing action tokens from an event's request data."""
    request = event.get("request")
    if not request:
        return event

    if isinstance(request.get("url"), str):
        request["url"] = redact_path(request["url"])
    if "token=" in str(request.get("query_string") or ""):
        request["query_string"] = REDACTED
    data = request.get("data")
    if isinstance(data, dict) and "token" in data:
        data["token"] = REDACTED
    return event


def init_sentry(dsn: str, environment: str = "development") -> None:
    """Initialize Sentry SDK with the given *dsn*.

    No-op when *dsn* is empty, so it is safe to call unconditionally.

    Args:
        dsn: Sentry DSN string.  Empty string disables Sentry.
        environment: Environment tag attached to every event.
    """
    if not dsn:
        return

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=0.1,
        send_default_pii=False,
        before_send=scrub_action_tokens,
        integrations=[
            # structlog-sentry reports errors; the stdlib logging hook would duplicate them.
            LoggingIntegration(event_level=None, level=None),
        ],
    )


def get_sentry_processor() -> structlog.types.Processor:
    """Return a structlog processor that forwards ERROR events to Sentry.

    Goes after ``add_log_level`` and before the renderer.
    """
    return SentryProcessor(event_level=logging.ERROR)
