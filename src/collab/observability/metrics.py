"""Prometheus metrics instrumentation for the collaboration action service.

Provides:
- ``setup_metrics(app)``: Attach prometheus-fastapi-instrumentator to a FastAPI app,
  exposing ``/metrics`` with HTTP request duration/count.
- ``REDEMPTIONS``: Counter of token redemptions by outcome.
- ``DEALS_CREATED``: Counter of deals created by acceptance.
- ``NOTIFICATION_FAILURES``: Counter of notifications that were not delivered.

Business metrics are updated where the event happens, not by polling the database.
"""

from __future__ import annotations

from fastapi import FastAPI
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator

REDEMPTIONS: Counter = Counter(
    "collab_action_redemptions_total",
    "Action link redemptions by outcome",
    ["outcome"],
)

DEALS_CREATED: Counter = Counter(
    "collab_deals_created_total",
    "Total number of brand deals created by accepted requests",
)

NOTIFICATION_FAILURES: Counter = Counter(
    "collab_notification_failures_total",
    "Notifications that could not be delivered, by template",
    ["template"],
)


def setup_metrics(app: FastAPI) -> None:
    """Instrument *app* with Prometheus HTTP metrics and expose ``/metrics``.

    Excludes health/ready/metrics endpoints from instrumentation to avoid
    noise in dashboards.

    Args:
        app: The FastAPI application to instrument.
    """
    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        excluded_handlers=["/health", "/ready", "/metrics"],
    ).instrument(app).expose(app, include_in_schema=False, should_gzip=True)
