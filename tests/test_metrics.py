"""Tests for Prometheus metrics endpoint and custom business metrics."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from collab.observability.metrics import (
    DEALS_CREATED,
    NOTIFICATION_FAILURES,
    REDEMPTIONS,
    setup_metrics,
)


@pytest.fixture()
def metrics_app() -> FastAPI:
    """Create a minimal FastAPI app with Prometheus instrumentation."""
    app = FastAPI()

    @app.get("/hello")
    async def hello():
        return {"msg": "hello"}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    @app.get("/ready")
    async def ready():
        return {"status": "ready"}

    setup_metrics(app)
    return app


@pytest.fixture()
def metrics_client(metrics_app: FastAPI) -> TestClient:
    """TestClient for the metrics-enabled app."""
    return TestClient(metrics_app)


def test_metrics_endpoint_returns_prometheus_format(metrics_client: TestClient) -> None:
    """GET /metrics returns 200 with Prometheus-format text containing expected metrics."""
    metrics_client.get("/hello")
    REDEMPTIONS.labels(outcome="applied")
    NOTIFICATION_FAILURES.labels(template="collab_request_accepted")
    resp = metrics_client.get("/metrics")
    assert resp.status_code == 200
    body = resp.text
    assert "http_request" in body
    assert "collab_action_redemptions_total" in body
    assert "collab_deals_created_total" in body
    assert "collab_notification_failures_total" in body


def test_excluded_handlers_not_in_metrics(metrics_client: TestClient) -> None:
    """/health and /ready do NOT appear in metrics output (excluded_handlers works)."""
    metrics_client.get("/health")
    metrics_client.get("/ready")
    resp = metrics_client.get("/metrics")
    lines = [
        line
        for line in resp.text.splitlines()
        if "http_request_duration" in line and 'handler="' in line
    ]
    for line in lines:
        assert '/health"' not in line, f"/health found in metrics: {line}"
        assert '/ready"' not in line, f"/ready found in metrics: {line}"


def test_deals_created_counter_increments(metrics_client: TestClient) -> None:
    """DEALS_CREATED counter increments are reflected in /metrics output."""
    initial_value = _extract_counter_value(
        metrics_client.get("/metrics").text, "collab_deals_created_total"
    )

    DEALS_CREATED.inc()

    new_value = _extract_counter_value(
        metrics_client.get("/metrics").text, "collab_deals_created_total"
    )
    assert new_value == initial_value + 1.0


def test_redemption_counter_labelled_by_outcome(metrics_client: TestClient) -> None:
    """Each outcome gets its own series."""
    metric = 'collab_action_redemptions_total{outcome="conflict"}'
    REDEMPTIONS.labels(outcome="conflict")
    initial_value = _extract_counter_value(metrics_client.get("/metrics").text, metric)

    REDEMPTIONS.labels(outcome="conflict").inc()

    new_value = _extract_counter_value(metrics_client.get("/metrics").text, metric)
    assert new_value == initial_value + 1.0


def _extract_counter_value(text: str, metric_name: str) -> float:
    """Extract the numeric value of a counter from Prometheus text output."""
    for line in text.splitlines():
        if line.startswith(metric_name) and not line.startswith(metric_name + "_"):
            # e.g. "collab_deals_created_total 3.0"
            parts = line.split()
            if len(parts) == 2:
                return float(parts[1])
    raise ValueError(f"Metric {metric_name} not found in output")
