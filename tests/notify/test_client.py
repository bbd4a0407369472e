"""Tests for HttpNotifier and LoggingNotifier."""

from __future__ import annotations

import json

import httpx
import pytest
from pydantic import SecretStr

from collab.notify.client import HttpNotifier, LoggingNotifier
from collab.notify.models import Channel, Notification, NotificationTemplate

API_URL = "https://messaging.example.com/v1/send"


@pytest.fixture
def notification() -> Notification:
    return Notification(
        template=NotificationTemplate.BRAND_REQUEST_ACCEPTED,
        channel=Channel.EMAIL,
        recipient="team@acme.example",
        variables={"brand_name": "Acme", "deal_id": "deal-1"},
    )


@pytest.fixture(autouse=True)
def _no_retry_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep retry backoff from slowing the suite down."""
    monkeypatch.setattr("tenacity.nap.time.sleep", lambda seconds: None)


def _notifier(handler) -> HttpNotifier:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HttpNotifier(API_URL, SecretStr("provider-key"), client=client)


class TestHttpNotifier:
    def test_posts_template_channel_recipient_and_variables(self, notification):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "msg-42"})

        result = _notifier(handler).send(notification)

        assert result.delivered is True
        assert result.provider_id == "msg-42"
        (request,) = seen
        assert str(request.url) == API_URL
        assert request.headers["Authorization"] == "Bearer provider-key"
        assert json.loads(request.content) == {
            "template": "collab_request_accepted",
            "channel": "email",
            "to": "team@acme.example",
            "variables": {"brand_name": "Acme", "deal_id": "deal-1"},
        }

    def test_empty_body_is_delivered_without_id(self, notification):
        result = _notifier(lambda request: httpx.Response(202)).send(notification)
        assert result.delivered is True
        assert result.provider_id is None

    def test_client_error_is_not_retried(self, notification):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(422, json={"error": "unknown template"})

        result = _notifier(handler).send(notification)

        assert result.delivered is False
        assert result.error_class == "HTTPStatusError"
        assert len(calls) == 1

    def test_server_error_is_retried_then_reported(self, notification):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503)

        result = _notifier(handler).send(notification)

        assert result.delivered is False
        assert result.error_class == "HTTPStatusError"
        assert len(calls) == 3

    def test_recovers_after_transient_failure(self, notification):
        responses = iter([httpx.Response(500), httpx.Response(200, json={"id": "msg-2"})])
        result = _notifier(lambda request: next(responses)).send(notification)
        assert result.delivered is True
        assert result.provider_id == "msg-2"

    def test_transport_error_is_reported(self, notification):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        result = _notifier(handler).send(notification)

        assert result.delivered is False
        assert result.error_class == "ConnectError"
        assert "connection refused" in (result.error_message or "")


class TestLoggingNotifier:
    def test_reports_undelivered(self, notification):
        result = LoggingNotifier().send(notification)
        assert result.delivered is False
        assert result.error_class == "NotifierDisabled"
