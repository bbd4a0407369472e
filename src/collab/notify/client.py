"""Notifier implementations: HTTP messaging provider and logging fallback.

``HttpNotifier`` posts template name, channel, recipient, and variables to a
transactional messaging API.  Every HTTP call is bounded by a timeout and
retried with backoff; a call that still fails is reported as an undelivered
``DeliveryResult`` rather than raised, so the state machine can record it
and move on.
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx
import structlog
from pydantic import SecretStr

from collab.notify.models import DeliveryResult, Notification
from collab.resilience.retry import resilient_api_call

logger = structlog.get_logger()


class Notifier(Protocol):
    """Anything that can attempt delivery of a :class:`Notification`."""

    def send(self, notification: Notification) -> DeliveryResult: ...


class HttpNotifier:
    """Deliver notifications through an HTTP messaging provider.

    Args:
        api_url: Endpoint accepting ``POST`` of a JSON message.
        api_key: Bearer token for the provider.
        timeout: Per-attempt timeout in seconds.
        client: Optional pre-built ``httpx.Client`` (tests inject a
            ``MockTransport`` through this).
    """

    def __init__(
        self,
        api_url: str,
        api_key: SecretStr,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._api_url = api_url
        self._headers = {"Authorization": f"Bearer {api_key.get_secret_value()}"}
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    @resilient_api_call("notifier")
    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        response = self._client.post(self._api_url, json=payload, headers=self._headers)
        response.raise_for_status()
        body: dict[str, Any] = response.json() if response.content else {}
        return body

    def send(self, notification: Notification) -> DeliveryResult:
        """Attempt delivery of *notification*.

        Returns:
            A ``DeliveryResult``; transport and HTTP errors are captured in
            it instead of being raised.
        """
        payload = {
            "template": notification.template.value,
            "channel": notification.channel.value,
            "to": notification.recipient,
            "variables": notification.variables,
        }
        try:
            body = self._post(payload)
        except httpx.HTTPError as exc:
            logger.warning(
                "notification_delivery_failed",
                template=notification.template.value,
                channel=notification.channel.value,
                error_class=type(exc).__name__,
            )
            return DeliveryResult(
                delivered=False,
                error_class=type(exc).__name__,
                error_message=str(exc),
            )

        provider_id = body.get("id")
        logger.info(
            "notification_delivered",
            template=notification.template.value,
            channel=notification.channel.value,
            provider_id=provider_id,
        )
        return DeliveryResult(
            delivered=True,
            provider_id=str(provider_id) if provider_id is not None else None,
        )


class LoggingNotifier:
    """Fallback used when no messaging provider is configured.

    Logs what would have been sent and reports it as undelivered so the
    action log shows that nobody was actually notified.
    """

    def send(self, notification: Notification) -> DeliveryResult:
        """Log *notification* instead of delivering it."""
        logger.info(
            "notification_not_sent_no_provider",
            template=notification.template.value,
            channel=notification.channel.value,
            variables=sorted(notification.variables),
        )
        return DeliveryResult(
            delivered=False,
            error_class="NotifierDisabled",
            error_message="no messaging provider configured",
        )
