"""Slack incoming-webhook delivery for pod alerts.

One ``send`` is one HTTP POST: no retry loop, no connection reuse, no state
kept between calls. Any failure is raised as a DeliveryError subclass and
retry policy is left to the caller.
"""

from __future__ import annotations

import json

import httpx
import structlog

from slackgenie.models.alerts import PodAlert
from slackgenie.notifications.formatting import build_slack_payload, format_alert_message

_log = structlog.get_logger(component="notifications.slack")

DISPATCH_TIMEOUT_SECONDS = 30.0


class DeliveryError(Exception):
    """An alert could not be delivered to the notification endpoint."""

    kind = "unknown"


class WebhookStatusError(DeliveryError):
    """The endpoint answered with a non-2xx status."""

    kind = "status"

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"Slack webhook returned status code: {status_code}")
        self.status_code = status_code
        self.body = body


class WebhookTransportError(DeliveryError):
    """The request never produced a response (DNS, connect, TLS, read)."""

    kind = "transport"

    def __init__(self, cause: Exception) -> None:
        super().__init__(f"failed to send Slack notification: {cause}")
        self.cause = cause


class WebhookTimeoutError(WebhookTransportError):
    """The request exceeded the dispatch timeout."""

    kind = "timeout"


class PayloadSerializationError(DeliveryError):
    """The alert payload could not be encoded as JSON."""

    kind = "serialization"

    def __init__(self, cause: Exception) -> None:
        super().__init__(f"failed to marshal Slack message: {cause}")
        self.cause = cause


class SlackNotifier:
    """Posts formatted pod alerts to a Slack incoming webhook.

    Args:
        webhook_url:  Full incoming-webhook URL. Required.
        cluster_name: Optional label included in the message header.
        timeout:      Request timeout in seconds. Defaults to 30.
        transport:    Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        webhook_url: str,
        cluster_name: str = "",
        timeout: float = DISPATCH_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not webhook_url:
            raise ValueError("Slack webhook url must not be empty")
        self._url = webhook_url
        self._cluster_name = cluster_name
        self._timeout = timeout
        self._transport = transport

    @property
    def channel_name(self) -> str:
        return "slack"

    def encode(self, alert: PodAlert) -> bytes:
        """Serialise *alert* to the webhook request body."""
        message = format_alert_message(alert, cluster_name=self._cluster_name)
        try:
            return json.dumps(build_slack_payload(message), ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise PayloadSerializationError(exc) from exc

    async def send(self, alert: PodAlert) -> None:
        """Deliver *alert*. Raises DeliveryError on any failure."""
        body = self.encode(alert)

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    self._url,
                    content=body,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.TimeoutException as exc:
            raise WebhookTimeoutError(exc) from exc
        except httpx.HTTPError as exc:
            raise WebhookTransportError(exc) from exc

        if not response.is_success:
            raise WebhookStatusError(response.status_code, body=response.text[:200])

        _log.info(
            "slack_alert_sent",
            pod=alert.pod_name,
            namespace=alert.namespace,
            reason=alert.reason,
            restarts=alert.restart_count,
        )
