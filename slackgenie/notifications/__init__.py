"""Notification delivery for slackgenie.

Exports:
    SlackNotifier             -- Posts pod alerts to a Slack incoming webhook.
    DeliveryError             -- Base of every delivery failure.
    WebhookStatusError        -- Non-2xx response.
    WebhookTransportError     -- Network failure before a response arrived.
    WebhookTimeoutError       -- Request exceeded the 30 s dispatch timeout.
    PayloadSerializationError -- Payload could not be encoded.
    build_pod_alert           -- Extracts a PodAlert from a failing Pod snapshot.
"""

from __future__ import annotations

from slackgenie.notifications.formatting import (
    build_pod_alert,
    build_slack_payload,
    emoji_for_reason,
    format_alert_message,
)
from slackgenie.notifications.slack import (
    DISPATCH_TIMEOUT_SECONDS,
    DeliveryError,
    PayloadSerializationError,
    SlackNotifier,
    WebhookStatusError,
    WebhookTimeoutError,
    WebhookTransportError,
)

__all__ = [
    "DISPATCH_TIMEOUT_SECONDS",
    "DeliveryError",
    "PayloadSerializationError",
    "SlackNotifier",
    "WebhookStatusError",
    "WebhookTimeoutError",
    "WebhookTransportError",
    "build_pod_alert",
    "build_slack_payload",
    "emoji_for_reason",
    "format_alert_message",
]
