"""Pod alert construction and Slack message formatting."""

from __future__ import annotations

from datetime import UTC, datetime

from slackgenie.models.alerts import PodAlert
from slackgenie.models.pods import ContainerStatus, PodSnapshot

_REASON_EMOJI: dict[str, str] = {
    "CrashLoopBackOff": "\U0001f6a8",  # rotating light
    "ImagePullBackOff": "\U0001f534",  # red circle
    "ErrImagePull": "\U0001f4e6",  # package
    "OOMKilled": "\U0001f4a5",  # collision
    "FailedScheduling": "⏰",  # alarm clock
}
_DEFAULT_EMOJI = "⚠️"  # warning sign


def emoji_for_reason(reason: str) -> str:
    return _REASON_EMOJI.get(reason, _DEFAULT_EMOJI)


def format_timestamp(ts: datetime) -> str:
    """RFC 3339 in UTC with second precision, e.g. ``2026-02-18T12:00:00Z``."""
    return ts.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def _problem_container(pod: PodSnapshot) -> ContainerStatus | None:
    for status in pod.container_statuses:
        if status.waiting is not None:
            return status
        if status.terminated is not None and status.terminated.exit_code != 0:
            return status
    for status in pod.init_container_statuses:
        if status.waiting is not None:
            return status
    return None


def _pod_level_message(pod: PodSnapshot) -> str:
    if pod.message:
        return pod.message
    for condition in pod.conditions:
        if condition.type == "PodScheduled" and condition.status == "False":
            return condition.message
    return ""


def build_pod_alert(pod: PodSnapshot, reason: str, now: datetime | None = None) -> PodAlert:
    """Extract alert details from *pod* for a failure classified as *reason*.

    Container details come from the first container that is waiting or
    terminated with a non-zero exit, then from the first waiting init
    container. When neither exists (failed or unschedulable Pods) the first
    declared container is named and the message comes from the Pod status.
    """
    container_name = image = message = ""
    restart_count = 0

    status = _problem_container(pod)
    if status is not None:
        container_name = status.name
        image = status.image
        restart_count = status.restart_count
        if status.waiting is not None:
            message = status.waiting.message
        elif status.terminated is not None:
            message = status.terminated.message
    elif pod.containers:
        container_name = pod.containers[0].name
        image = pod.containers[0].image

    if not message:
        message = _pod_level_message(pod)

    return PodAlert(
        pod_name=pod.name,
        namespace=pod.namespace,
        container_name=container_name,
        image=image,
        reason=reason,
        message=message,
        restart_count=restart_count,
        timestamp=now or datetime.now(tz=UTC),
    )


def format_alert_message(alert: PodAlert, cluster_name: str = "") -> str:
    """Render *alert* as Slack mrkdwn. Output depends only on the inputs."""
    header = "*Kube-SlackGenie Alert:*"
    if cluster_name:
        header = f"*Kube-SlackGenie Alert ({cluster_name}):*"
    return (
        f"{emoji_for_reason(alert.reason)} {header}\n"
        f"\n"
        f"*Pod:* {alert.pod_name} (namespace: {alert.namespace})\n"
        f"*Container:* {alert.container_name}\n"
        f"*Image:* {alert.image}\n"
        f"*Reason:* {alert.reason}\n"
        f"*Message:* {alert.message}\n"
        f"*Restarts:* {alert.restart_count}\n"
        f"*Time:* {format_timestamp(alert.timestamp)}"
    )


def build_slack_payload(message: str) -> dict[str, object]:
    """Wrap *message* as Slack incoming-webhook JSON: fallback text plus one mrkdwn section."""
    return {
        "text": message,
        "blocks": [
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": message},
            }
        ],
    }
