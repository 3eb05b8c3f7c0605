"""Pod failure classification.

Decides whether a Pod's observed status deserves an operator alert and,
if so, which reason code identifies the failure. Rules are evaluated in
priority order and the first match wins:

1. Pod phase ``Failed``.
2. First container waiting on a crash-loop or image problem.
3. First container terminated with a non-zero exit for a known reason.
4. First init container waiting on a crash-loop or image problem
   (reason prefixed with ``InitContainer-``).
5. ``PodScheduled=False`` with reason ``Unschedulable`` (``FailedScheduling``).

The function is pure: no I/O, no logging, no state.
"""

from __future__ import annotations

from typing import NamedTuple

from slackgenie.models.pods import ContainerStatus, PodSnapshot

POD_FAILED_PHASE = "Failed"
FAILED_SCHEDULING = "FailedScheduling"
INIT_CONTAINER_PREFIX = "InitContainer-"

WAITING_FAILURE_REASONS = frozenset(
    {
        "CrashLoopBackOff",
        "ImagePullBackOff",
        "ErrImagePull",
        "InvalidImageName",
        "ImageInspectError",
    }
)
TERMINATED_FAILURE_REASONS = frozenset({"OOMKilled", "Error", "ContainerCannotRun", "DeadlineExceeded"})
INIT_WAITING_FAILURE_REASONS = frozenset({"CrashLoopBackOff", "ImagePullBackOff", "ErrImagePull"})


class Classification(NamedTuple):
    """Outcome of classifying one Pod snapshot."""

    alert_worthy: bool
    reason: str


NOT_ALERT_WORTHY = Classification(False, "")


def _container_failure(status: ContainerStatus) -> str | None:
    if status.waiting is not None and status.waiting.reason in WAITING_FAILURE_REASONS:
        return status.waiting.reason
    return None


def _terminated_failure(status: ContainerStatus) -> str | None:
    terminated = status.terminated
    if terminated is not None and terminated.exit_code != 0 and terminated.reason in TERMINATED_FAILURE_REASONS:
        return terminated.reason
    return None


def classify_pod(pod: PodSnapshot) -> Classification:
    """Return whether *pod* is alert-worthy and the reason code for it."""
    if pod.phase == POD_FAILED_PHASE:
        return Classification(True, pod.phase)

    for status in pod.container_statuses:
        reason = _container_failure(status)
        if reason is not None:
            return Classification(True, reason)

    for status in pod.container_statuses:
        reason = _terminated_failure(status)
        if reason is not None:
            return Classification(True, reason)

    for status in pod.init_container_statuses:
        if status.waiting is not None and status.waiting.reason in INIT_WAITING_FAILURE_REASONS:
            return Classification(True, INIT_CONTAINER_PREFIX + status.waiting.reason)

    for condition in pod.conditions:
        if condition.type == "PodScheduled" and condition.status == "False" and condition.reason == "Unschedulable":
            return Classification(True, FAILED_SCHEDULING)

    return NOT_ALERT_WORTHY


def is_alert_worthy(pod: PodSnapshot) -> bool:
    return classify_pod(pod).alert_worthy
