"""Event admission filter.

Runs before anything is queued so that ordinary pod churn never reaches the
reconciler. One pure function per event type; ``should_reconcile`` picks the
function from the event's type tag.
"""

from __future__ import annotations

from collections.abc import Callable

from slackgenie.classifier import is_alert_worthy
from slackgenie.models.events import PodEvent, PodEventType


def admit_create(event: PodEvent) -> bool:
    # Pods can be created already failing (bad image, unschedulable).
    return is_alert_worthy(event.pod)


def admit_update(event: PodEvent) -> bool:
    old = event.old_pod
    if old is not None and old.resource_version == event.pod.resource_version:
        return False
    return is_alert_worthy(event.pod)


def admit_delete(event: PodEvent) -> bool:
    # Always: the reconcile that follows clears the pod's debounce entries.
    return True


def admit_generic(event: PodEvent) -> bool:
    return False


_ADMISSION: dict[PodEventType, Callable[[PodEvent], bool]] = {
    PodEventType.CREATE: admit_create,
    PodEventType.UPDATE: admit_update,
    PodEventType.DELETE: admit_delete,
    PodEventType.GENERIC: admit_generic,
}


def should_reconcile(event: PodEvent) -> bool:
    """Return True if *event* should schedule a reconcile of its Pod."""
    return _ADMISSION[event.type](event)
