"""Pod lifecycle notifications as delivered by the watch stream."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from slackgenie.models.pods import PodIdentity, PodSnapshot


class PodEventType(StrEnum):
    """Kind of lifecycle notification."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    GENERIC = "generic"


@dataclass(frozen=True)
class PodEvent:
    """One lifecycle notification for a Pod.

    ``old_pod`` is only meaningful for UPDATE events and may be None when the
    previous state was never observed (e.g. right after a relist).
    """

    type: PodEventType
    pod: PodSnapshot
    old_pod: PodSnapshot | None = None

    @property
    def identity(self) -> PodIdentity:
        return self.pod.identity
