"""Alert data structures."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import NamedTuple

from slackgenie.models.pods import PodIdentity


class AlertKey(NamedTuple):
    """Debounce identity: one alert per (namespace, pod, reason) per window."""

    namespace: str
    name: str
    reason: str

    @property
    def identity(self) -> PodIdentity:
        return PodIdentity(self.namespace, self.name)

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}-{self.reason}"


@dataclass(frozen=True)
class PodAlert:
    """A single notification about a failing Pod.

    Built fresh for every dispatch attempt and discarded afterwards.
    """

    pod_name: str
    namespace: str
    container_name: str
    image: str
    reason: str
    message: str
    restart_count: int
    timestamp: datetime
