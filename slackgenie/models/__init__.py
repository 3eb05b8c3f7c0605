"""Core data structures for slackgenie."""

from slackgenie.models.alerts import AlertKey, PodAlert
from slackgenie.models.config import SlackGenieConfig
from slackgenie.models.events import PodEvent, PodEventType
from slackgenie.models.pods import (
    ContainerSpec,
    ContainerStatus,
    PodCondition,
    PodIdentity,
    PodSnapshot,
    TerminatedState,
    WaitingState,
)

__all__ = [
    "AlertKey",
    "ContainerSpec",
    "ContainerStatus",
    "PodAlert",
    "PodCondition",
    "PodEvent",
    "PodEventType",
    "PodIdentity",
    "PodSnapshot",
    "SlackGenieConfig",
    "TerminatedState",
    "WaitingState",
]
