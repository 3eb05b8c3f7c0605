"""Pod snapshot data structures.

A PodSnapshot is the read-only view of a Pod that every component works
from. It is built from the Kubernetes JSON representation (camelCase keys,
as returned by the API server or ``ApiClient.sanitize_for_serialization``)
and never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NamedTuple


class PodIdentity(NamedTuple):
    """(namespace, name) pair identifying a Pod across its lifetime."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class WaitingState:
    reason: str = ""
    message: str = ""


@dataclass(frozen=True)
class TerminatedState:
    reason: str = ""
    message: str = ""
    exit_code: int = 0


@dataclass(frozen=True)
class ContainerStatus:
    """Observed state of a single (init) container."""

    name: str
    image: str = ""
    restart_count: int = 0
    ready: bool = False
    waiting: WaitingState | None = None
    terminated: TerminatedState | None = None


@dataclass(frozen=True)
class PodCondition:
    type: str
    status: str
    reason: str = ""
    message: str = ""


@dataclass(frozen=True)
class ContainerSpec:
    name: str
    image: str = ""


@dataclass(frozen=True)
class PodSnapshot:
    """Point-in-time view of a Pod's metadata and status."""

    namespace: str
    name: str
    phase: str = ""
    resource_version: str = ""
    message: str = ""
    container_statuses: tuple[ContainerStatus, ...] = ()
    init_container_statuses: tuple[ContainerStatus, ...] = ()
    conditions: tuple[PodCondition, ...] = ()
    containers: tuple[ContainerSpec, ...] = ()

    @property
    def identity(self) -> PodIdentity:
        return PodIdentity(self.namespace, self.name)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> PodSnapshot:
        """Build a snapshot from a Pod's JSON representation.

        Missing sections are tolerated: a freshly created Pod has no status
        yet, and a Pending Pod has no container statuses.
        """
        metadata = raw.get("metadata") or {}
        spec = raw.get("spec") or {}
        status = raw.get("status") or {}
        return cls(
            namespace=str(metadata.get("namespace") or ""),
            name=str(metadata.get("name") or ""),
            phase=str(status.get("phase") or ""),
            resource_version=str(metadata.get("resourceVersion") or ""),
            message=str(status.get("message") or ""),
            container_statuses=tuple(_container_status(cs) for cs in status.get("containerStatuses") or []),
            init_container_statuses=tuple(
                _container_status(cs) for cs in status.get("initContainerStatuses") or []
            ),
            conditions=tuple(
                PodCondition(
                    type=str(c.get("type") or ""),
                    status=str(c.get("status") or ""),
                    reason=str(c.get("reason") or ""),
                    message=str(c.get("message") or ""),
                )
                for c in status.get("conditions") or []
            ),
            containers=tuple(
                ContainerSpec(name=str(c.get("name") or ""), image=str(c.get("image") or ""))
                for c in spec.get("containers") or []
            ),
        )


def _container_status(raw: dict[str, Any]) -> ContainerStatus:
    state = raw.get("state") or {}
    waiting_raw = state.get("waiting")
    terminated_raw = state.get("terminated")

    waiting = None
    if waiting_raw is not None:
        waiting = WaitingState(
            reason=str(waiting_raw.get("reason") or ""),
            message=str(waiting_raw.get("message") or ""),
        )

    terminated = None
    if terminated_raw is not None:
        terminated = TerminatedState(
            reason=str(terminated_raw.get("reason") or ""),
            message=str(terminated_raw.get("message") or ""),
            exit_code=int(terminated_raw.get("exitCode") or 0),
        )

    return ContainerStatus(
        name=str(raw.get("name") or ""),
        image=str(raw.get("image") or ""),
        restart_count=int(raw.get("restartCount") or 0),
        ready=bool(raw.get("ready", False)),
        waiting=waiting,
        terminated=terminated,
    )
