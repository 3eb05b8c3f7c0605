"""Pod watch stream.

Lists Pods once, then watches from the list's resourceVersion, translating
each raw notification into a PodEvent and enqueueing the Pod when the event
filter admits it. The last-seen snapshot of every Pod is kept so that update
events carry the previous state.

Recovery:
* ``410 Gone`` (resourceVersion too old) triggers an immediate relist.
  Pods that vanished while disconnected are reported as deletes.
* Any other stream failure reconnects after an exponential back-off
  (1 s doubling, capped at 30 s), reset once a watch delivers an event.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import structlog

from slackgenie.controller.filter import should_reconcile
from slackgenie.models.events import PodEvent, PodEventType
from slackgenie.models.pods import PodIdentity, PodSnapshot

_log = structlog.get_logger(component="controller.watcher")

_WATCH_TIMEOUT_SECONDS = 300
_RECONNECT_BASE_SECONDS = 1.0
_RECONNECT_MAX_SECONDS = 30.0


class _ResourceVersionExpired(Exception):
    """The watch resourceVersion is no longer served; a relist is required."""


class PodWatcher:
    """Feeds admitted Pod identities into ``enqueue``.

    Args:
        core_v1:    kubernetes-asyncio CoreV1Api.
        api_client: kubernetes-asyncio ApiClient, used to turn listed models into JSON dicts.
        enqueue:    Called with the identity of every admitted event.
        namespace:  Restrict to one namespace; empty watches all namespaces.
    """

    def __init__(
        self,
        core_v1: Any,
        api_client: Any,
        enqueue: Callable[[PodIdentity], None],
        namespace: str = "",
    ) -> None:
        self._v1 = core_v1
        self._api_client = api_client
        self._enqueue = enqueue
        self._namespace = namespace
        self._known: dict[PodIdentity, PodSnapshot] = {}
        self._task: asyncio.Task[None] | None = None
        self._synced = False

    @property
    def synced(self) -> bool:
        """True once the initial list has been processed."""
        return self._synced

    def handle(self, event_type: str, raw: dict[str, Any]) -> PodEvent | None:
        """Translate one raw watch notification, enqueue it if admitted.

        Returns the PodEvent that was evaluated, or None for notification
        types that carry no Pod (BOOKMARK, unknown).
        """
        pod = PodSnapshot.from_dict(raw)
        if not pod.name:
            return None
        identity = pod.identity
        previous = self._known.get(identity)

        if event_type == "ADDED":
            if previous is None:
                event = PodEvent(PodEventType.CREATE, pod)
            else:
                event = PodEvent(PodEventType.UPDATE, pod, old_pod=previous)
            self._known[identity] = pod
        elif event_type == "MODIFIED":
            event = PodEvent(PodEventType.UPDATE, pod, old_pod=previous)
            self._known[identity] = pod
        elif event_type == "DELETED":
            event = PodEvent(PodEventType.DELETE, pod)
            self._known.pop(identity, None)
        elif event_type == "GENERIC":
            event = PodEvent(PodEventType.GENERIC, pod)
        else:
            return None

        if should_reconcile(event):
            self._enqueue(identity)
        return event

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="pod-watcher")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

    async def _run(self) -> None:
        delay = _RECONNECT_BASE_SECONDS
        resource_version: str | None = None
        while True:
            try:
                if resource_version is None:
                    resource_version = await self.relist()
                resource_version = await self._watch(resource_version)
                delay = _RECONNECT_BASE_SECONDS
            except _ResourceVersionExpired:
                _log.info("pod_watch_expired_relisting")
                resource_version = None
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                _log.warning("pod_watch_error", error=str(exc), retry_in_seconds=delay)
                await asyncio.sleep(delay)
                delay = min(delay * 2, _RECONNECT_MAX_SECONDS)

    def _list_fn(self) -> Any:
        if self._namespace:
            return self._v1.list_namespaced_pod
        return self._v1.list_pod_for_all_namespaces

    def _list_kwargs(self) -> dict[str, Any]:
        if self._namespace:
            return {"namespace": self._namespace}
        return {}

    async def relist(self) -> str:
        """List every Pod, reconcile the local view, return the list resourceVersion."""
        response = await self._list_fn()(**self._list_kwargs())
        seen: set[PodIdentity] = set()
        for item in response.items or []:
            raw = self._api_client.sanitize_for_serialization(item)
            event = self.handle("ADDED", raw)
            if event is not None:
                seen.add(event.identity)

        for identity in [i for i in self._known if i not in seen]:
            self.handle("DELETED", _stub_pod(identity))

        self._synced = True
        _log.info("pod_list_synced", pods=len(seen), namespace=self._namespace or "*")
        return str(response.metadata.resource_version or "")

    async def _watch(self, resource_version: str) -> str:
        """Consume one watch stream. Returns the last resourceVersion seen."""
        from kubernetes_asyncio import watch  # type: ignore[import-untyped]
        from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

        w = watch.Watch()
        try:
            async for event in w.stream(
                self._list_fn(),
                resource_version=resource_version,
                timeout_seconds=_WATCH_TIMEOUT_SECONDS,
                **self._list_kwargs(),
            ):
                event_type = event.get("type", "")
                raw = event.get("raw_object") or {}
                if event_type == "ERROR":
                    if raw.get("code") == 410:
                        raise _ResourceVersionExpired()
                    raise RuntimeError(f"watch error: {raw.get('message', raw)}")
                rv = (raw.get("metadata") or {}).get("resourceVersion")
                if rv:
                    resource_version = str(rv)
                self.handle(event_type, raw)
        except ApiException as exc:
            if exc.status == 410:
                raise _ResourceVersionExpired() from exc
            raise
        finally:
            w.stop()
        return resource_version


def _stub_pod(identity: PodIdentity) -> dict[str, Any]:
    return {"metadata": {"namespace": identity.namespace, "name": identity.name}}
