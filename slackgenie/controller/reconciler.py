"""Pod reconciler: classify, debounce, dispatch, record.

Each run handles one Pod identity and holds no state of its own; everything
that outlives a run lives in the DebounceStore.

    fetch ──(gone)──────────────────────────────> evict debounce entries
      │
    classify ──(healthy)──> done
      │
    debounce check ──(suppressed)──> done
      │
    dispatch ──(DeliveryError)──> requeue after RETRY_DELAY_SECONDS
      │
    record ──> done

A delivery failure never records, so the retry is not itself suppressed.
Fetch errors other than "not found" propagate to the work queue.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol

import structlog

from slackgenie.classifier import classify_pod
from slackgenie.debounce import DebounceStore
from slackgenie.models.alerts import AlertKey, PodAlert
from slackgenie.models.pods import PodIdentity, PodSnapshot
from slackgenie.notifications.formatting import build_pod_alert
from slackgenie.notifications.slack import DeliveryError
from slackgenie.observability.metrics import (
    alert_delivery_failures_total,
    alerts_sent_total,
    alerts_suppressed_total,
)

_log = structlog.get_logger(component="controller.reconciler")

RETRY_DELAY_SECONDS = 300.0


class PodSource(Protocol):
    async def get_pod(self, identity: PodIdentity) -> PodSnapshot | None:
        """Return the current snapshot, or None if the Pod no longer exists."""
        ...


class AlertSender(Protocol):
    async def send(self, alert: PodAlert) -> None: ...


class ReconcileOutcome(StrEnum):
    CLEANED_UP = "cleaned_up"
    HEALTHY = "healthy"
    SUPPRESSED = "suppressed"
    ALERTED = "alerted"
    DELIVERY_FAILED = "delivery_failed"


@dataclass(frozen=True)
class ReconcileResult:
    outcome: ReconcileOutcome
    requeue_after: float | None = None
    reason: str = ""


class KubernetesPodSource:
    """Reads Pods through a kubernetes-asyncio CoreV1Api."""

    def __init__(self, core_v1: Any, api_client: Any) -> None:
        self._v1 = core_v1
        self._api_client = api_client

    async def get_pod(self, identity: PodIdentity) -> PodSnapshot | None:
        from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

        try:
            pod = await self._v1.read_namespaced_pod(name=identity.name, namespace=identity.namespace)
        except ApiException as exc:
            if exc.status == 404:
                return None
            raise
        return PodSnapshot.from_dict(self._api_client.sanitize_for_serialization(pod))


class PodReconciler:
    """Runs one classify → debounce → dispatch → record pass per Pod.

    Args:
        pods:        Where current Pod snapshots come from.
        notifier:    Delivers alerts; raises DeliveryError on failure.
        store:       Shared debounce store.
        retry_delay: Seconds before a failed delivery is retried.
    """

    def __init__(
        self,
        pods: PodSource,
        notifier: AlertSender,
        store: DebounceStore,
        retry_delay: float = RETRY_DELAY_SECONDS,
    ) -> None:
        self._pods = pods
        self._notifier = notifier
        self._store = store
        self._retry_delay = retry_delay

    async def reconcile(self, identity: PodIdentity) -> ReconcileResult:
        pod = await self._pods.get_pod(identity)
        if pod is None:
            removed = self._store.evict_all(identity)
            if removed:
                _log.info("pod_cache_entries_evicted", pod=identity.name, namespace=identity.namespace, removed=removed)
            return ReconcileResult(ReconcileOutcome.CLEANED_UP)

        verdict = classify_pod(pod)
        if not verdict.alert_worthy:
            return ReconcileResult(ReconcileOutcome.HEALTHY)

        key = AlertKey(pod.namespace, pod.name, verdict.reason)
        if self._store.is_suppressed(key):
            alerts_suppressed_total.labels(reason=verdict.reason).inc()
            _log.debug("alert_suppressed", pod=pod.name, namespace=pod.namespace, reason=verdict.reason)
            return ReconcileResult(ReconcileOutcome.SUPPRESSED, reason=verdict.reason)

        alert = build_pod_alert(pod, verdict.reason)
        try:
            await self._notifier.send(alert)
        except DeliveryError as exc:
            alert_delivery_failures_total.labels(kind=exc.kind).inc()
            _log.error(
                "alert_delivery_failed",
                pod=pod.name,
                namespace=pod.namespace,
                reason=verdict.reason,
                error=str(exc),
                kind=exc.kind,
                retry_in_seconds=self._retry_delay,
            )
            return ReconcileResult(
                ReconcileOutcome.DELIVERY_FAILED,
                requeue_after=self._retry_delay,
                reason=verdict.reason,
            )

        self._store.record(key)
        alerts_sent_total.labels(reason=verdict.reason).inc()
        _log.info(
            "alert_sent",
            pod=pod.name,
            namespace=pod.namespace,
            reason=verdict.reason,
            restarts=alert.restart_count,
        )
        return ReconcileResult(ReconcileOutcome.ALERTED, reason=verdict.reason)
