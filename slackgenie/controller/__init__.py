"""Pod controller for slackgenie.

Submodules
----------
filter      -- Event admission, one pure function per event type.
reconciler  -- PodReconciler: classify, debounce, dispatch, record.
queue       -- ReconcileQueue: de-duplicating delayed work queue with a worker pool.
watcher     -- PodWatcher: list + watch with relist and reconnect back-off.
"""

from slackgenie.controller.filter import should_reconcile
from slackgenie.controller.queue import ReconcileQueue
from slackgenie.controller.reconciler import (
    RETRY_DELAY_SECONDS,
    KubernetesPodSource,
    PodReconciler,
    ReconcileOutcome,
    ReconcileResult,
)
from slackgenie.controller.watcher import PodWatcher

__all__ = [
    "RETRY_DELAY_SECONDS",
    "KubernetesPodSource",
    "PodReconciler",
    "PodWatcher",
    "ReconcileOutcome",
    "ReconcileQueue",
    "ReconcileResult",
    "should_reconcile",
]
