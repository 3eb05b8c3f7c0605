"""Reconcile work queue.

Pod identities are queued for a fixed pool of asyncio workers:

* An identity waiting in the queue is held once; repeated ``add`` calls
  collapse into a single pending reconcile.
* An identity added while a worker is reconciling it is re-queued when that
  run finishes, so the latest event is never lost.
* ``add_after`` schedules a delayed add (delivery retries). An identity has
  at most one pending timer; a second request keeps the earlier deadline.
* A reconcile that raises is retried with per-identity exponential back-off;
  the failure count resets after the next clean run.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from slackgenie.models.pods import PodIdentity
from slackgenie.observability.metrics import reconcile_queue_depth, reconcile_total

_log = structlog.get_logger(component="controller.queue")

_BASE_BACKOFF_SECONDS = 0.005
_MAX_BACKOFF_SECONDS = 1000.0

ReconcileFn = Callable[[PodIdentity], Awaitable[Any]]


class ReconcileQueue:
    """De-duplicating delayed work queue driven by ``workers`` coroutines.

    Args:
        reconcile_fn: Coroutine run once per dequeued identity. Its return
                      value may carry a ``requeue_after`` attribute (seconds).
        workers:      Number of concurrent reconciles.
    """

    def __init__(
        self,
        reconcile_fn: ReconcileFn,
        workers: int = 4,
        base_backoff: float = _BASE_BACKOFF_SECONDS,
        max_backoff: float = _MAX_BACKOFF_SECONDS,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self._reconcile_fn = reconcile_fn
        self._workers = workers
        self._base_backoff = base_backoff
        self._max_backoff = max_backoff

        self._queue: asyncio.Queue[PodIdentity] = asyncio.Queue()
        self._dirty: set[PodIdentity] = set()
        self._processing: set[PodIdentity] = set()
        self._failures: dict[PodIdentity, int] = {}
        self._timers: dict[PodIdentity, asyncio.TimerHandle] = {}
        self._tasks: list[asyncio.Task[None]] = []
        self._running = False

    @property
    def depth(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return self._running

    @property
    def pending_retries(self) -> int:
        """Identities waiting on a delayed add."""
        return len(self._timers)

    def add(self, identity: PodIdentity) -> None:
        if identity in self._dirty:
            return
        self._dirty.add(identity)
        if identity in self._processing:
            return
        self._queue.put_nowait(identity)
        reconcile_queue_depth.set(self._queue.qsize())

    def add_after(self, identity: PodIdentity, delay: float) -> None:
        if delay <= 0:
            self.add(identity)
            return
        loop = asyncio.get_running_loop()
        deadline = loop.time() + delay
        pending = self._timers.get(identity)
        if pending is not None:
            if pending.when() <= deadline:
                return
            pending.cancel()

        def _fire() -> None:
            self._timers.pop(identity, None)
            self.add(identity)

        self._timers[identity] = loop.call_at(deadline, _fire)

    def add_rate_limited(self, identity: PodIdentity) -> float:
        """Requeue after an exponential back-off. Returns the delay used."""
        failures = self._failures.get(identity, 0)
        self._failures[identity] = failures + 1
        delay = min(self._base_backoff * (2**failures), self._max_backoff)
        self.add_after(identity, delay)
        return delay

    def forget(self, identity: PodIdentity) -> None:
        self._failures.pop(identity, None)

    def failures(self, identity: PodIdentity) -> int:
        return self._failures.get(identity, 0)

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        for i in range(self._workers):
            self._tasks.append(asyncio.create_task(self._worker(), name=f"reconcile-worker-{i}"))
        _log.info("reconcile_queue_started", workers=self._workers)

    async def stop(self) -> None:
        self._running = False
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

    async def join(self) -> None:
        """Wait until every queued identity has been processed."""
        await self._queue.join()

    async def _worker(self) -> None:
        while True:
            identity = await self._queue.get()
            self._dirty.discard(identity)
            self._processing.add(identity)
            reconcile_queue_depth.set(self._queue.qsize())
            try:
                await self._process(identity)
            finally:
                self._processing.discard(identity)
                if identity in self._dirty:
                    self._queue.put_nowait(identity)
                self._queue.task_done()

    async def _process(self, identity: PodIdentity) -> None:
        try:
            result = await self._reconcile_fn(identity)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            reconcile_total.labels(outcome="error").inc()
            delay = self.add_rate_limited(identity)
            _log.error(
                "reconcile_failed",
                pod=identity.name,
                namespace=identity.namespace,
                error=str(exc),
                retry_in_seconds=delay,
            )
            return

        self.forget(identity)
        outcome = getattr(result, "outcome", None)
        if outcome is not None:
            reconcile_total.labels(outcome=str(outcome)).inc()
        requeue_after = getattr(result, "requeue_after", None)
        if requeue_after:
            self.add_after(identity, requeue_after)
