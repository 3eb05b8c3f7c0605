"""Tests for ReconcileQueue: de-duplication, delayed requeue, error back-off."""

from __future__ import annotations

import asyncio

import pytest

from slackgenie.controller.queue import ReconcileQueue
from slackgenie.controller.reconciler import ReconcileOutcome, ReconcileResult
from slackgenie.models.pods import PodIdentity

_A = PodIdentity("ns", "pod-a")
_B = PodIdentity("ns", "pod-b")


class Recorder:
    def __init__(self, result: ReconcileResult | None = None, delay: float = 0.0) -> None:
        self.calls: list[PodIdentity] = []
        self.result = result or ReconcileResult(ReconcileOutcome.HEALTHY)
        self.delay = delay

    async def __call__(self, identity: PodIdentity) -> ReconcileResult:
        self.calls.append(identity)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.result


async def _drain(queue: ReconcileQueue) -> None:
    await asyncio.wait_for(queue.join(), timeout=5.0)


async def test_each_identity_reconciled() -> None:
    recorder = Recorder()
    queue = ReconcileQueue(recorder, workers=2)
    await queue.start()
    try:
        queue.add(_A)
        queue.add(_B)
        await _drain(queue)
        assert sorted(recorder.calls) == [_A, _B]
    finally:
        await queue.stop()


async def test_pending_duplicates_collapse() -> None:
    recorder = Recorder()
    queue = ReconcileQueue(recorder, workers=1)
    queue.add(_A)
    queue.add(_A)
    queue.add(_A)
    assert queue.depth == 1
    await queue.start()
    try:
        await _drain(queue)
        assert recorder.calls == [_A]
    finally:
        await queue.stop()


async def test_add_during_processing_requeues_once() -> None:
    recorder = Recorder(delay=0.05)
    queue = ReconcileQueue(recorder, workers=2)
    await queue.start()
    try:
        queue.add(_A)
        await asyncio.sleep(0.01)
        queue.add(_A)
        queue.add(_A)
        await asyncio.sleep(0.2)
        await _drain(queue)
        assert recorder.calls == [_A, _A]
    finally:
        await queue.stop()


async def test_requeue_after_schedules_single_retry() -> None:
    recorder = Recorder(ReconcileResult(ReconcileOutcome.DELIVERY_FAILED, requeue_after=0.1))
    queue = ReconcileQueue(recorder, workers=1)
    await queue.start()
    try:
        queue.add(_A)
        await asyncio.sleep(0.05)
        assert recorder.calls == [_A]
        # First retry fires; it fails again and schedules the next.
        await asyncio.sleep(0.1)
        assert recorder.calls == [_A, _A]
    finally:
        await queue.stop()


async def test_repeated_failures_leave_one_pending_retry() -> None:
    recorder = Recorder(ReconcileResult(ReconcileOutcome.DELIVERY_FAILED, requeue_after=0.3))
    queue = ReconcileQueue(recorder, workers=1)
    await queue.start()
    try:
        for _ in range(5):
            queue.add(_A)
            await asyncio.sleep(0.02)
        assert recorder.calls == [_A] * 5
        assert queue.pending_retries == 1

        # The retry keeps the first deadline; later failures do not push it out.
        await asyncio.sleep(0.35)
        assert recorder.calls == [_A] * 6
        assert queue.pending_retries == 1
    finally:
        await queue.stop()
    assert queue.pending_retries == 0


async def test_earlier_deadline_replaces_pending_retry() -> None:
    recorder = Recorder()
    queue = ReconcileQueue(recorder, workers=1)
    await queue.start()
    try:
        queue.add_after(_A, 5.0)
        queue.add_after(_A, 0.05)
        assert queue.pending_retries == 1
        await asyncio.sleep(0.15)
        await _drain(queue)
        assert recorder.calls == [_A]
        assert queue.pending_retries == 0
    finally:
        await queue.stop()


async def test_errors_back_off_and_reset() -> None:
    attempts: list[PodIdentity] = []

    async def flaky(identity: PodIdentity) -> ReconcileResult:
        attempts.append(identity)
        if len(attempts) < 3:
            raise RuntimeError("apiserver unavailable")
        return ReconcileResult(ReconcileOutcome.HEALTHY)

    queue = ReconcileQueue(flaky, workers=1, base_backoff=0.01, max_backoff=0.02)
    await queue.start()
    try:
        queue.add(_A)
        for _ in range(50):
            if len(attempts) >= 3:
                break
            await asyncio.sleep(0.01)
        await _drain(queue)
        assert len(attempts) == 3
        assert queue.failures(_A) == 0
    finally:
        await queue.stop()


def test_rate_limited_delay_grows_and_caps() -> None:
    async def _run() -> list[float]:
        queue = ReconcileQueue(Recorder(), base_backoff=1.0, max_backoff=5.0)
        delays = [queue.add_rate_limited(_A) for _ in range(5)]
        await queue.stop()
        return delays

    assert asyncio.run(_run()) == [1.0, 2.0, 4.0, 5.0, 5.0]


def test_invalid_worker_count() -> None:
    with pytest.raises(ValueError):
        ReconcileQueue(Recorder(), workers=0)


async def test_stop_cancels_pending_timers() -> None:
    recorder = Recorder()
    queue = ReconcileQueue(recorder, workers=1)
    await queue.start()
    queue.add_after(_A, 0.05)
    await queue.stop()
    await asyncio.sleep(0.1)
    assert recorder.calls == []
    assert queue.running is False
