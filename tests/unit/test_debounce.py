"""Tests for DebounceStore: window expiry, eviction, sweeping, concurrency."""

from __future__ import annotations

import threading

import pytest

from slackgenie.debounce import DebounceStore
from slackgenie.models.alerts import AlertKey
from slackgenie.models.pods import PodIdentity
from tests.factories import FakeClock

_KEY = AlertKey("ns", "p1", "CrashLoopBackOff")


class TestSuppression:
    def test_unknown_key_not_suppressed(self, clock: FakeClock) -> None:
        store = DebounceStore(window=600, clock=clock)
        assert store.is_suppressed(_KEY) is False

    def test_recorded_key_suppressed_immediately(self, clock: FakeClock) -> None:
        store = DebounceStore(window=600, clock=clock)
        store.record(_KEY)
        assert store.is_suppressed(_KEY) is True

    def test_expires_after_window(self, clock: FakeClock) -> None:
        store = DebounceStore(window=600, clock=clock)
        store.record(_KEY)
        clock.advance(599)
        assert store.is_suppressed(_KEY) is True
        clock.advance(1)
        assert store.is_suppressed(_KEY) is False

    def test_reasons_are_independent(self, clock: FakeClock) -> None:
        store = DebounceStore(window=600, clock=clock)
        store.record(_KEY)
        assert store.is_suppressed(AlertKey("ns", "p1", "OOMKilled")) is False

    def test_record_overwrites(self, clock: FakeClock) -> None:
        store = DebounceStore(window=600, clock=clock)
        store.record(_KEY)
        clock.advance(500)
        store.record(_KEY)
        clock.advance(500)
        assert store.is_suppressed(_KEY) is True
        assert len(store) == 1

    def test_non_positive_window_rejected(self) -> None:
        with pytest.raises(ValueError):
            DebounceStore(window=0)


class TestEviction:
    def test_evict_all_removes_every_reason_for_pod(self, clock: FakeClock) -> None:
        store = DebounceStore(window=600, clock=clock)
        keys = [AlertKey("ns", "p3", r) for r in ("CrashLoopBackOff", "OOMKilled", "Failed")]
        for key in keys:
            store.record(key)
        other = AlertKey("ns", "p3-other", "CrashLoopBackOff")
        store.record(other)

        removed = store.evict_all(PodIdentity("ns", "p3"))

        assert removed == 3
        assert all(not store.is_suppressed(k) for k in keys)
        assert store.is_suppressed(other) is True

    def test_evict_does_not_cross_namespaces(self, clock: FakeClock) -> None:
        store = DebounceStore(window=600, clock=clock)
        store.record(AlertKey("a", "p", "Error"))
        store.record(AlertKey("b", "p", "Error"))
        store.evict_all(PodIdentity("a", "p"))
        assert store.is_suppressed(AlertKey("b", "p", "Error")) is True

    def test_evict_unknown_pod(self, clock: FakeClock) -> None:
        store = DebounceStore(window=600, clock=clock)
        assert store.evict_all(PodIdentity("ns", "missing")) == 0


class TestSweep:
    def test_sweep_drops_only_expired(self, clock: FakeClock) -> None:
        store = DebounceStore(window=600, clock=clock)
        old = AlertKey("ns", "p1", "ImagePullBackOff")
        store.record(old)
        clock.advance(400)
        store.record(_KEY)
        clock.advance(300)

        assert store.sweep_expired() == 1
        assert len(store) == 1
        assert store.is_suppressed(_KEY) is True


def test_concurrent_access_is_consistent() -> None:
    store = DebounceStore(window=600)
    errors: list[BaseException] = []

    def writer(n: int) -> None:
        try:
            for i in range(200):
                store.record(AlertKey("ns", f"pod-{n}", f"r{i % 5}"))
                store.evict_all(PodIdentity("ns", f"pod-{(n + 1) % 4}"))
        except BaseException as exc:  # noqa: BLE001
            errors.append(exc)

    def reader(n: int) -> None:
        try:
            for i in range(500):
                store.is_suppressed(AlertKey("ns", f"pod-{n}", f"r{i % 5}"))
        except BaseException as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    threads += [threading.Thread(target=reader, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert not errors
    assert all(not t.is_alive() for t in threads)
    assert len(store) <= 4 * 5


def test_readers_do_not_block_each_other() -> None:
    store = DebounceStore(window=600)
    store.record(_KEY)
    holding = threading.Event()
    release = threading.Event()
    second_read = threading.Event()

    def hold_read() -> None:
        with store._lock.read():
            holding.set()
            release.wait(timeout=5)

    def lookup() -> None:
        if store.is_suppressed(_KEY):
            second_read.set()

    holder = threading.Thread(target=hold_read)
    holder.start()
    try:
        assert holding.wait(timeout=5)
        reader = threading.Thread(target=lookup)
        reader.start()
        assert second_read.wait(timeout=1.0)
        reader.join(timeout=5)
    finally:
        release.set()
        holder.join(timeout=5)


def test_writer_waits_for_active_reader() -> None:
    store = DebounceStore(window=600)
    holding = threading.Event()
    release = threading.Event()
    written = threading.Event()

    def hold_read() -> None:
        with store._lock.read():
            holding.set()
            release.wait(timeout=5)

    def write() -> None:
        store.record(_KEY)
        written.set()

    holder = threading.Thread(target=hold_read)
    holder.start()
    try:
        assert holding.wait(timeout=5)
        writer = threading.Thread(target=write)
        writer.start()
        assert not written.wait(timeout=0.1)
    finally:
        release.set()
        holder.join(timeout=5)
    assert written.wait(timeout=5)
    writer.join(timeout=5)
    assert store.is_suppressed(_KEY) is True
