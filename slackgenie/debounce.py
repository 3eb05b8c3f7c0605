"""In-memory alert debounce store.

Tracks when each (namespace, pod, reason) last produced a delivered alert so
that a persistent failure is reported at most once per debounce window.

Entries expire lazily: ``is_suppressed`` compares the stored timestamp with
the window on every lookup. ``evict_all`` drops every entry for a Pod when
it is deleted, and ``sweep_expired`` is run periodically so reasons that a
live Pod has moved on from do not accumulate forever.

The store is shared by every reconcile worker. Lookups take a shared lock
and may run concurrently; writes take an exclusive lock. There is no
check-then-record transaction: two overlapping reconciles of the same Pod
can both pass ``is_suppressed`` before either records, which yields a
duplicate alert near the window boundary. That is accepted.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

import structlog

from slackgenie.models.alerts import AlertKey
from slackgenie.models.pods import PodIdentity
from slackgenie.observability.metrics import debounce_entries

_log = structlog.get_logger(component="debounce")

DEFAULT_WINDOW_SECONDS = 600.0


class _ReadWriteLock:
    """Many concurrent readers or one writer; waiting writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class DebounceStore:
    """Alert key -> last successful alert time.

    Args:
        window: Debounce window in seconds. Defaults to 10 minutes.
        clock:  Monotonic time source in seconds. Injectable for tests.
    """

    def __init__(
        self,
        window: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if window <= 0:
            raise ValueError("Debounce window must be positive")
        self._window = window
        self._clock = clock
        self._lock = _ReadWriteLock()
        self._entries: dict[AlertKey, float] = {}

    @property
    def window(self) -> float:
        return self._window

    def is_suppressed(self, key: AlertKey) -> bool:
        """True iff *key* alerted less than one window ago."""
        with self._lock.read():
            last = self._entries.get(key)
        if last is None:
            return False
        return (self._clock() - last) < self._window

    def record(self, key: AlertKey) -> None:
        """Set the last-alert time for *key* to now, overwriting any entry."""
        now = self._clock()
        with self._lock.write():
            self._entries[key] = now
            size = len(self._entries)
        debounce_entries.set(size)

    def evict_all(self, identity: PodIdentity) -> int:
        """Remove every entry belonging to *identity*. Returns the count removed."""
        with self._lock.write():
            stale = [key for key in self._entries if key.identity == identity]
            for key in stale:
                del self._entries[key]
            size = len(self._entries)
        debounce_entries.set(size)
        return len(stale)

    def sweep_expired(self) -> int:
        """Drop entries whose window has elapsed. Returns the count removed."""
        now = self._clock()
        with self._lock.write():
            expired = [key for key, last in self._entries.items() if (now - last) >= self._window]
            for key in expired:
                del self._entries[key]
            size = len(self._entries)
        debounce_entries.set(size)
        if expired:
            _log.debug("debounce_entries_swept", removed=len(expired), remaining=size)
        return len(expired)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)
