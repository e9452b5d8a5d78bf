"""Per-key lock arena used to serialize work on a single cache key."""

from __future__ import annotations

import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager


class KeyedLocks:
    """Hand out one ``threading.Lock`` per key, dropping it once nobody uses it.

    Threads working on different keys never contend; the arena's own guard is
    only held while looking up or releasing an entry.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Hashable, threading.Lock] = {}
        self._users: dict[Hashable, int] = {}

    @contextmanager
    def hold(self, key: Hashable, *, timeout: float | None = None) -> Iterator[bool]:
        """Acquire the lock for `key`, yielding whether it was obtained.

        With a `timeout`, the context still runs when acquisition fails; the
        caller decides what to do without the lock.
        """

        lock = self._checkout(key)
        acquired = lock.acquire(timeout=-1 if timeout is None else timeout)
        try:
            yield acquired
        finally:
            if acquired:
                lock.release()
            self._checkin(key)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
                self._users[key] = 0
            self._users[key] += 1
            return lock

    def _checkin(self, key: Hashable) -> None:
        with self._guard:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]


__all__ = ["KeyedLocks"]
