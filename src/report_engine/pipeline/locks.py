"""
Per-key mutual exclusion.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class KeyedLock:
    """
    Hands out one lock per key

    Locks are created on first use and dropped once no thread holds or waits
    for them, so the map does not grow with the number of keys ever seen.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._users: dict[str, int] = {}

    def _checkout(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _checkin(self, key: str) -> None:
        with self._guard:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    @contextmanager
    def hold(self, key: str, blocking: bool = True) -> Iterator[bool]:
        """
        Hold the lock for `key`

        Yields:
            True when acquired; False only for a non-blocking attempt on a
            lock that is already held
        """
        lock = self._checkout(key)
        acquired = lock.acquire(blocking)
        try:
            yield acquired
        finally:
            if acquired:
                lock.release()
            self._checkin(key)

    def is_held(self, key: str) -> bool:
        with self._guard:
            lock = self._locks.get(key)
            return lock is not None and lock.locked()
