"""Per-key critical sections for orders and departments."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class KeyedLocks:
    """Hands out one reentrant lock per key while someone needs it.

    A key's lock lives as long as at least one thread holds it or waits on
    it, so ids that are looked up once and rejected leave nothing behind.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}
        self._users: Dict[str, int] = {}

    def _acquire_slot(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _release_slot(self, key: str) -> None:
        with self._guard:
            remaining = self._users[key] - 1
            if remaining:
                self._users[key] = remaining
            else:
                del self._users[key]
                del self._locks[key]

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        lock = self._acquire_slot(key)
        try:
            with lock:
                yield
        finally:
            self._release_slot(key)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


__all__ = ["KeyedLocks"]
