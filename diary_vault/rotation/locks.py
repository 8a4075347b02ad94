"""Per-identifier mutual exclusion"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class KeyedLocks:
    """
    One lock per blob identifier.

    Uploads and rotation sweeps hold the identifier's lock across their
    read-modify-write, so two writers never interleave on one blob.
    Locks are reference counted and dropped once nobody holds them.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        self._users: Dict[str, int] = {}

    @contextmanager
    def hold(self, identifier: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(identifier, threading.Lock())
            self._users[identifier] = self._users.get(identifier, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[identifier] -= 1
                if not self._users[identifier]:
                    del self._users[identifier]
                    del self._locks[identifier]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
