# Overview: Per-key serialization for read-check-write mutations on the stores.

from __future__ import annotations

import threading
import weakref
from contextlib import contextmanager


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


class KeyedLocks:
    """
    Registry of mutexes keyed by (namespace, key).

    Two requests touching the same listing (or the auction slot) run their
    check-then-write sequence one after the other; requests on different
    keys do not wait on each other.

    Entries are held weakly: a lock exists while some caller holds or waits
    on it, and drops out of the registry once nobody references it.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[tuple[str, str], threading.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, namespace: str, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get((namespace, key))
            if lock is None:
                lock = threading.Lock()
                self._locks[(namespace, key)] = lock
            return lock

    @contextmanager
    def hold(self, namespace: str, key: str):
        """
        Hold the lock for (namespace, key) for the duration of the block.

        Args:
            namespace: "offer", "auction" or "likes"
            key: Listing id, auction slot or user id (coerced to str)
        """
        lock = self._lock_for(namespace, str(key))
        with lock:
            yield
