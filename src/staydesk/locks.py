"""Per-scope mutual exclusion for check-then-write sequences."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Hashable, Iterator

logger = logging.getLogger(__name__)


class ScopeLocks:
    """Hands out one lock per key, e.g. ``("room", 7)`` or ``("property", 2)``.

    Locks are created on first use and kept for the life of the process.
    The key space is bounded by the number of rooms and properties.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Hashable, threading.Lock] = defaultdict(threading.Lock)

    def _lock_for(self, key: Hashable) -> threading.Lock:
        with self._guard:
            return self._locks[key]

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self._lock_for(key)
        lock.acquire()
        logger.debug("Acquired scope lock %s", key)
        try:
            yield
        finally:
            lock.release()


# Global lock registry shared by admission and season-rate writes
scope_locks = ScopeLocks()
