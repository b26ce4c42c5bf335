"""
Per-barber write locks.

One ``threading.Lock`` per barber id, created on first use and kept while
the barber is active, so a request holding a reference never sees its
lock replaced. Writes to different barbers never contend.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Dict, Hashable, Iterable, Iterator, Optional

from ..domain.exceptions import BusyError

logger = logging.getLogger(__name__)


class ProviderLockTable:

    def __init__(self, default_timeout: float = 5.0):
        self.default_timeout = default_timeout
        self._locks: Dict[Hashable, threading.Lock] = {}
        self._guard = threading.Lock()

    def lock_for(self, barber_id: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(barber_id)
            if lock is None:
                lock = self._locks[barber_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, *barber_ids: Hashable, timeout: Optional[float] = None) -> Iterator[None]:
        """
        Hold the locks of every given barber.

        Locks are taken in ascending id order so two requests spanning the
        same pair of barbers cannot deadlock. Raises BusyError when a lock
        is not acquired within ``timeout`` seconds; nothing is held then.
        """
        timeout = self.default_timeout if timeout is None else timeout
        acquired = []
        try:
            for barber_id in sorted(set(barber_ids)):
                lock = self._acquire(barber_id, timeout)
                if lock is None:
                    logger.warning(f"Timed out after {timeout}s waiting for barber {barber_id}")
                    raise BusyError(
                        f"Barber {barber_id} is handling another booking, retry shortly",
                        barber_id=barber_id,
                    )
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    def _acquire(self, barber_id: Hashable, timeout: float) -> Optional[threading.Lock]:
        deadline = time.monotonic() + timeout
        while True:
            lock = self.lock_for(barber_id)
            if not lock.acquire(timeout=max(deadline - time.monotonic(), 0)):
                return None
            with self._guard:
                if self._locks.get(barber_id) is lock:
                    return lock
            # Pruned between lookup and acquire; take the current one
            lock.release()

    def prune(self, active_ids: Iterable[Hashable]) -> int:
        """Forget idle locks of barbers that are no longer active"""
        active = set(active_ids)
        removed = 0
        with self._guard:
            for barber_id in list(self._locks):
                if barber_id in active:
                    continue
                lock = self._locks[barber_id]
                # A held lock is still referenced by an in-flight request
                if lock.acquire(blocking=False):
                    try:
                        del self._locks[barber_id]
                        removed += 1
                    finally:
                        lock.release()
        return removed

    def __contains__(self, barber_id: Hashable) -> bool:
        return barber_id in self._locks

    def __len__(self) -> int:
        return len(self._locks)
