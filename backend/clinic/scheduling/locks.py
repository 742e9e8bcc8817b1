from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class StaffLockRegistry:
    """Per-staff mutual exclusion for check-then-write booking mutations.

    Only serializes writers inside one process; the unique index and the
    PostgreSQL exclusion constraint on bookings reject the loser of a race
    across processes.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[int, threading.Lock] = {}

    def _lock_for(self, staff_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(staff_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[staff_id] = lock
            return lock

    @contextmanager
    def hold(self, *staff_ids: int) -> Iterator[None]:
        # sorted acquisition so two writers never wait on each other in a cycle
        locks = [self._lock_for(staff_id) for staff_id in sorted(set(staff_ids))]
        for lock in locks:
            lock.acquire()
        try:
            yield
        finally:
            for lock in reversed(locks):
                lock.release()
