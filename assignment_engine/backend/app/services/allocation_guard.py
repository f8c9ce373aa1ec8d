from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from ..domain.errors import ConcurrentAssignmentInProgress


class AllocationGuard:
    """
    Process-wide single-flight section for the allocator.

    Non-blocking: a caller that finds the section held gets
    ConcurrentAssignmentInProgress immediately and is expected to retry.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @property
    def held(self) -> bool:
        return self._lock.locked()

    def try_acquire(self) -> bool:
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        self._lock.release()

    @contextmanager
    def hold(self) -> Iterator[None]:
        if not self.try_acquire():
            raise ConcurrentAssignmentInProgress("Another assignment is in progress; retry")
        try:
            yield
        finally:
            self.release()


allocation_guard = AllocationGuard()
