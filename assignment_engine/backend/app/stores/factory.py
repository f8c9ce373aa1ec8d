from __future__ import annotations

import threading
from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from .base import AssignmentStore
from .memory import MemoryAssignmentStore
from .sql import SqlAssignmentStore

_memory_store: Optional[MemoryAssignmentStore] = None
_memory_lock = threading.Lock()


def memory_store() -> MemoryAssignmentStore:
    """The process-wide in-memory store (store_backend=memory)."""
    global _memory_store
    with _memory_lock:
        if _memory_store is None:
            _memory_store = MemoryAssignmentStore()
        return _memory_store


def reset_memory_store() -> None:
    global _memory_store
    with _memory_lock:
        _memory_store = None


def build_store(db: Session) -> AssignmentStore:
    if settings.store_backend == "memory":
        return memory_store()
    return SqlAssignmentStore(db)


def get_store(db: Session = Depends(get_db)) -> AssignmentStore:
    return build_store(db)
