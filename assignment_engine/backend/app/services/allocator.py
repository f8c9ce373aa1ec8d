from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from ..config import settings
from ..domain.errors import AssignmentError, CapacityExceeded, InvalidArgument, NoAvailableWork, NotFound
from ..domain.ordering import pick_next
from ..domain.records import AssignmentRecord
from ..stores.base import AssignmentStore
from .allocation_guard import AllocationGuard, allocation_guard

log = logging.getLogger("assignment_engine.allocator")


def _utcnow() -> datetime:
    return datetime.utcnow()


def coerce_agent_id(agent_id: Any) -> int:
    """Request bodies carry ids as ints or numeric strings; anything else is a client error."""
    if agent_id is None or (isinstance(agent_id, str) and not agent_id.strip()):
        raise InvalidArgument("agent_id is required")
    if isinstance(agent_id, bool):
        raise InvalidArgument("agent_id must be an integer")
    if isinstance(agent_id, float) and not agent_id.is_integer():
        raise InvalidArgument("agent_id must be an integer")
    try:
        return int(agent_id)
    except (TypeError, ValueError):
        raise InvalidArgument("agent_id must be an integer") from None


def assign_next(
    store: AssignmentStore,
    agent_id: Any,
    *,
    policy: Optional[str] = None,
    guard: Optional[AllocationGuard] = None,
    now: Optional[datetime] = None,
) -> AssignmentRecord:
    """
    Pick the next queued item for an agent and open an active assignment.

    Checks, in order, each a distinct refusal:
      1. agent_id missing          -> InvalidArgument
      2. agent unknown             -> NotFound("agent")
      3. agent at capacity         -> CapacityExceeded
      4. nothing eligible          -> NoAvailableWork

    The read -> pick -> write sequence runs inside the process-wide guard;
    a concurrent caller gets ConcurrentAssignmentInProgress instead of waiting.
    """
    aid = coerce_agent_id(agent_id)
    policy = policy or settings.assignment_policy
    guard = guard or allocation_guard

    with guard.hold():
        try:
            agent = store.get_agent(aid)
            if agent is None:
                raise NotFound("agent", f"agent {aid} not found")

            active = store.active_count(aid)
            if active >= agent.capacity:
                raise CapacityExceeded(f"agent {agent.name} has reached maximum capacity ({agent.capacity})")

            chosen = pick_next(store.candidates(), policy)
            if chosen is None:
                raise NoAvailableWork("No available items to assign")

            rec = store.open_assignment(agent_id=aid, item_id=chosen.item.item_id, now=now or _utcnow())
        except AssignmentError as e:
            log.info("assign_refused %s", e.message, extra={"agent_id": aid, "kind": e.kind})
            raise

    log.info(
        "assigned",
        extra={"agent_id": aid, "item_id": rec.item_id, "assignment_id": rec.id},
    )
    return rec
