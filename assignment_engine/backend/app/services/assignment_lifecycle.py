from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional

from ..domain.errors import InvalidArgument, NotFound
from ..domain.records import COMPLETED, UNASSIGNED, AssignmentRecord
from ..stores.base import AssignmentStore
from .allocator import coerce_agent_id

# -----------------------------------------------------------------------------
# Assignment state machine
# -----------------------------------------------------------------------------
#   active --complete--> completed
#   active --unassign--> unassigned
#
# Terminal states are final. Each close is a compare-and-set in the store, so
# these operations do not take the allocator guard: a record that another
# caller closed first is simply not counted.
# -----------------------------------------------------------------------------

log = logging.getLogger("assignment_engine.lifecycle")

UNKNOWN_AGENT = "Unknown"


def _utcnow() -> datetime:
    return datetime.utcnow()


@dataclass(frozen=True)
class TransitionResult:
    status: str
    count: int
    assignments: list[AssignmentRecord]

    def as_dict(self) -> dict:
        return {"status": self.status, "count": self.count, "item_ids": [a.item_id for a in self.assignments]}


def _require_item_id(item_id: Any) -> str:
    s = str(item_id).strip() if item_id is not None else ""
    if not s:
        raise InvalidArgument("item_id is required")
    return s


def _require_agent(store: AssignmentStore, agent_id: Any):
    aid = coerce_agent_id(agent_id)
    agent = store.get_agent(aid)
    if agent is None:
        raise NotFound("agent", f"agent {aid} not found")
    return agent


def _close_many(
    store: AssignmentStore,
    records: Iterable[AssignmentRecord],
    *,
    status: str,
    now: datetime,
    names: Optional[dict[int, str]] = None,
) -> TransitionResult:
    closed: list[AssignmentRecord] = []
    for rec in records:
        by = None
        if status == UNASSIGNED:
            by = (names or {}).get(rec.agent_id, UNKNOWN_AGENT)
        out = store.close_assignment(rec.id, status=status, now=now, unassigned_by=by)
        if out is not None:
            closed.append(out)
            log.info(status, extra={"agent_id": out.agent_id, "item_id": out.item_id, "assignment_id": out.id})
    return TransitionResult(status=status, count=len(closed), assignments=closed)


def complete(
    store: AssignmentStore,
    agent_id: Any,
    item_id: Any,
    *,
    now: Optional[datetime] = None,
) -> AssignmentRecord:
    """Complete the one active assignment binding this agent to this item."""
    iid = _require_item_id(item_id)
    agent = _require_agent(store, agent_id)

    active = store.active_assignments(agent_id=agent.id, item_id=iid)
    if not active:
        raise NotFound("active_assignment", f"no active assignment of {iid} for agent {agent.name}")

    res = _close_many(store, active[:1], status=COMPLETED, now=now or _utcnow())
    if not res.assignments:
        # closed by someone else between the read and the compare-and-set
        raise NotFound("active_assignment", f"no active assignment of {iid} for agent {agent.name}")
    return res.assignments[0]


def complete_all(store: AssignmentStore, agent_id: Any, *, now: Optional[datetime] = None) -> TransitionResult:
    agent = _require_agent(store, agent_id)
    return _close_many(
        store,
        store.active_assignments(agent_id=agent.id),
        status=COMPLETED,
        now=now or _utcnow(),
    )


def unassign_item(store: AssignmentStore, item_id: Any, *, now: Optional[datetime] = None) -> TransitionResult:
    """
    Return an item to the queue.

    unassigned_by records the name of the agent that held it at call time.
    An existing item with nothing active is a no-op (count 0).
    """
    iid = _require_item_id(item_id)
    if store.get_item(iid) is None:
        raise NotFound("item", f"item {iid} not found")

    return _close_many(
        store,
        store.active_assignments(item_id=iid),
        status=UNASSIGNED,
        now=now or _utcnow(),
        names=store.agent_names(),
    )


def unassign_agent(store: AssignmentStore, agent_id: Any, *, now: Optional[datetime] = None) -> TransitionResult:
    agent = _require_agent(store, agent_id)
    return _close_many(
        store,
        store.active_assignments(agent_id=agent.id),
        status=UNASSIGNED,
        now=now or _utcnow(),
        names={agent.id: agent.name},
    )


def unassign_all(store: AssignmentStore, *, now: Optional[datetime] = None) -> TransitionResult:
    return _close_many(
        store,
        store.active_assignments(),
        status=UNASSIGNED,
        now=now or _utcnow(),
        names=store.agent_names(),
    )
