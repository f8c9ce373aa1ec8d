from __future__ import annotations

import itertools
import threading
from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

from ..domain.errors import NoAvailableWork, NotFound
from ..domain.ordering import build_candidate
from ..domain.priority import parse_priority
from ..domain.records import (
    ACTIVE,
    COMPLETED,
    TERMINAL,
    AgentRecord,
    AgentUpsert,
    AssignmentRecord,
    Candidate,
    ItemRecord,
    ItemUpsert,
    MergeResult,
)
from .base import AssignmentStore


class MemoryAssignmentStore(AssignmentStore):
    """
    Process-local store backed by dicts.

    Every public method runs under one re-entrant lock, so each call is
    atomic with respect to every other call on the same instance.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._agents: dict[int, AgentRecord] = {}
        self._items: dict[str, ItemRecord] = {}
        self._assignments: dict[int, AssignmentRecord] = {}
        self._imports: list[dict] = []
        self._agent_ids = itertools.count(1)
        self._item_seq = itertools.count(1)
        self._assignment_ids = itertools.count(1)

    # ---- agents ----
    def _with_count(self, agent: AgentRecord) -> AgentRecord:
        return replace(agent, active_count=self._count_active(agent.id))

    def _count_active(self, agent_id: int) -> int:
        return sum(1 for a in self._assignments.values() if a.agent_id == agent_id and a.status == ACTIVE)

    def get_agent(self, agent_id: int) -> Optional[AgentRecord]:
        with self._lock:
            agent = self._agents.get(int(agent_id))
            return self._with_count(agent) if agent else None

    def list_agents(self) -> list[AgentRecord]:
        with self._lock:
            return [self._with_count(a) for a in self._agents.values()]

    def create_agent(self, name: str, role: str, capacity: int) -> AgentRecord:
        with self._lock:
            agent = AgentRecord(id=next(self._agent_ids), name=name, role=role, capacity=int(capacity))
            self._agents[agent.id] = agent
            return agent

    def upsert_agents(self, rows: Sequence[AgentUpsert], *, default_role: str, default_capacity: int) -> MergeResult:
        result = MergeResult()
        with self._lock:
            by_name = {a.name.casefold(): a for a in self._agents.values()}
            for row in rows:
                existing = by_name.get(row.name.casefold())
                if existing is None:
                    agent = AgentRecord(
                        id=next(self._agent_ids),
                        name=row.name,
                        role=row.role or default_role,
                        capacity=int(row.capacity or default_capacity),
                    )
                    self._agents[agent.id] = agent
                    by_name[agent.name.casefold()] = agent
                    result.inserted += 1
                    continue

                updated = replace(
                    existing,
                    role=row.role or existing.role,
                    capacity=int(row.capacity or existing.capacity),
                )
                self._agents[existing.id] = updated
                by_name[updated.name.casefold()] = updated
                result.updated += 1
        return result

    def active_count(self, agent_id: int) -> int:
        with self._lock:
            return self._count_active(int(agent_id))

    # ---- items ----
    def get_item(self, item_id: str) -> Optional[ItemRecord]:
        with self._lock:
            return self._items.get(item_id)

    def list_items(self, *, available: Optional[bool] = None) -> list[ItemRecord]:
        with self._lock:
            items = sorted(self._items.values(), key=lambda i: i.seq)
            if available is not None:
                items = [i for i in items if i.available == available]
            return items

    def _history(self, item_id: str) -> list[AssignmentRecord]:
        return [a for a in self._assignments.values() if a.item_id == item_id]

    def candidates(self) -> list[Candidate]:
        with self._lock:
            out: list[Candidate] = []
            for item in sorted(self._items.values(), key=lambda i: i.seq):
                if not item.available:
                    continue
                c = build_candidate(item, self._history(item.item_id))
                if c is not None:
                    out.append(c)
            return out

    def merge_items(self, rows: Sequence[ItemUpsert], *, now: datetime) -> MergeResult:
        result = MergeResult()
        with self._lock:
            active_items = {a.item_id for a in self._assignments.values() if a.status == ACTIVE}
            for row in rows:
                existing = self._items.get(row.item_id)
                is_active = row.item_id in active_items
                fields = dict(
                    name=row.name or row.item_id,
                    priority=row.priority,
                    priority_class=parse_priority(row.priority),
                    tenant_id=row.tenant_id,
                    created_at=row.created_at,
                    count=max(1, int(row.count or 1)),
                )

                if existing is None:
                    self._items[row.item_id] = ItemRecord(
                        item_id=row.item_id,
                        available=not is_active,
                        queued_at=now,
                        seq=next(self._item_seq),
                        **fields,
                    )
                    result.inserted += 1
                    continue

                if is_active:
                    self._items[row.item_id] = replace(existing, available=False, **fields)
                    result.preserved_active += 1
                else:
                    self._items[row.item_id] = replace(existing, available=True, queued_at=now, **fields)
                result.updated += 1
        return result

    # ---- ledger ----
    def list_assignments(
        self,
        *,
        status: Optional[str] = None,
        agent_id: Optional[int] = None,
        item_id: Optional[str] = None,
    ) -> list[AssignmentRecord]:
        with self._lock:
            out = sorted(self._assignments.values(), key=lambda a: a.id)
            if status is not None:
                out = [a for a in out if a.status == status]
            if agent_id is not None:
                out = [a for a in out if a.agent_id == int(agent_id)]
            if item_id is not None:
                out = [a for a in out if a.item_id == item_id]
            return out

    def open_assignment(self, *, agent_id: int, item_id: str, now: datetime) -> AssignmentRecord:
        with self._lock:
            item = self._items.get(item_id)
            if item is None:
                raise NotFound("item", f"item {item_id} not found")
            if not item.available or any(a.status == ACTIVE for a in self._history(item_id)):
                raise NoAvailableWork(f"item {item_id} is no longer available")

            rec = AssignmentRecord(
                id=next(self._assignment_ids),
                agent_id=int(agent_id),
                item_id=item_id,
                status=ACTIVE,
                assigned_at=now,
            )
            self._items[item_id] = replace(item, available=False)
            self._assignments[rec.id] = rec
            return rec

    def close_assignment(
        self,
        assignment_id: int,
        *,
        status: str,
        now: datetime,
        unassigned_by: Optional[str] = None,
    ) -> Optional[AssignmentRecord]:
        if status not in TERMINAL:
            raise ValueError(f"not a terminal status: {status}")

        with self._lock:
            rec = self._assignments.get(int(assignment_id))
            if rec is None or rec.status != ACTIVE:
                return None

            if status == COMPLETED:
                closed = replace(rec, status=status, completed_at=now)
            else:
                closed = replace(rec, status=status, unassigned_at=now, unassigned_by=unassigned_by)
            self._assignments[rec.id] = closed

            item = self._items.get(rec.item_id)
            if item is not None:
                self._items[rec.item_id] = replace(item, available=True)
            return closed

    # ---- imports ----
    def record_import(
        self,
        *,
        source: str,
        result: MergeResult,
        filename: Optional[str] = None,
        notes: Optional[str] = None,
        now: datetime,
    ) -> int:
        with self._lock:
            batch_id = len(self._imports) + 1
            self._imports.append({"id": batch_id, "source": source, "filename": filename, "notes": notes,
                                  "created_at": now, **result.as_dict()})
            return batch_id
