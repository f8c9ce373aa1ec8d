from __future__ import annotations

import logging
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional, Sequence

from sqlalchemy import exists, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain.errors import AssignmentError, NoAvailableWork, NotFound, StorageFailure
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
from ..models import Agent, Assignment, ImportBatch, WorkItem
from .base import AssignmentStore

log = logging.getLogger("assignment_engine.store")

# keeps IN (...) lists under the sqlite bound-parameter limit
_IN_CHUNK = 500


def _agent_record(row: Agent, active_count: int = 0) -> AgentRecord:
    return AgentRecord(
        id=int(row.id),
        name=row.name,
        role=row.role,
        capacity=int(row.capacity),
        active_count=int(active_count),
    )


def _item_record(row: WorkItem) -> ItemRecord:
    return ItemRecord(
        item_id=row.item_id,
        name=row.name,
        priority=row.priority,
        priority_class=parse_priority(row.priority_rank),
        tenant_id=row.tenant_id,
        created_at=row.created_at,
        count=int(row.count or 1),
        available=bool(row.available),
        queued_at=row.queued_at,
        seq=int(row.id),
    )


def _assignment_record(row: Assignment) -> AssignmentRecord:
    return AssignmentRecord(
        id=int(row.id),
        agent_id=int(row.agent_id),
        item_id=row.item_id,
        status=row.status,
        assigned_at=row.assigned_at,
        completed_at=row.completed_at,
        unassigned_at=row.unassigned_at,
        unassigned_by=row.unassigned_by,
    )


def _chunks(seq: Sequence, size: int = _IN_CHUNK) -> Iterator[Sequence]:
    for i in range(0, len(seq), size):
        yield seq[i : i + size]


class SqlAssignmentStore(AssignmentStore):
    """
    SQLAlchemy-backed store bound to one Session.

    Each compound mutation commits exactly once; any failure rolls the whole
    mutation back so no item is left unavailable without an active record.
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _transaction(self, what: str) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except AssignmentError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            log.exception("store_write_failed", extra={"kind": "storage_failure"})
            raise StorageFailure(f"{what} failed: {e.__class__.__name__}") from e

    @contextmanager
    def _read(self, what: str) -> Iterator[None]:
        # reads surface driver faults the same way writes do
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            log.exception("store_read_failed", extra={"kind": "storage_failure"})
            raise StorageFailure(f"{what} failed: {e.__class__.__name__}") from e

    # ---- agents ----
    def get_agent(self, agent_id: int) -> Optional[AgentRecord]:
        with self._read("get_agent"):
            row = self.db.get(Agent, int(agent_id))
            if row is None:
                return None
            return _agent_record(row, self._count_active(int(row.id)))

    def list_agents(self) -> list[AgentRecord]:
        with self._read("list_agents"):
            counts = dict(
                self.db.execute(
                    select(Assignment.agent_id, func.count(Assignment.id))
                    .where(Assignment.status == ACTIVE)
                    .group_by(Assignment.agent_id)
                ).all()
            )
            rows = self.db.scalars(select(Agent).order_by(Agent.id.asc())).all()
            return [_agent_record(r, counts.get(r.id, 0)) for r in rows]

    def create_agent(self, name: str, role: str, capacity: int) -> AgentRecord:
        row = Agent(name=name, role=role, capacity=int(capacity), created_at=datetime.utcnow())
        with self._transaction("create_agent"):
            self.db.add(row)
            self.db.flush()
            rec = _agent_record(row)
        return rec

    def upsert_agents(self, rows: Sequence[AgentUpsert], *, default_role: str, default_capacity: int) -> MergeResult:
        result = MergeResult()
        with self._transaction("upsert_agents"):
            by_name = {a.name.casefold(): a for a in self.db.scalars(select(Agent)).all()}
            for r in rows:
                existing = by_name.get(r.name.casefold())
                if existing is None:
                    existing = Agent(
                        name=r.name,
                        role=r.role or default_role,
                        capacity=int(r.capacity or default_capacity),
                        created_at=datetime.utcnow(),
                    )
                    self.db.add(existing)
                    by_name[r.name.casefold()] = existing
                    result.inserted += 1
                    continue

                if r.role:
                    existing.role = r.role
                if r.capacity:
                    existing.capacity = int(r.capacity)
                result.updated += 1
        return result

    def _count_active(self, agent_id: int) -> int:
        n = self.db.scalar(
            select(func.count(Assignment.id)).where(Assignment.agent_id == agent_id, Assignment.status == ACTIVE)
        )
        return int(n or 0)

    def active_count(self, agent_id: int) -> int:
        with self._read("active_count"):
            return self._count_active(int(agent_id))

    # ---- items ----
    def get_item(self, item_id: str) -> Optional[ItemRecord]:
        with self._read("get_item"):
            row = self.db.scalar(select(WorkItem).where(WorkItem.item_id == item_id))
            return _item_record(row) if row else None

    def list_items(self, *, available: Optional[bool] = None) -> list[ItemRecord]:
        with self._read("list_items"):
            q = select(WorkItem).order_by(WorkItem.id.asc())
            if available is not None:
                q = q.where(WorkItem.available.is_(available))
            return [_item_record(r) for r in self.db.scalars(q).all()]

    def candidates(self) -> list[Candidate]:
        with self._read("candidates"):
            items = self.db.scalars(
                select(WorkItem).where(WorkItem.available.is_(True)).order_by(WorkItem.id.asc())
            ).all()
            if not items:
                return []

            history: dict[str, list[AssignmentRecord]] = defaultdict(list)
            ids = [i.item_id for i in items]
            for chunk in _chunks(ids):
                for a in self.db.scalars(select(Assignment).where(Assignment.item_id.in_(chunk))).all():
                    history[a.item_id].append(_assignment_record(a))

            out: list[Candidate] = []
            for row in items:
                c = build_candidate(_item_record(row), history.get(row.item_id, []))
                if c is not None:
                    out.append(c)
            return out

    def merge_items(self, rows: Sequence[ItemUpsert], *, now: datetime) -> MergeResult:
        """
        Upsert imported items.

        Descriptive fields go through the ORM. Availability is decided by
        conditional UPDATEs evaluated against the assignment table at write
        time, so an assignment committed by another session mid-merge keeps
        its item unavailable.
        """
        result = MergeResult()
        has_active = exists().where(Assignment.item_id == WorkItem.item_id, Assignment.status == ACTIVE)
        no_sync = {"synchronize_session": False}

        with self._transaction("merge_items"):
            ids = list(dict.fromkeys(r.item_id for r in rows))
            existing: dict[str, WorkItem] = {}
            for chunk in _chunks(ids):
                for w in self.db.scalars(select(WorkItem).where(WorkItem.item_id.in_(chunk))).all():
                    existing[w.item_id] = w
            requeue = [i for i in ids if i in existing]

            for r in rows:
                w = existing.get(r.item_id)
                if w is None:
                    # nothing can reference an item before it exists
                    w = WorkItem(item_id=r.item_id, queued_at=now, available=True)
                    self.db.add(w)
                    existing[r.item_id] = w
                    result.inserted += 1
                else:
                    result.updated += 1

                w.name = r.name or r.item_id
                w.priority = r.priority
                w.priority_rank = int(parse_priority(r.priority))
                w.tenant_id = r.tenant_id
                w.created_at = r.created_at
                w.count = max(1, int(r.count or 1))
            self.db.flush()

            for chunk in _chunks(requeue):
                in_chunk = WorkItem.item_id.in_(chunk)
                # the allocator flips `available` before inserting its record,
                # so a concurrent allocation fails the available=true guard
                requeued = self.db.execute(
                    update(WorkItem)
                    .where(in_chunk, WorkItem.available.is_(True), ~has_active)
                    .values(queued_at=now),
                    execution_options=no_sync,
                ).rowcount
                repaired = self.db.execute(
                    update(WorkItem)
                    .where(in_chunk, WorkItem.available.is_(False), ~has_active)
                    .values(available=True, queued_at=now),
                    execution_options=no_sync,
                ).rowcount
                self.db.execute(
                    update(WorkItem).where(in_chunk, WorkItem.available.is_(True), has_active).values(available=False),
                    execution_options=no_sync,
                )
                result.preserved_active += len(chunk) - int(requeued) - int(repaired)
        return result

    # ---- ledger ----
    def list_assignments(
        self,
        *,
        status: Optional[str] = None,
        agent_id: Optional[int] = None,
        item_id: Optional[str] = None,
    ) -> list[AssignmentRecord]:
        with self._read("list_assignments"):
            q = select(Assignment).order_by(Assignment.id.asc())
            if status is not None:
                q = q.where(Assignment.status == status)
            if agent_id is not None:
                q = q.where(Assignment.agent_id == int(agent_id))
            if item_id is not None:
                q = q.where(Assignment.item_id == item_id)
            return [_assignment_record(a) for a in self.db.scalars(q).all()]

    def open_assignment(self, *, agent_id: int, item_id: str, now: datetime) -> AssignmentRecord:
        row = Assignment(agent_id=int(agent_id), item_id=item_id, status=ACTIVE, assigned_at=now)
        with self._transaction("open_assignment"):
            exists = self.db.scalar(select(WorkItem.id).where(WorkItem.item_id == item_id))
            if exists is None:
                raise NotFound("item", f"item {item_id} not found")

            # compare-and-set on the cached flag
            res = self.db.execute(
                update(WorkItem)
                .where(WorkItem.item_id == item_id, WorkItem.available.is_(True))
                .values(available=False)
            )
            if res.rowcount != 1:
                raise NoAvailableWork(f"item {item_id} is no longer available")

            self.db.add(row)
            try:
                self.db.flush()
            except IntegrityError as e:
                # the partial unique index refused a second active record
                raise NoAvailableWork(f"item {item_id} is no longer available") from e
            rec = _assignment_record(row)
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

        values: dict = {"status": status}
        if status == COMPLETED:
            values["completed_at"] = now
        else:
            values["unassigned_at"] = now
            values["unassigned_by"] = unassigned_by

        closed = False
        with self._transaction("close_assignment"):
            item_id = self.db.scalar(select(Assignment.item_id).where(Assignment.id == int(assignment_id)))
            if item_id is None:
                return None

            res = self.db.execute(
                update(Assignment)
                .where(Assignment.id == int(assignment_id), Assignment.status == ACTIVE)
                .values(**values)
            )
            if res.rowcount == 1:
                self.db.execute(update(WorkItem).where(WorkItem.item_id == item_id).values(available=True))
                closed = True

        if not closed:
            return None
        with self._read("close_assignment"):
            row = self.db.get(Assignment, int(assignment_id), populate_existing=True)
            return _assignment_record(row)

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
        batch = ImportBatch(
            source=source,
            filename=filename,
            notes=notes,
            inserted=result.inserted,
            updated=result.updated,
            preserved_active=result.preserved_active,
            skipped=result.skipped,
            created_at=now,
        )
        with self._transaction("record_import"):
            self.db.add(batch)
            self.db.flush()
            batch_id = int(batch.id)
        return batch_id

