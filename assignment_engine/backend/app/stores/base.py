from __future__ import annotations

import abc
from datetime import datetime
from typing import Optional, Sequence

from ..domain.records import (
    AgentRecord,
    AgentUpsert,
    AssignmentRecord,
    Candidate,
    ItemRecord,
    ItemUpsert,
    MergeResult,
)


class AssignmentStore(abc.ABC):
    """
    Everything the allocator and the assignment lifecycle need from storage.

    Compound mutations (open / close / merge) are single calls so each
    implementation can make them atomic: either every record changes or none.
    """

    # ---- agents ----
    @abc.abstractmethod
    def get_agent(self, agent_id: int) -> Optional[AgentRecord]:
        ...

    @abc.abstractmethod
    def list_agents(self) -> list[AgentRecord]:
        ...

    @abc.abstractmethod
    def create_agent(self, name: str, role: str, capacity: int) -> AgentRecord:
        ...

    @abc.abstractmethod
    def upsert_agents(self, rows: Sequence[AgentUpsert], *, default_role: str, default_capacity: int) -> MergeResult:
        """Insert or update agents matched by name."""

    @abc.abstractmethod
    def active_count(self, agent_id: int) -> int:
        ...

    # ---- items ----
    @abc.abstractmethod
    def get_item(self, item_id: str) -> Optional[ItemRecord]:
        ...

    @abc.abstractmethod
    def list_items(self, *, available: Optional[bool] = None) -> list[ItemRecord]:
        ...

    @abc.abstractmethod
    def candidates(self) -> list[Candidate]:
        """Items that may be offered right now, in storage order."""

    @abc.abstractmethod
    def merge_items(self, rows: Sequence[ItemUpsert], *, now: datetime) -> MergeResult:
        """
        Upsert items by item_id.

        Items with an active assignment keep available=False and their
        queued_at; every other row is (re)queued with available=True.
        """

    # ---- ledger ----
    @abc.abstractmethod
    def list_assignments(
        self,
        *,
        status: Optional[str] = None,
        agent_id: Optional[int] = None,
        item_id: Optional[str] = None,
    ) -> list[AssignmentRecord]:
        ...

    @abc.abstractmethod
    def open_assignment(self, *, agent_id: int, item_id: str, now: datetime) -> AssignmentRecord:
        """
        Atomically mark the item unavailable and append an active record.

        Raises NoAvailableWork if the item was taken in the meantime.
        """

    @abc.abstractmethod
    def close_assignment(
        self,
        assignment_id: int,
        *,
        status: str,
        now: datetime,
        unassigned_by: Optional[str] = None,
    ) -> Optional[AssignmentRecord]:
        """
        Move an active record to a terminal status and make its item available.

        Compare-and-set: returns None when the record is no longer active.
        """

    # ---- imports ----
    @abc.abstractmethod
    def record_import(
        self,
        *,
        source: str,
        result: MergeResult,
        filename: Optional[str] = None,
        notes: Optional[str] = None,
        now: datetime,
    ) -> int:
        """Persist an import summary and return its id."""

    # ---- convenience ----
    def active_assignments(
        self, *, agent_id: Optional[int] = None, item_id: Optional[str] = None
    ) -> list[AssignmentRecord]:
        return self.list_assignments(status="active", agent_id=agent_id, item_id=item_id)

    def agent_names(self) -> dict[int, str]:
        return {a.id: a.name for a in self.list_agents()}
