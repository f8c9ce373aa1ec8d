from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .priority import PriorityClass

ACTIVE = "active"
COMPLETED = "completed"
UNASSIGNED = "unassigned"

STATUSES = (ACTIVE, COMPLETED, UNASSIGNED)
TERMINAL = frozenset({COMPLETED, UNASSIGNED})


@dataclass(frozen=True)
class AgentRecord:
    id: int
    name: str
    role: str
    capacity: int
    active_count: int = 0


@dataclass(frozen=True)
class ItemRecord:
    item_id: str
    name: str
    priority: Optional[str]
    priority_class: PriorityClass
    tenant_id: Optional[str]
    created_at: Optional[datetime]
    count: int
    available: bool
    queued_at: datetime
    seq: int  # insertion order

    @property
    def priority_label(self) -> str:
        return self.priority_class.label


@dataclass(frozen=True)
class AssignmentRecord:
    id: int
    agent_id: int
    item_id: str
    status: str
    assigned_at: datetime
    completed_at: Optional[datetime] = None
    unassigned_at: Optional[datetime] = None
    unassigned_by: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE

    @property
    def closed_at(self) -> Optional[datetime]:
        if self.status == COMPLETED:
            return self.completed_at
        if self.status == UNASSIGNED:
            return self.unassigned_at
        return None


@dataclass(frozen=True)
class Candidate:
    """An item eligible for assignment plus the ledger facts the ordering needs."""

    item: ItemRecord
    requeued_at: Optional[datetime] = None  # set when the latest close was an unassignment

    @property
    def is_requeued(self) -> bool:
        return self.requeued_at is not None


@dataclass(frozen=True)
class ItemUpsert:
    """One normalized inbound row for the work-item merge."""

    item_id: str
    name: str
    priority: Optional[str]
    tenant_id: Optional[str]
    created_at: Optional[datetime]
    count: int = 1


@dataclass(frozen=True)
class AgentUpsert:
    name: str
    role: Optional[str] = None
    capacity: Optional[int] = None


@dataclass
class MergeResult:
    inserted: int = 0
    updated: int = 0
    preserved_active: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.inserted + self.updated

    def as_dict(self) -> dict:
        return {
            "inserted": self.inserted,
            "updated": self.updated,
            "preserved_active": self.preserved_active,
            "skipped": self.skipped,
            "errors": list(self.errors),
        }
