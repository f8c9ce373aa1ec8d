from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable

from ..domain.importers.base import format_datetime, write_csv_text
from ..domain.records import ACTIVE, COMPLETED, AssignmentRecord, ItemRecord
from ..stores.base import AssignmentStore

# Read-only projections of the stores; no business rules live here.

UNKNOWN = "Unknown"

COMPLETED_HEADERS = ["assignment_id", "agent_id", "completed_by", "item_id", "assigned_at", "completed_at"]
UNASSIGNED_ITEM_HEADERS = ["item_id", "priority", "tenant_id", "created_at", "count"]
PREVIOUS_HEADERS = [
    "item_id",
    "count",
    "tenant_id",
    "priority",
    "created_at",
    "status",
    "completed_at",
    "unassigned_at",
    "unassigned_by",
]
QUEUE_HEADERS = ["item_id", "priority", "tenant_id", "created_at", "count", "assigned"]


def _item_row(i: ItemRecord) -> dict[str, Any]:
    return {
        "item_id": i.item_id,
        "priority": i.priority,
        "tenant_id": i.tenant_id,
        "created_at": i.created_at,
        "count": i.count,
    }


def completed_assignments(store: AssignmentStore) -> list[dict[str, Any]]:
    names = store.agent_names()
    return [
        {
            "assignment_id": a.id,
            "agent_id": a.agent_id,
            "completed_by": names.get(a.agent_id, UNKNOWN),
            "item_id": a.item_id,
            "assigned_at": a.assigned_at,
            "completed_at": a.completed_at,
        }
        for a in store.list_assignments(status=COMPLETED)
    ]


def unassigned_items(store: AssignmentStore) -> list[dict[str, Any]]:
    return [_item_row(i) for i in store.list_items(available=True)]


def previously_assigned(store: AssignmentStore) -> list[dict[str, Any]]:
    items = {i.item_id: i for i in store.list_items()}
    out: list[dict[str, Any]] = []
    for a in store.list_assignments():
        if a.status == ACTIVE:
            continue
        item = items.get(a.item_id)
        out.append(
            {
                "item_id": a.item_id,
                "count": item.count if item else None,
                "tenant_id": item.tenant_id if item else None,
                "priority": item.priority if item else None,
                "created_at": item.created_at if item else None,
                "status": a.status,
                "completed_at": a.completed_at,
                "unassigned_at": a.unassigned_at,
                "unassigned_by": a.unassigned_by,
            }
        )
    return out


def queue(store: AssignmentStore) -> list[dict[str, Any]]:
    return [{**_item_row(i), "assigned": "No" if i.available else "Yes"} for i in store.list_items()]


def dashboard(store: AssignmentStore) -> dict[str, Any]:
    agents = store.list_agents()
    items = store.list_items()
    assignments: list[AssignmentRecord] = store.list_assignments()
    return {
        "agents": agents,
        "items": items,
        "assignments": assignments,
        "total_agents": len(agents),
        "total_items": len(items),
        "total_assignments": len(assignments),
        "active_assignments": sum(1 for a in assignments if a.status == ACTIVE),
    }


def to_csv(rows: Iterable[dict[str, Any]], headers: list[str]) -> str:
    def _cell(v: Any) -> Any:
        return format_datetime(v) if isinstance(v, datetime) else v

    return write_csv_text(({k: _cell(v) for k, v in r.items()} for r in rows), headers)


EXPORTS = {
    "completed-assignments": (completed_assignments, COMPLETED_HEADERS, "completed-tasks.csv"),
    "unassigned-items": (unassigned_items, UNASSIGNED_ITEM_HEADERS, "unassigned-items.csv"),
    "previously-assigned": (previously_assigned, PREVIOUS_HEADERS, "previously-assigned.csv"),
    "queue": (queue, QUEUE_HEADERS, "item-queue.csv"),
}
