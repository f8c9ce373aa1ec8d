from __future__ import annotations

from app.domain.importers.base import parse_csv_bytes
from app.services import reports
from app.services import assignment_lifecycle as lifecycle
from app.services.allocator import assign_next

from conftest import at, item


def _history(store):
    a = store.create_agent("Alice", "Item Review", 5)
    store.merge_items(
        [item("X", "P1", created=at(-3)), item("Y", "P2", created=at(-2)), item("Z", "P3", created=at(-1))],
        now=at(0),
    )
    assign_next(store, a.id, now=at(1))
    assign_next(store, a.id, now=at(2))
    lifecycle.complete(store, a.id, "X", now=at(3))
    lifecycle.unassign_item(store, "Y", now=at(4))
    return a


def test_completed_export_names_the_agent(store):
    _history(store)

    rows = parse_csv_bytes(reports.to_csv(reports.completed_assignments(store), reports.COMPLETED_HEADERS).encode())

    assert len(rows) == 1
    assert rows[0]["item_id"] == "X"
    assert rows[0]["completed_by"] == "Alice"
    assert rows[0]["completed_at"] == "2026-01-05 09:03:00"


def test_previously_assigned_covers_both_terminal_states(store):
    _history(store)

    rows = {r["item_id"]: r for r in reports.previously_assigned(store)}

    assert set(rows) == {"X", "Y"}
    assert rows["X"]["status"] == "completed"
    assert rows["Y"]["status"] == "unassigned"
    assert rows["Y"]["unassigned_by"] == "Alice"


def test_queue_and_unassigned_views(store):
    _history(store)
    a2 = store.create_agent("Bob", "Item Review", 5)
    assign_next(store, a2.id, now=at(5))

    queue = {r["item_id"]: r["assigned"] for r in reports.queue(store)}
    assert queue == {"X": "No", "Y": "Yes", "Z": "No"}
    assert {r["item_id"] for r in reports.unassigned_items(store)} == {"X", "Z"}


def test_csv_headers_are_fixed_even_when_empty(store):
    text = reports.to_csv(reports.previously_assigned(store), reports.PREVIOUS_HEADERS)
    assert text == ",".join(reports.PREVIOUS_HEADERS) + "\n"


def test_dashboard_totals(store):
    _history(store)
    d = reports.dashboard(store)

    assert d["total_agents"] == 1
    assert d["total_items"] == 3
    assert d["total_assignments"] == 2
    assert d["active_assignments"] == 0
