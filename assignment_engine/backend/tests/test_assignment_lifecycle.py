from __future__ import annotations

import pytest

from app.domain.errors import InvalidArgument, NotFound
from app.domain.records import ACTIVE, COMPLETED, UNASSIGNED
from app.services import assignment_lifecycle as lifecycle
from app.services.allocator import assign_next

from conftest import at, item


def _two_assigned(store):
    a = store.create_agent("Alice", "Item Review", 5)
    store.merge_items([item("X", "1", created=at(-2)), item("Y", "2", created=at(-1))], now=at(0))
    assign_next(store, a.id, now=at(1))
    assign_next(store, a.id, now=at(2))
    return a


def test_complete_closes_the_record_and_frees_the_item(store):
    a = _two_assigned(store)

    rec = lifecycle.complete(store, a.id, "X", now=at(3))

    assert rec.status == COMPLETED
    assert rec.completed_at == at(3)
    assert store.get_item("X").available is True
    assert store.active_count(a.id) == 1


def test_terminal_records_cannot_be_closed_again(store):
    a = _two_assigned(store)
    lifecycle.complete(store, a.id, "X", now=at(3))

    with pytest.raises(NotFound) as nf:
        lifecycle.complete(store, a.id, "X", now=at(4))
    assert nf.value.entity == "active_assignment"

    res = lifecycle.unassign_item(store, "X", now=at(5))
    assert res.count == 0
    assert store.list_assignments(item_id="X")[0].status == COMPLETED


def test_complete_requires_the_binding_agent(store):
    a = _two_assigned(store)
    b = store.create_agent("Bob", "Item Review", 5)

    with pytest.raises(NotFound):
        lifecycle.complete(store, b.id, "X")
    with pytest.raises(NotFound):
        lifecycle.complete(store, 4242, "X")
    with pytest.raises(InvalidArgument):
        lifecycle.complete(store, a.id, "  ")

    assert store.active_count(a.id) == 2


def test_complete_all_counts_and_is_a_noop_when_idle(store):
    a = _two_assigned(store)

    res = lifecycle.complete_all(store, a.id, now=at(3))
    assert res.count == 2
    assert sorted(res.as_dict()["item_ids"]) == ["X", "Y"]

    again = lifecycle.complete_all(store, a.id, now=at(4))
    assert again.count == 0
    assert len(store.list_assignments(status=COMPLETED)) == 2


def test_unassign_item_records_who_held_it(store):
    a = _two_assigned(store)

    res = lifecycle.unassign_item(store, "Y", now=at(3))

    assert res.count == 1
    rec = store.list_assignments(item_id="Y")[0]
    assert rec.status == UNASSIGNED
    assert rec.unassigned_by == "Alice"
    assert rec.unassigned_at == at(3)
    assert store.get_item("Y").available is True
    assert store.active_count(a.id) == 1


def test_unassign_unknown_item_is_not_found(store):
    with pytest.raises(NotFound) as nf:
        lifecycle.unassign_item(store, "missing")
    assert nf.value.entity == "item"


def test_unassign_all_touches_only_active_records(store):
    a = _two_assigned(store)
    b = store.create_agent("Bob", "Item Review", 5)
    store.merge_items([item("Z", "3", created=at(-3))], now=at(3))
    assign_next(store, b.id, now=at(4))
    lifecycle.complete(store, a.id, "X", now=at(5))

    res = lifecycle.unassign_all(store, now=at(6))

    assert res.count == 2
    assert store.list_assignments(status=ACTIVE) == []
    by_item = {r.item_id: r for r in store.list_assignments()}
    assert by_item["X"].status == COMPLETED
    assert by_item["Y"].unassigned_by == "Alice"
    assert by_item["Z"].unassigned_by == "Bob"
    assert all(i.available for i in store.list_items())
