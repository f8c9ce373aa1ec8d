from __future__ import annotations

import pytest

from app.domain.errors import CapacityExceeded
from app.domain.records import ACTIVE
from app.services import assignment_lifecycle as lifecycle
from app.services.allocator import assign_next

from conftest import at, item


def test_active_count_never_exceeds_capacity(store):
    a = store.create_agent("Alice", "Item Review", 3)
    store.merge_items([item(f"I{n}", "2", created=at(-n)) for n in range(10)], now=at(0))

    assigned = 0
    for step in range(1, 8):
        try:
            assign_next(store, a.id, now=at(step))
            assigned += 1
        except CapacityExceeded:
            pass
        assert store.active_count(a.id) <= 3

    assert assigned == 3


def test_capacity_refusal_changes_nothing(store):
    a = store.create_agent("Alice", "Item Review", 1)
    store.merge_items([item("X", "1", created=at(-2)), item("Y", "2", created=at(-1))], now=at(0))
    assign_next(store, a.id, now=at(1))

    before_items = [(i.item_id, i.available) for i in store.list_items()]
    before_ledger = store.list_assignments()

    with pytest.raises(CapacityExceeded):
        assign_next(store, a.id, now=at(2))

    assert [(i.item_id, i.available) for i in store.list_items()] == before_items
    assert store.list_assignments() == before_ledger


def test_capacities_are_per_agent(store):
    a = store.create_agent("Alice", "Item Review", 1)
    b = store.create_agent("Bob", "Item Review", 2)
    store.merge_items([item(f"I{n}", "2", created=at(-n)) for n in range(5)], now=at(0))

    assign_next(store, a.id, now=at(1))
    assign_next(store, b.id, now=at(2))
    assign_next(store, b.id, now=at(3))

    with pytest.raises(CapacityExceeded):
        assign_next(store, b.id, now=at(4))

    assert store.active_count(a.id) == 1
    assert store.active_count(b.id) == 2
    assert len(store.list_assignments(status=ACTIVE)) == 3


def test_unassign_agent_frees_the_whole_capacity(store):
    a = store.create_agent("Alice", "Item Review", 2)
    store.merge_items([item(f"I{n}", "2", created=at(-n)) for n in range(4)], now=at(0))
    assign_next(store, a.id, now=at(1))
    assign_next(store, a.id, now=at(2))

    res = lifecycle.unassign_agent(store, a.id, now=at(3))

    assert res.count == 2
    assert store.active_count(a.id) == 0
    assign_next(store, a.id, now=at(4))
