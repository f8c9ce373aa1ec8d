from __future__ import annotations

import pytest

from app.domain.errors import CapacityExceeded, InvalidArgument, NoAvailableWork, NotFound
from app.services import assignment_lifecycle as lifecycle
from app.services.allocator import assign_next

from conftest import at, item


def test_higher_priority_item_is_offered_before_older_one(store):
    a = store.create_agent("Alice", "Item Review", 5)
    store.merge_items(
        [item("X", "2", created=at(-60)), item("Y", "1", created=at(-10))],
        now=at(0),
    )

    first = assign_next(store, a.id, now=at(1))
    second = assign_next(store, a.id, now=at(2))

    assert first.item_id == "Y"
    assert second.item_id == "X"


def test_capacity_refusal_then_completion_frees_a_slot(store):
    a = store.create_agent("Alice", "Item Review", 1)
    store.merge_items([item("X", "2", created=at(-60)), item("Y", "1", created=at(-10))], now=at(0))

    assert assign_next(store, a.id, now=at(1)).item_id == "Y"

    with pytest.raises(CapacityExceeded):
        assign_next(store, a.id, now=at(2))

    lifecycle.complete(store, a.id, "Y", now=at(3))
    assert assign_next(store, a.id, now=at(4)).item_id == "X"


def test_completed_item_is_not_reoffered_until_an_import_requeues_it(store):
    a = store.create_agent("Alice", "Item Review", 5)
    store.merge_items([item("Y", "1", created=at(-10))], now=at(0))

    assign_next(store, a.id, now=at(1))
    lifecycle.complete(store, a.id, "Y", now=at(2))

    # completion frees the item but it is done until it shows up in a new import
    assert store.get_item("Y").available is True
    with pytest.raises(NoAvailableWork):
        assign_next(store, a.id, now=at(3))

    store.merge_items([item("Y", "1", created=at(-10))], now=at(10))
    assert assign_next(store, a.id, now=at(11)).item_id == "Y"


def test_requeued_item_beats_higher_priority_under_default_policy(store):
    a = store.create_agent("Alice", "Item Review", 5)
    store.merge_items([item("A1", "1", created=at(-30)), item("B3", "3", created=at(-20))], now=at(0))

    assign_next(store, a.id, now=at(1))
    assign_next(store, a.id, now=at(2))
    lifecycle.unassign_item(store, "B3", now=at(3))
    store.merge_items([item("D1", "1", created=at(-5))], now=at(4))

    assert assign_next(store, a.id, policy="requeue_first", now=at(5)).item_id == "B3"


def test_priority_policy_ignores_requeue_time(store):
    a = store.create_agent("Alice", "Item Review", 5)
    store.merge_items([item("A1", "1", created=at(-30)), item("B3", "3", created=at(-20))], now=at(0))

    assign_next(store, a.id, now=at(1))
    assign_next(store, a.id, now=at(2))
    lifecycle.unassign_item(store, "B3", now=at(3))
    store.merge_items([item("D1", "1", created=at(-5))], now=at(4))

    assert assign_next(store, a.id, policy="priority", now=at(5)).item_id == "D1"


def test_oldest_first_policy_ignores_priority(store):
    a = store.create_agent("Alice", "Item Review", 5)
    store.merge_items([item("new-p1", "1", created=at(-1)), item("old-p3", "3", created=at(-100))], now=at(0))

    assert assign_next(store, a.id, policy="oldest_first", now=at(1)).item_id == "old-p3"


def test_missing_dates_sort_last_and_ties_keep_import_order(store):
    a = store.create_agent("Alice", "Item Review", 5)
    store.merge_items(
        [
            item("undated", "1", created=None),
            item("tie-b", "1", created=at(-10)),
            item("tie-a", "1", created=at(-10)),
        ],
        now=at(0),
    )

    got = [assign_next(store, a.id, now=at(i)).item_id for i in range(1, 4)]
    assert got == ["tie-b", "tie-a", "undated"]


def test_refusals_are_distinct(store):
    a = store.create_agent("Alice", "Item Review", 5)

    with pytest.raises(InvalidArgument):
        assign_next(store, None)
    with pytest.raises(InvalidArgument):
        assign_next(store, "not-a-number")
    with pytest.raises(NotFound) as nf:
        assign_next(store, 9999)
    assert nf.value.entity == "agent"
    with pytest.raises(NoAvailableWork):
        assign_next(store, a.id)


def test_numeric_string_agent_id_is_accepted(store):
    a = store.create_agent("Alice", "Item Review", 5)
    store.merge_items([item("X", "1", created=at(-1))], now=at(0))

    rec = assign_next(store, str(a.id), now=at(1))
    assert rec.agent_id == a.id


def test_unassigned_item_is_offered_before_a_newer_item_of_equal_priority(store):
    a = store.create_agent("Alice", "Item Review", 1)
    b = store.create_agent("Bob", "Item Review", 5)
    store.merge_items([item("X", "2", created=at(-30))], now=at(0))
    assign_next(store, a.id, now=at(1))

    lifecycle.unassign_item(store, "X", now=at(2))
    assert store.get_item("X").available is True

    # created before X was unassigned, same class
    store.merge_items([item("N", "2", created=at(-40))], now=at(3))

    assert assign_next(store, b.id, now=at(4)).item_id == "X"


def test_fractional_agent_id_is_refused(store):
    a = store.create_agent("Alice", "Item Review", 5)
    store.merge_items([item("X", "1", created=at(-1))], now=at(0))

    with pytest.raises(InvalidArgument):
        assign_next(store, a.id + 0.9, now=at(1))
    assert store.list_assignments() == []

    assert assign_next(store, float(a.id), now=at(2)).item_id == "X"
