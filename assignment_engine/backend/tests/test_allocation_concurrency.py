from __future__ import annotations

import threading
import time

import pytest

from app.db import SessionLocal
from app.domain.errors import ConcurrentAssignmentInProgress, NoAvailableWork
from app.services.allocation_guard import AllocationGuard
from app.services.allocator import assign_next
from app.stores.memory import MemoryAssignmentStore
from app.stores.sql import SqlAssignmentStore

from conftest import at, item


def _assign_with_retry(open_store, agent_id, guard, outcomes, barrier):
    store, close = open_store()
    try:
        barrier.wait()
        while True:
            try:
                rec = assign_next(store, agent_id, guard=guard)
                outcomes.append(("ok", rec.item_id))
                return
            except ConcurrentAssignmentInProgress:
                time.sleep(0.001)
            except NoAvailableWork:
                outcomes.append(("empty", None))
                return
    finally:
        close()


def _store_opener(backend):
    """Shared store for memory; one session per caller for sql."""
    if backend == "memory":
        shared = MemoryAssignmentStore()
        return lambda: (shared, lambda: None)

    def open_sql():
        s = SessionLocal()
        return SqlAssignmentStore(s), s.close

    return open_sql


@pytest.mark.parametrize("backend", ["memory", "sql"])
def test_parallel_assign_hands_out_each_item_once(backend):
    """
    N agents race for M < N items: exactly M succeed, the rest see an
    empty queue, and no item is bound twice.
    """
    open_store = _store_opener(backend)
    guard = AllocationGuard()
    n_agents, n_items = 8, 5

    setup, close_setup = open_store()
    try:
        agents = [setup.create_agent(f"Agent {i}", "Item Review", 5) for i in range(n_agents)]
        setup.merge_items([item(f"I{i}", "2", created=at(-i)) for i in range(n_items)], now=at(0))
    finally:
        close_setup()

    outcomes: list = []
    barrier = threading.Barrier(n_agents)
    threads = [
        threading.Thread(target=_assign_with_retry, args=(open_store, a.id, guard, outcomes, barrier))
        for a in agents
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    ok = [iid for kind, iid in outcomes if kind == "ok"]
    assert len(ok) == n_items
    assert len(set(ok)) == n_items
    assert sum(1 for kind, _ in outcomes if kind == "empty") == n_agents - n_items
    assert not guard.held

    check, close_check = open_store()
    try:
        assert len(check.active_assignments()) == n_items
        assert check.list_items(available=True) == []
    finally:
        close_check()


def test_held_guard_refuses_immediately_and_changes_nothing(store):
    guard = AllocationGuard()
    a = store.create_agent("Alice", "Item Review", 5)
    store.merge_items([item("X", "1", created=at(-1))], now=at(0))

    assert guard.try_acquire()
    try:
        with pytest.raises(ConcurrentAssignmentInProgress) as exc:
            assign_next(store, a.id, guard=guard, now=at(1))
        assert exc.value.retryable is True
        assert store.list_assignments() == []
        assert store.get_item("X").available is True
    finally:
        guard.release()

    assert assign_next(store, a.id, guard=guard, now=at(2)).item_id == "X"


def test_guard_is_released_after_a_refusal(store):
    guard = AllocationGuard()
    a = store.create_agent("Alice", "Item Review", 5)

    with pytest.raises(NoAvailableWork):
        assign_next(store, a.id, guard=guard)
    assert not guard.held


def test_store_refuses_a_second_open_on_the_same_item(store):
    a = store.create_agent("Alice", "Item Review", 5)
    b = store.create_agent("Bob", "Item Review", 5)
    store.merge_items([item("X", "1", created=at(-1))], now=at(0))

    store.open_assignment(agent_id=a.id, item_id="X", now=at(1))
    with pytest.raises(NoAvailableWork):
        store.open_assignment(agent_id=b.id, item_id="X", now=at(2))

    assert len(store.active_assignments(item_id="X")) == 1
