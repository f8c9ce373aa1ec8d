# backend/app/routers/assignments.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..schemas import (
    AgentRequest,
    AssignmentOut,
    AssignResultOut,
    CompleteRequest,
    CompleteResultOut,
    ErrorOut,
    ItemRequest,
    TransitionResultOut,
)
from ..services import assignment_lifecycle as lifecycle
from ..services.allocator import assign_next
from ..stores.base import AssignmentStore
from ..stores.factory import get_store

router = APIRouter(tags=["assignments"])

_ERRORS = {
    400: {"model": ErrorOut},
    404: {"model": ErrorOut},
    409: {"model": ErrorOut},
    500: {"model": ErrorOut},
}


def _agent_name(store: AssignmentStore, agent_id: int) -> str:
    a = store.get_agent(agent_id)
    return a.name if a else lifecycle.UNKNOWN_AGENT


@router.post("/assign", response_model=AssignResultOut, responses=_ERRORS)
def assign(payload: AgentRequest, store: AssignmentStore = Depends(get_store)):
    rec = assign_next(store, payload.agent_id)
    return AssignResultOut(
        message=f"Item {rec.item_id} assigned to {_agent_name(store, rec.agent_id)}",
        assignment=AssignmentOut.model_validate(rec),
    )


@router.post("/complete", response_model=CompleteResultOut, responses=_ERRORS)
def complete(payload: CompleteRequest, store: AssignmentStore = Depends(get_store)):
    rec = lifecycle.complete(store, payload.agent_id, payload.item_id)
    return CompleteResultOut(
        message=f"Item {rec.item_id} completed by {_agent_name(store, rec.agent_id)}",
        assignment=AssignmentOut.model_validate(rec),
    )


@router.post("/complete-all", response_model=TransitionResultOut, responses=_ERRORS)
def complete_all(payload: AgentRequest, store: AssignmentStore = Depends(get_store)):
    res = lifecycle.complete_all(store, payload.agent_id)
    return TransitionResultOut(message=f"Completed {res.count} items", **res.as_dict())


@router.post("/unassign-item", response_model=TransitionResultOut, responses=_ERRORS)
def unassign_item(payload: ItemRequest, store: AssignmentStore = Depends(get_store)):
    res = lifecycle.unassign_item(store, payload.item_id)
    return TransitionResultOut(message=f"Unassigned {res.count} assignments of item {payload.item_id}", **res.as_dict())


@router.post("/unassign-agent", response_model=TransitionResultOut, responses=_ERRORS)
def unassign_agent(payload: AgentRequest, store: AssignmentStore = Depends(get_store)):
    res = lifecycle.unassign_agent(store, payload.agent_id)
    return TransitionResultOut(message=f"Unassigned {res.count} items from agent", **res.as_dict())


@router.post("/unassign-all", response_model=TransitionResultOut, responses=_ERRORS)
def unassign_all(store: AssignmentStore = Depends(get_store)):
    res = lifecycle.unassign_all(store)
    return TransitionResultOut(message=f"Unassigned {res.count} items from all agents", **res.as_dict())


@router.get("/assignments", response_model=list[AssignmentOut])
def list_assignments(
    status: str | None = Query(default=None, description="active|completed|unassigned"),
    agent_id: int | None = Query(default=None),
    item_id: str | None = Query(default=None),
    store: AssignmentStore = Depends(get_store),
):
    rows = store.list_assignments(status=status, agent_id=agent_id, item_id=item_id)
    return [AssignmentOut.model_validate(a) for a in rows]
