# backend/app/routers/dashboard.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..schemas import AgentOut, AssignmentOut, BootstrapOut, DashboardOut, ItemOut
from ..services import reports
from ..services.bootstrap import load_initial_data
from ..stores.base import AssignmentStore
from ..stores.factory import get_store

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard-data", response_model=DashboardOut)
def dashboard_data(store: AssignmentStore = Depends(get_store)):
    """Whole-state snapshot for the dashboard: agents, items, assignments plus totals."""
    d = reports.dashboard(store)
    return DashboardOut(
        agents=[AgentOut.model_validate(a) for a in d["agents"]],
        items=[ItemOut.model_validate(i) for i in d["items"]],
        assignments=[AssignmentOut.model_validate(a) for a in d["assignments"]],
        total_agents=d["total_agents"],
        total_items=d["total_items"],
        total_assignments=d["total_assignments"],
        active_assignments=d["active_assignments"],
    )


@router.get("/assignments/completed", response_model=list[dict])
def completed_assignments(store: AssignmentStore = Depends(get_store)):
    return reports.completed_assignments(store)


@router.get("/assignments/previous", response_model=list[dict])
def previously_assigned(store: AssignmentStore = Depends(get_store)):
    return reports.previously_assigned(store)


@router.post("/refresh", response_model=BootstrapOut)
def refresh(store: AssignmentStore = Depends(get_store)):
    # only seeds what is empty; existing agents/items/assignments are untouched
    return BootstrapOut(**load_initial_data(store).as_dict())
