# backend/app/routers/agents.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from ..config import settings
from ..domain.errors import InvalidArgument
from ..domain.importers.base import parse_csv_bytes
from ..schemas import AgentCreate, AgentOut, ErrorOut, ImportResultOut
from ..services.item_merge import merge_roster_rows
from ..stores.base import AssignmentStore
from ..stores.factory import get_store

router = APIRouter(tags=["agents"])


@router.get("/agents", response_model=list[AgentOut])
def list_agents(store: AssignmentStore = Depends(get_store)):
    return [AgentOut.model_validate(a) for a in store.list_agents()]


@router.post("/agents", response_model=AgentOut, responses={400: {"model": ErrorOut}})
def create_agent(payload: AgentCreate, store: AssignmentStore = Depends(get_store)):
    name = payload.name.strip()
    if not name:
        raise InvalidArgument("agent name is required")
    rec = store.create_agent(
        name=name,
        role=(payload.role or "").strip() or settings.default_agent_role,
        capacity=payload.capacity or settings.default_agent_capacity,
    )
    return AgentOut.model_validate(rec)


@router.post("/upload-agents", response_model=ImportResultOut, responses={400: {"model": ErrorOut}})
def upload_agents(
    file: UploadFile = File(...),
    notes: Optional[str] = Form(default=None),
    store: AssignmentStore = Depends(get_store),
):
    content = file.file.read()
    if not content:
        raise InvalidArgument("uploaded file is empty")
    out = merge_roster_rows(store, parse_csv_bytes(content), filename=file.filename, notes=notes)
    return ImportResultOut(mode="sync", **out.as_dict())
