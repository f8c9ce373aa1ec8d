# backend/app/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# -------------------- Requests --------------------
# Ids stay loosely typed here; the services validate them so a missing or
# malformed id is reported as invalid_argument rather than a schema error.

class AgentRequest(BaseModel):
    agent_id: Optional[Any] = Field(default=None, validation_alias=AliasChoices("agent_id", "agentId"))


class CompleteRequest(BaseModel):
    agent_id: Optional[Any] = Field(default=None, validation_alias=AliasChoices("agent_id", "agentId"))
    item_id: Optional[Any] = Field(
        default=None, validation_alias=AliasChoices("item_id", "itemId", "product_id", "productId")
    )


class ItemRequest(BaseModel):
    item_id: Optional[Any] = Field(
        default=None, validation_alias=AliasChoices("item_id", "itemId", "product_id", "productId")
    )


class AgentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=160)
    role: Optional[str] = None
    capacity: Optional[int] = Field(default=None, gt=0)


# -------------------- Snapshots --------------------

class AgentOut(BaseModel):
    id: int
    name: str
    role: str
    capacity: int
    active_count: int = 0
    model_config = ConfigDict(from_attributes=True)


class ItemOut(BaseModel):
    item_id: str
    name: str
    priority: Optional[str] = None
    priority_label: str
    tenant_id: Optional[str] = None
    created_at: Optional[datetime] = None
    count: int
    available: bool
    queued_at: datetime
    model_config = ConfigDict(from_attributes=True)


class AssignmentOut(BaseModel):
    id: int
    agent_id: int
    item_id: str
    status: str
    assigned_at: datetime
    completed_at: Optional[datetime] = None
    unassigned_at: Optional[datetime] = None
    unassigned_by: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


# -------------------- Results --------------------

class AssignResultOut(BaseModel):
    message: str
    assignment: AssignmentOut


class CompleteResultOut(BaseModel):
    message: str
    assignment: AssignmentOut


class TransitionResultOut(BaseModel):
    message: str
    status: str
    count: int
    item_ids: List[str] = Field(default_factory=list)


class ImportResultOut(BaseModel):
    batch_id: Optional[int] = None
    source: str
    mode: str = "sync"
    task_id: Optional[str] = None
    inserted: int = 0
    updated: int = 0
    preserved_active: int = 0
    skipped: int = 0
    errors: List[str] = Field(default_factory=list)


class DashboardOut(BaseModel):
    agents: List[AgentOut]
    items: List[ItemOut]
    assignments: List[AssignmentOut]
    total_agents: int
    total_items: int
    total_assignments: int
    active_assignments: int


class BootstrapOut(BaseModel):
    agents_loaded: int
    agents_source: Optional[str] = None
    items_loaded: int
    items_source: Optional[str] = None


class ErrorOut(BaseModel):
    detail: str
    kind: str
    retryable: bool = False
    entity: Optional[str] = None
    request_id: Optional[str] = None
