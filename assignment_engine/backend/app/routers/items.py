# backend/app/routers/items.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from ..config import settings
from ..domain.errors import InvalidArgument
from ..domain.importers.base import parse_csv_bytes
from ..middleware.request_id import get_request_id
from ..schemas import ErrorOut, ImportResultOut, ItemOut
from ..services import reports
from ..services.item_merge import merge_item_rows
from ..stores.base import AssignmentStore
from ..stores.factory import get_store

router = APIRouter(tags=["items"])

UPLOAD_MODES = ("sync", "async")


def _read_csv_rows(file: UploadFile) -> list[dict[str, str]]:
    content = file.file.read()
    if not content:
        raise InvalidArgument("uploaded file is empty")
    return parse_csv_bytes(content)


@router.get("/items", response_model=list[ItemOut])
def list_items(
    available: Optional[bool] = Query(default=None),
    store: AssignmentStore = Depends(get_store),
):
    return [ItemOut.model_validate(i) for i in store.list_items(available=available)]


@router.get("/items/unassigned", response_model=list[dict])
def unassigned_items(store: AssignmentStore = Depends(get_store)):
    return reports.unassigned_items(store)


@router.get("/queue", response_model=list[dict])
def queue(store: AssignmentStore = Depends(get_store)):
    return reports.queue(store)


@router.post("/upload-items", response_model=ImportResultOut, responses={400: {"model": ErrorOut}})
def upload_items(
    file: UploadFile = File(...),
    mode: str = Query(default="sync", description="sync|async"),
    notes: Optional[str] = Form(default=None),
    store: AssignmentStore = Depends(get_store),
):
    """
    Merge an items CSV into the queue.

    sync  - merged inside the request, counts returned
    async - parsed here, merged by the imports worker; only the task id is returned
    """
    mode = (mode or "sync").strip().lower()
    if mode not in UPLOAD_MODES:
        raise InvalidArgument(f"mode must be one of {', '.join(UPLOAD_MODES)}")

    if mode == "async" and settings.store_backend == "memory":
        raise InvalidArgument("async imports need a shared store; use store_backend=sql")

    rows = _read_csv_rows(file)

    if mode == "async":
        from ..workers.import_tasks import import_items

        task = import_items.delay(rows, filename=file.filename, notes=notes, request_id=get_request_id())
        return ImportResultOut(source="items", mode="async", task_id=task.id)

    out = merge_item_rows(store, rows, filename=file.filename, notes=notes)
    return ImportResultOut(mode="sync", **out.as_dict())
