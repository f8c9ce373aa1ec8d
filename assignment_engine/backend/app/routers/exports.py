# backend/app/routers/exports.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from ..domain.errors import NotFound
from ..schemas import ErrorOut
from ..services import reports
from ..stores.base import AssignmentStore
from ..stores.factory import get_store

router = APIRouter(prefix="/download", tags=["exports"])


@router.get("/{export}", responses={404: {"model": ErrorOut}})
def download(export: str, store: AssignmentStore = Depends(get_store)):
    """CSV attachment for one of the report projections (see reports.EXPORTS)."""
    entry = reports.EXPORTS.get(export)
    if entry is None:
        raise NotFound("export", f"Unknown export: {export}")

    project, headers, filename = entry
    body = reports.to_csv(project(store), headers)
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
