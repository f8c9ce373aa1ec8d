# backend/app/workers/import_tasks.py
from __future__ import annotations

import logging
from typing import Optional

from ..db import SessionLocal
from ..domain.errors import StorageFailure
from ..middleware.request_id import bound_request_id
from ..services.item_merge import merge_item_rows
from ..stores.factory import build_store
from .celery_app import celery_app

log = logging.getLogger("assignment_engine.worker")


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    name="app.workers.import_tasks.import_items",
)
def import_items(
    self,
    rows: list[dict[str, str]],
    filename: Optional[str] = None,
    notes: Optional[str] = None,
    request_id: Optional[str] = None,
) -> dict:
    """
    Merge parsed item rows outside the request.

    Only storage failures are retried; bad rows are already reported
    per row by the merge and never fail the task.
    """
    with bound_request_id(request_id):
        db = SessionLocal()
        try:
            out = merge_item_rows(build_store(db), rows, filename=filename, notes=notes)
            return out.as_dict()
        except StorageFailure as exc:
            log.warning("import_items_retry attempt=%s", self.request.retries, extra={"kind": exc.kind})
            raise self.retry(exc=exc)
        finally:
            db.close()
