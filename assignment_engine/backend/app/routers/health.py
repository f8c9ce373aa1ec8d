# backend/app/routers/health.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..services.allocation_guard import allocation_guard

router = APIRouter(tags=["health"])

log = logging.getLogger("assignment_engine.health")


@router.get("/health", response_model=dict)
def health(db: Session = Depends(get_db)):
    db_ok = True
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        log.exception("health_db_ping_failed")
        db_ok = False

    return {
        "ok": db_ok,
        "env": settings.app_env,
        "store_backend": settings.store_backend,
        "policy": settings.assignment_policy,
        "db": "ok" if db_ok else "unreachable",
        "allocation_in_progress": allocation_guard.held,
    }
