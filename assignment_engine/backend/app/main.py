# backend/app/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .db import SessionLocal, init_db
from .domain.errors import AssignmentError, InvalidArgument
from .logging_config import configure_logging
from .middleware.request_id import RequestIDMiddleware, get_request_id
from .middleware.structured_logging import StructuredLoggingMiddleware

from .routers.health import router as health_router
from .routers.assignments import router as assignments_router
from .routers.items import router as items_router
from .routers.agents import router as agents_router
from .routers.dashboard import router as dashboard_router
from .routers.exports import router as exports_router

from .services.bootstrap import load_initial_data
from .stores.factory import build_store

API_PREFIX = "/api"

log = logging.getLogger("assignment_engine")


def _cors_origins() -> list[str]:
    val = getattr(settings, "cors_allow_origins", ["*"])
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


def _bootstrap() -> None:
    db = SessionLocal()
    try:
        out = load_initial_data(build_store(db))
        log.info("bootstrap_done %s", out.as_dict())
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if settings.bootstrap_on_startup:
        _bootstrap()
    yield


async def assignment_error_handler(request: Request, exc: AssignmentError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("request_failed %s", exc.message, extra={"kind": exc.kind})
    return JSONResponse(status_code=exc.status_code, content={**exc.as_dict(), "request_id": get_request_id()})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    parts = []
    for e in exc.errors():
        loc = ".".join(str(p) for p in e.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {e.get('msg')}" if loc else str(e.get("msg")))
    err = InvalidArgument("; ".join(parts) or "invalid request")
    return JSONResponse(status_code=err.status_code, content={**err.as_dict(), "request_id": get_request_id()})


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="Assignment Engine",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Request-ID first (observability baseline)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AssignmentError, assignment_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # Core
    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(dashboard_router, prefix=API_PREFIX)

    # Allocation + lifecycle
    app.include_router(assignments_router, prefix=API_PREFIX)

    # Queue, roster, exports
    app.include_router(items_router, prefix=API_PREFIX)
    app.include_router(agents_router, prefix=API_PREFIX)
    app.include_router(exports_router, prefix=API_PREFIX)

    return app


app = create_app()
