from __future__ import annotations

import os
import tempfile

# must be set before anything imports app.config
_DB_DIR = tempfile.mkdtemp(prefix="assignment-engine-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_DB_DIR}/test.db")
os.environ["STORE_BACKEND"] = "sql"
os.environ["BOOTSTRAP_ON_STARTUP"] = "false"

from datetime import datetime, timedelta

import pytest

from app import models  # noqa: F401  (register mappers)
from app.db import Base, SessionLocal, engine
from app.domain.records import ItemUpsert
from app.stores.factory import reset_memory_store
from app.stores.memory import MemoryAssignmentStore
from app.stores.sql import SqlAssignmentStore

T0 = datetime(2026, 1, 5, 9, 0, 0)


def at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


def item(item_id: str, priority: str | None = "3", created: datetime | None = None, **kw) -> ItemUpsert:
    return ItemUpsert(
        item_id=item_id,
        name=kw.get("name", item_id),
        priority=priority,
        tenant_id=kw.get("tenant_id", "tenant-1"),
        created_at=created,
        count=kw.get("count", 1),
    )


@pytest.fixture(autouse=True)
def _fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    reset_memory_store()
    yield
    reset_memory_store()


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture(params=["memory", "sql"])
def store(request, db):
    if request.param == "memory":
        return MemoryAssignmentStore()
    return SqlAssignmentStore(db)


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from app.main import create_app

    return TestClient(create_app())
