# backend/app/models.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


# -----------------------------
# Reviewers
# -----------------------------
class Agent(Base):
    __tablename__ = "agents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(160), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(80), nullable=False, default="Item Review")
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=30)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    assignments: Mapped[List["Assignment"]] = relationship(back_populates="agent")


# -----------------------------
# Work queue
# -----------------------------
class WorkItem(Base):
    __tablename__ = "work_items"
    __table_args__ = (Index("ix_work_items_available_created", "available", "created_at"),)

    # row id doubles as the stable insertion order used as the last tie-break
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    item_id: Mapped[str] = mapped_column(String(120), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    priority: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)  # raw, as imported
    priority_rank: Mapped[int] = mapped_column(Integer, nullable=False, default=3)  # 1=P1 .. 3=P3
    tenant_id: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # cached: true iff no active assignment references this item
    available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    queued_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Assignment ledger
# -----------------------------
class Assignment(Base):
    __tablename__ = "assignments"
    __table_args__ = (
        Index("ix_assignments_agent_status", "agent_id", "status"),
        Index("ix_assignments_item_status", "item_id", "status"),
        # at most one active record per item
        Index(
            "uq_assignments_item_active",
            "item_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    agent_id: Mapped[int] = mapped_column(Integer, ForeignKey("agents.id"), nullable=False)
    item_id: Mapped[str] = mapped_column(String(120), ForeignKey("work_items.item_id"), nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")  # active|completed|unassigned

    assigned_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    unassigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    unassigned_by: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)

    agent: Mapped["Agent"] = relationship(back_populates="assignments")


# -----------------------------
# Imports
# -----------------------------
class ImportBatch(Base):
    __tablename__ = "import_batches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    source: Mapped[str] = mapped_column(String(40), nullable=False)  # items|agents
    filename: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    inserted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    preserved_active: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    skipped: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
