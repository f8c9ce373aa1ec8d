"""agents, work items, assignment ledger

Revision ID: 0001_init
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "agents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("role", sa.String(length=80), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_agents_name", "agents", ["name"])

    op.create_table(
        "work_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("item_id", sa.String(length=120), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("priority", sa.String(length=40), nullable=True),
        sa.Column("priority_rank", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("count", sa.Integer(), nullable=False),
        sa.Column("available", sa.Boolean(), nullable=False),
        sa.Column("queued_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_work_items_item_id", "work_items", ["item_id"], unique=True)
    op.create_index("ix_work_items_available_created", "work_items", ["available", "created_at"])

    op.create_table(
        "assignments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("agent_id", sa.Integer(), sa.ForeignKey("agents.id"), nullable=False),
        sa.Column("item_id", sa.String(length=120), sa.ForeignKey("work_items.item_id"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("assigned_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("unassigned_at", sa.DateTime(), nullable=True),
        sa.Column("unassigned_by", sa.String(length=160), nullable=True),
    )
    op.create_index("ix_assignments_agent_status", "assignments", ["agent_id", "status"])
    op.create_index("ix_assignments_item_status", "assignments", ["item_id", "status"])
    op.create_index(
        "uq_assignments_item_active",
        "assignments",
        ["item_id"],
        unique=True,
        sqlite_where=sa.text("status = 'active'"),
        postgresql_where=sa.text("status = 'active'"),
    )


def downgrade():
    op.drop_index("uq_assignments_item_active", table_name="assignments")
    op.drop_index("ix_assignments_item_status", table_name="assignments")
    op.drop_index("ix_assignments_agent_status", table_name="assignments")
    op.drop_table("assignments")

    op.drop_index("ix_work_items_available_created", table_name="work_items")
    op.drop_index("ix_work_items_item_id", table_name="work_items")
    op.drop_table("work_items")

    op.drop_index("ix_agents_name", table_name="agents")
    op.drop_table("agents")
