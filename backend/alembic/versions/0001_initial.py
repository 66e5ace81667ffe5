"""initial

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _uuid() -> sa.Uuid:
    return sa.Uuid()


def _now() -> sa.TextClause:
    return sa.text("CURRENT_TIMESTAMP")


def upgrade() -> None:
    op.create_table(
        "employees",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=320)),
        sa.Column("phone", sa.String(length=32), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="Employee"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Active"),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
    )
    op.create_index("ix_employees_email", "employees", ["email"], unique=True)
    op.create_index("ix_employees_phone", "employees", ["phone"], unique=True)

    op.create_table(
        "sites",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("location", sa.String(length=500)),
        sa.Column("city", sa.String(length=120)),
        sa.Column("state", sa.String(length=120)),
        sa.Column("country", sa.String(length=120)),
        sa.Column("start_date", sa.Date()),
        sa.Column("end_date", sa.Date()),
        sa.Column("duration", sa.Integer()),
        sa.Column("budget", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("funds", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("client_name", sa.String(length=255)),
        sa.Column("client_email", sa.String(length=320)),
        sa.Column("client_phone", sa.String(length=32)),
        sa.Column("client_company", sa.String(length=255)),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
    )

    op.create_table(
        "phases",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("site_id", _uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("order_num", sa.Integer(), nullable=False),
        sa.Column("budget", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="NotStarted"),
        sa.Column("assigned_to", _uuid()),
        sa.Column("completed_by", _uuid()),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("approved_by", _uuid()),
        sa.Column("approved_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.ForeignKeyConstraint(["site_id"], ["sites.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["assigned_to"], ["employees.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["completed_by"], ["employees.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["approved_by"], ["employees.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("site_id", "order_num", name="uq_phases_site_id_order_num"),
    )
    op.create_index("ix_phases_site_id", "phases", ["site_id"])
    op.create_index("ix_phases_assigned_to", "phases", ["assigned_to"])

    op.create_table(
        "tasks",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("site_id", _uuid(), nullable=False),
        sa.Column("phase_id", _uuid()),
        sa.Column("name", sa.String(length=300), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="NotStarted"),
        sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("start_date", sa.Date()),
        sa.Column("due_date", sa.Date()),
        sa.Column("delay_reason", sa.String(length=2000)),
        sa.Column("proof_url", sa.String(length=2000)),
        sa.Column("completed_by", _uuid()),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("approved_by", _uuid()),
        sa.Column("approved_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.ForeignKeyConstraint(["site_id"], ["sites.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["phase_id"], ["phases.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["completed_by"], ["employees.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["approved_by"], ["employees.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_tasks_site_id", "tasks", ["site_id"])
    op.create_index("ix_tasks_phase_id", "tasks", ["phase_id"])
    op.create_index("ix_tasks_due_date", "tasks", ["due_date"])

    for table, owner, owner_table in (
        ("task_assignments", "task_id", "tasks"),
        ("site_assignments", "site_id", "sites"),
    ):
        op.create_table(
            table,
            sa.Column(owner, _uuid(), primary_key=True),
            sa.Column("employee_id", _uuid(), primary_key=True),
            sa.Column("assigned_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
            sa.ForeignKeyConstraint([owner], [f"{owner_table}.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        )

    op.create_table(
        "task_updates",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("task_id", _uuid(), nullable=False),
        sa.Column("employee_id", _uuid()),
        sa.Column("previous_progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("new_progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("note", sa.String(length=4000)),
        sa.Column("image_url", sa.String(length=2000)),
        sa.Column("audio_url", sa.String(length=2000)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_task_updates_task_id", "task_updates", ["task_id"])

    op.create_table(
        "phase_updates",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("phase_id", _uuid(), nullable=False),
        sa.Column("employee_id", _uuid()),
        sa.Column("previous_progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("new_progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("message", sa.String(length=4000)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.ForeignKeyConstraint(["phase_id"], ["phases.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_phase_updates_phase_id", "phase_updates", ["phase_id"])

    for table, owner, owner_table in (
        ("task_messages", "task_id", "tasks"),
        ("phase_messages", "phase_id", "phases"),
    ):
        op.create_table(
            table,
            sa.Column("id", _uuid(), primary_key=True),
            sa.Column(owner, _uuid(), nullable=False),
            sa.Column("sender_id", _uuid()),
            sa.Column("type", sa.String(length=20), nullable=False, server_default="text"),
            sa.Column("content", sa.String(length=4000)),
            sa.Column("media_url", sa.String(length=2000)),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
            sa.ForeignKeyConstraint([owner], [f"{owner_table}.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["sender_id"], ["employees.id"], ondelete="SET NULL"),
        )
        op.create_index(f"ix_{table}_{owner}", table, [owner])

    op.create_table(
        "task_todos",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("task_id", _uuid(), nullable=False),
        sa.Column("employee_id", _uuid()),
        sa.Column("content", sa.String(length=2000), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_task_todos_task_id", "task_todos", ["task_id"])

    op.create_table(
        "phase_todos",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("phase_id", _uuid(), nullable=False),
        sa.Column("content", sa.String(length=2000), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.ForeignKeyConstraint(["phase_id"], ["phases.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_phase_todos_phase_id", "phase_todos", ["phase_id"])

    op.create_table(
        "notifications",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("site_id", _uuid()),
        sa.Column("phase_id", _uuid()),
        sa.Column("task_id", _uuid()),
        sa.Column("recipient_id", _uuid()),
        sa.Column("actor_id", _uuid()),
        sa.Column("message", sa.String(length=1000), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.ForeignKeyConstraint(["site_id"], ["sites.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["phase_id"], ["phases.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["recipient_id"], ["employees.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["actor_id"], ["employees.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_notifications_type", "notifications", ["type"])
    op.create_index("ix_notifications_site_id", "notifications", ["site_id"])
    op.create_index("ix_notifications_recipient_id", "notifications", ["recipient_id"])


def downgrade() -> None:
    op.drop_index("ix_notifications_recipient_id", table_name="notifications")
    op.drop_index("ix_notifications_site_id", table_name="notifications")
    op.drop_index("ix_notifications_type", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index("ix_phase_todos_phase_id", table_name="phase_todos")
    op.drop_table("phase_todos")
    op.drop_index("ix_task_todos_task_id", table_name="task_todos")
    op.drop_table("task_todos")

    op.drop_index("ix_phase_messages_phase_id", table_name="phase_messages")
    op.drop_table("phase_messages")
    op.drop_index("ix_task_messages_task_id", table_name="task_messages")
    op.drop_table("task_messages")

    op.drop_index("ix_phase_updates_phase_id", table_name="phase_updates")
    op.drop_table("phase_updates")
    op.drop_index("ix_task_updates_task_id", table_name="task_updates")
    op.drop_table("task_updates")

    op.drop_table("site_assignments")
    op.drop_table("task_assignments")

    op.drop_index("ix_tasks_due_date", table_name="tasks")
    op.drop_index("ix_tasks_phase_id", table_name="tasks")
    op.drop_index("ix_tasks_site_id", table_name="tasks")
    op.drop_table("tasks")

    op.drop_index("ix_phases_assigned_to", table_name="phases")
    op.drop_index("ix_phases_site_id", table_name="phases")
    op.drop_table("phases")

    op.drop_table("sites")

    op.drop_index("ix_employees_phone", table_name="employees")
    op.drop_index("ix_employees_email", table_name="employees")
    op.drop_table("employees")
