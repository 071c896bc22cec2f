"""initial schema

Revision ID: 20260301_0001
Revises:
Create Date: 2026-03-01
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20260301_0001"
down_revision = None
branch_labels = None
depends_on = None


WORK_STATUSES = ("todo", "in-progress", "done")
PRIORITIES = ("low", "med", "high")


def _status(name: str) -> sa.Enum:
    return sa.Enum(*WORK_STATUSES, name=name, native_enum=False, create_constraint=True, length=16)


def _priority(name: str) -> sa.Enum:
    return sa.Enum(*PRIORITIES, name=name, native_enum=False, create_constraint=True, length=8)


def upgrade() -> None:
    op.create_table(
        "projects",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column("progress", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("project_manager_id", sa.String(length=128), nullable=True),
        sa.Column("member_ids", sa.JSON(), nullable=False),
        sa.Column("created_by", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("progress >= 0 AND progress <= 100", name="ck_projects_progress_range"),
    )
    op.create_index("ix_projects_project_manager_id", "projects", ["project_manager_id"])

    op.create_table(
        "deliverable_phases",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("project_id", sa.String(length=36), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("color", sa.String(length=32), nullable=True),
        sa.Column("status", _status("phase_status"), nullable=False, server_default="todo"),
    )
    op.create_index("ix_deliverable_phases_project_id", "deliverable_phases", ["project_id"])

    op.create_table(
        "deliverables",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("project_id", sa.String(length=36), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("phase_id", sa.String(length=36), sa.ForeignKey("deliverable_phases.id"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column("link", sa.String(length=1000), nullable=True),
        sa.Column("priority", _priority("deliverable_priority"), nullable=False, server_default="med"),
        sa.Column("priority_number", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("status", _status("deliverable_status"), nullable=False, server_default="todo"),
        sa.Column("assignee_ids", sa.JSON(), nullable=False),
    )
    op.create_index("ix_deliverables_project_id", "deliverables", ["project_id"])
    op.create_index("ix_deliverables_phase_id", "deliverables", ["phase_id"])

    op.create_table(
        "tasks",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("project_id", sa.String(length=36), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("deliverable_id", sa.String(length=36), sa.ForeignKey("deliverables.id"), nullable=True),
        sa.Column("phase_id", sa.String(length=36), sa.ForeignKey("deliverable_phases.id"), nullable=True),
        sa.Column("text", sa.String(length=1000), nullable=False),
        sa.Column("priority", _priority("task_priority"), nullable=False, server_default="med"),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("status", _status("task_status"), nullable=False, server_default="todo"),
        sa.Column("assignee_id", sa.String(length=128), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.create_index("ix_tasks_project_id", "tasks", ["project_id"])
    op.create_index("ix_tasks_deliverable_id", "tasks", ["deliverable_id"])
    op.create_index("ix_tasks_assignee_id", "tasks", ["assignee_id"])

    op.create_table(
        "permission_grants",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("project_id", sa.String(length=36), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("capabilities", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("project_id", "user_id", name="uq_permission_grants_project_user"),
    )
    op.create_index("ix_permission_grants_user_id", "permission_grants", ["user_id"])

    op.create_table(
        "notification_messages",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("topic", sa.String(length=128), nullable=False),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("project_id", sa.String(length=36), nullable=True),
        sa.Column("message", sa.String(length=2000), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_notification_messages_user_id", "notification_messages", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_notification_messages_user_id", table_name="notification_messages")
    op.drop_table("notification_messages")

    op.drop_index("ix_permission_grants_user_id", table_name="permission_grants")
    op.drop_table("permission_grants")

    op.drop_index("ix_tasks_assignee_id", table_name="tasks")
    op.drop_index("ix_tasks_deliverable_id", table_name="tasks")
    op.drop_index("ix_tasks_project_id", table_name="tasks")
    op.drop_table("tasks")

    op.drop_index("ix_deliverables_phase_id", table_name="deliverables")
    op.drop_index("ix_deliverables_project_id", table_name="deliverables")
    op.drop_table("deliverables")

    op.drop_index("ix_deliverable_phases_project_id", table_name="deliverable_phases")
    op.drop_table("deliverable_phases")

    op.drop_index("ix_projects_project_manager_id", table_name="projects")
    op.drop_table("projects")
