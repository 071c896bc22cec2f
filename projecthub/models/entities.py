"""ORM entities for the project hierarchy and permission grants."""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime

from sqlalchemy import JSON, CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from projecthub.db.base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class WorkStatus(str, enum.Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class Priority(str, enum.Enum):
    LOW = "low"
    MED = "med"
    HIGH = "high"


def _status_column(name: str) -> SQLEnum:
    # Non-native enum: VARCHAR plus CHECK constraint on every backend.
    return SQLEnum(
        WorkStatus,
        name=name,
        native_enum=False,
        create_constraint=True,
        length=16,
        values_callable=lambda enum_cls: [member.value for member in enum_cls],
    )


def _priority_column(name: str) -> SQLEnum:
    return SQLEnum(
        Priority,
        name=name,
        native_enum=False,
        create_constraint=True,
        length=8,
        values_callable=lambda enum_cls: [member.value for member in enum_cls],
    )


class Project(Base):
    __tablename__ = "projects"
    __table_args__ = (
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_projects_progress_range"),
        Index("ix_projects_project_manager_id", "project_manager_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    project_manager_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    member_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class DeliverablePhase(Base):
    __tablename__ = "deliverable_phases"
    __table_args__ = (Index("ix_deliverable_phases_project_id", "project_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    color: Mapped[str | None] = mapped_column(String(32), nullable=True)
    status: Mapped[WorkStatus] = mapped_column(
        _status_column("phase_status"), nullable=False, default=WorkStatus.TODO
    )


class Deliverable(Base):
    __tablename__ = "deliverables"
    __table_args__ = (
        Index("ix_deliverables_project_id", "project_id"),
        Index("ix_deliverables_phase_id", "phase_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id"), nullable=False)
    phase_id: Mapped[str] = mapped_column(String(36), ForeignKey("deliverable_phases.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    link: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    priority: Mapped[Priority] = mapped_column(
        _priority_column("deliverable_priority"), nullable=False, default=Priority.MED
    )
    priority_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[WorkStatus] = mapped_column(
        _status_column("deliverable_status"), nullable=False, default=WorkStatus.TODO
    )
    assignee_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_project_id", "project_id"),
        Index("ix_tasks_deliverable_id", "deliverable_id"),
        Index("ix_tasks_assignee_id", "assignee_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id"), nullable=False)
    deliverable_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("deliverables.id"), nullable=True
    )
    phase_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("deliverable_phases.id"), nullable=True)
    text: Mapped[str] = mapped_column(String(1000), nullable=False)
    priority: Mapped[Priority] = mapped_column(
        _priority_column("task_priority"), nullable=False, default=Priority.MED
    )
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[WorkStatus] = mapped_column(
        _status_column("task_status"), nullable=False, default=WorkStatus.TODO
    )
    assignee_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class PermissionGrant(Base):
    __tablename__ = "permission_grants"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_permission_grants_project_user"),
        Index("ix_permission_grants_user_id", "user_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    capabilities: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class NotificationMessage(Base):
    __tablename__ = "notification_messages"
    __table_args__ = (Index("ix_notification_messages_user_id", "user_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    topic: Mapped[str] = mapped_column(String(128), nullable=False)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    project_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    message: Mapped[str] = mapped_column(String(2000), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
