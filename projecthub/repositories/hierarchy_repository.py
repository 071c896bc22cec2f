"""Repository helpers for the project hierarchy and permission grants."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from projecthub.models.entities import (
    Deliverable,
    DeliverablePhase,
    NotificationMessage,
    PermissionGrant,
    Project,
    Task,
    WorkStatus,
)


class HierarchyRepository:
    """Persistence operations used by hierarchy, aggregation and permission services."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Projects ----------
    def list_projects(self) -> list[Project]:
        return self.db.scalars(select(Project).order_by(Project.created_at.asc(), Project.title.asc())).all()

    def get_project(self, project_id: str) -> Project | None:
        return self.db.scalar(select(Project).where(Project.id == project_id))

    def add_project(self, project: Project) -> Project:
        self.db.add(project)
        self.db.flush()
        return project

    def delete_project(self, project: Project) -> None:
        self.db.delete(project)
        self.db.flush()

    # ---------- Phases ----------
    def list_phases(self, project_id: str) -> list[DeliverablePhase]:
        return self.db.scalars(
            select(DeliverablePhase)
            .where(DeliverablePhase.project_id == project_id)
            .order_by(DeliverablePhase.start_date.asc(), DeliverablePhase.title.asc())
        ).all()

    def get_phase(self, phase_id: str) -> DeliverablePhase | None:
        return self.db.scalar(select(DeliverablePhase).where(DeliverablePhase.id == phase_id))

    def add_phase(self, phase: DeliverablePhase) -> DeliverablePhase:
        self.db.add(phase)
        self.db.flush()
        return phase

    def delete_phase(self, phase: DeliverablePhase) -> None:
        self.db.delete(phase)
        self.db.flush()

    def phase_status_counts(self, project_id: str) -> tuple[int, int]:
        """Return ``(total, done)`` phase counts for a project."""

        rows = self.db.execute(
            select(DeliverablePhase.status, func.count(DeliverablePhase.id))
            .where(DeliverablePhase.project_id == project_id)
            .group_by(DeliverablePhase.status)
        ).all()
        total = sum(count for _, count in rows)
        done = sum(count for value, count in rows if value == WorkStatus.DONE)
        return total, done

    # ---------- Deliverables ----------
    def list_deliverables(self) -> list[Deliverable]:
        return self.db.scalars(
            select(Deliverable).order_by(Deliverable.priority_number.asc(), Deliverable.title.asc())
        ).all()

    def list_deliverables_for_phase(self, phase_id: str) -> list[Deliverable]:
        return self.db.scalars(
            select(Deliverable)
            .where(Deliverable.phase_id == phase_id)
            .order_by(Deliverable.priority_number.asc(), Deliverable.title.asc())
        ).all()

    def list_deliverables_for_project(self, project_id: str) -> list[Deliverable]:
        return self.db.scalars(
            select(Deliverable)
            .where(Deliverable.project_id == project_id)
            .order_by(Deliverable.priority_number.asc(), Deliverable.title.asc())
        ).all()

    def get_deliverable(self, deliverable_id: str) -> Deliverable | None:
        return self.db.scalar(select(Deliverable).where(Deliverable.id == deliverable_id))

    def add_deliverable(self, deliverable: Deliverable) -> Deliverable:
        self.db.add(deliverable)
        self.db.flush()
        return deliverable

    def delete_deliverable(self, deliverable: Deliverable) -> None:
        self.db.delete(deliverable)
        self.db.flush()

    # ---------- Tasks ----------
    def list_tasks(self) -> list[Task]:
        return self.db.scalars(select(Task).order_by(Task.project_id.asc(), Task.position.asc())).all()

    def list_tasks_for_deliverable(self, deliverable_id: str) -> list[Task]:
        return self.db.scalars(
            select(Task)
            .where(Task.deliverable_id == deliverable_id)
            .order_by(Task.position.asc(), Task.text.asc())
        ).all()

    def list_tasks_for_project(self, project_id: str) -> list[Task]:
        return self.db.scalars(
            select(Task).where(Task.project_id == project_id).order_by(Task.position.asc(), Task.text.asc())
        ).all()

    def list_tasks_for_phase(self, phase_id: str) -> list[Task]:
        return self.db.scalars(
            select(Task).where(Task.phase_id == phase_id).order_by(Task.position.asc(), Task.text.asc())
        ).all()

    def list_tasks_for_assignee(self, assignee_id: str) -> list[Task]:
        return self.db.scalars(
            select(Task).where(Task.assignee_id == assignee_id).order_by(Task.due_date.asc(), Task.text.asc())
        ).all()

    def get_task(self, task_id: str) -> Task | None:
        return self.db.scalar(select(Task).where(Task.id == task_id))

    def next_task_position(self, deliverable_id: str | None) -> int:
        if deliverable_id is None:
            return 0
        current = self.db.scalar(
            select(func.max(Task.position)).where(Task.deliverable_id == deliverable_id)
        )
        return 0 if current is None else current + 1

    def add_task(self, task: Task) -> Task:
        self.db.add(task)
        self.db.flush()
        return task

    def delete_task(self, task: Task) -> None:
        self.db.delete(task)
        self.db.flush()

    # ---------- Permission grants ----------
    def get_grant(self, project_id: str, user_id: str) -> PermissionGrant | None:
        return self.db.scalar(
            select(PermissionGrant).where(
                PermissionGrant.project_id == project_id,
                PermissionGrant.user_id == user_id,
            )
        )

    def list_grants_for_project(self, project_id: str) -> list[PermissionGrant]:
        return self.db.scalars(
            select(PermissionGrant)
            .where(PermissionGrant.project_id == project_id)
            .order_by(PermissionGrant.user_id.asc())
        ).all()

    def list_grants_for_user(self, user_id: str) -> list[PermissionGrant]:
        return self.db.scalars(
            select(PermissionGrant)
            .where(PermissionGrant.user_id == user_id)
            .order_by(PermissionGrant.project_id.asc())
        ).all()

    def add_grant(self, grant: PermissionGrant) -> PermissionGrant:
        self.db.add(grant)
        self.db.flush()
        return grant

    def delete_grant(self, grant: PermissionGrant) -> None:
        self.db.delete(grant)
        self.db.flush()

    # ---------- Notification outbox ----------
    def add_notification(self, message: NotificationMessage) -> NotificationMessage:
        self.db.add(message)
        self.db.flush()
        return message
