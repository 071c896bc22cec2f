"""User notification fan-out.

The dispatcher turns mutations and cascade transitions into one event per
recipient and hands each to a publisher. Publishing is fire-and-forget:
failures are logged and never reach the caller of the mutation.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from projecthub.core.config import get_settings
from projecthub.core.errors import TransientInfrastructureError
from projecthub.models.entities import Deliverable, DeliverablePhase, NotificationMessage, Project, Task
from projecthub.repositories.hierarchy_repository import HierarchyRepository
from projecthub.services.status_aggregation_service import Transition

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UserNotification:
    event_type: str
    user_id: str
    project_id: str | None
    message: str

    def to_payload(self) -> dict[str, str | None]:
        payload = asdict(self)
        return {
            "eventType": payload["event_type"],
            "userId": payload["user_id"],
            "projectId": payload["project_id"],
            "message": payload["message"],
        }


class NotificationPublisher(Protocol):
    def publish(self, notification: UserNotification) -> None: ...


class OutboxPublisher:
    """Persist notifications to the outbox table read by the broker relay."""

    def __init__(self, db: Session, *, topic: str | None = None) -> None:
        self.db = db
        self.repo = HierarchyRepository(db)
        self.topic = topic or get_settings().notification_topic

    def publish(self, notification: UserNotification) -> None:
        row = NotificationMessage(
            topic=self.topic,
            event_type=notification.event_type,
            user_id=notification.user_id,
            project_id=notification.project_id,
            message=notification.message,
        )
        try:
            self.repo.add_notification(row)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise TransientInfrastructureError(f"Could not enqueue {notification.event_type}") from exc


class NotificationDispatcher:
    """Build per-recipient events and publish them without failing the caller."""

    def __init__(self, publisher: NotificationPublisher, *, enabled: bool = True) -> None:
        self.publisher = publisher
        self.enabled = enabled

    def send(self, notification: UserNotification) -> bool:
        if not self.enabled or not notification.user_id:
            return False
        try:
            self.publisher.publish(notification)
        except Exception:
            logger.warning(
                "Dropping %s notification for user %s",
                notification.event_type,
                notification.user_id,
                exc_info=True,
            )
            return False
        return True

    def send_many(
        self,
        recipients: Iterable[str | None],
        *,
        event_type: str,
        project_id: str | None,
        message: str,
    ) -> int:
        sent = 0
        for user_id in dict.fromkeys(recipient for recipient in recipients if recipient):
            if self.send(
                UserNotification(
                    event_type=event_type,
                    user_id=user_id,
                    project_id=project_id,
                    message=message,
                )
            ):
                sent += 1
        return sent

    # ---------- Entity events ----------
    def task_event(self, task: Task, event_type: str, message: str) -> int:
        return self.send_many([task.assignee_id], event_type=event_type, project_id=task.project_id, message=message)

    def deliverable_event(self, deliverable: Deliverable, event_type: str, message: str) -> int:
        return self.send_many(
            deliverable.assignee_ids or [],
            event_type=event_type,
            project_id=deliverable.project_id,
            message=message,
        )

    def phase_event(self, project: Project, phase_title: str, event_type: str, action: str) -> int:
        sent = self.send_many(
            project.member_ids or [],
            event_type=event_type,
            project_id=project.id,
            message=f'The phase "{phase_title}" in project "{project.title}" has been {action}.',
        )
        sent += self.send_many(
            [project.project_manager_id],
            event_type=f"{event_type}Manager",
            project_id=project.id,
            message=f'The phase "{phase_title}" in your project "{project.title}" has been {action}.',
        )
        return sent

    # ---------- Cascade events ----------
    def transitions(self, transitions: Iterable[Transition], repo: HierarchyRepository) -> int:
        """Notify the people attached to every entity whose summary changed."""

        sent = 0
        for item in transitions:
            if item.entity_type == "task":
                task = repo.get_task(item.entity_id)
                if task is not None:
                    sent += self.task_event(
                        task,
                        "TaskStatusChanged",
                        f'Task "{task.text}" moved from {item.previous} to {item.current}.',
                    )
            elif item.entity_type == "deliverable":
                deliverable = repo.get_deliverable(item.entity_id)
                if deliverable is not None:
                    sent += self.deliverable_event(
                        deliverable,
                        "DeliverableStatusChanged",
                        f'Deliverable "{deliverable.title}" moved from {item.previous} to {item.current}.',
                    )
            elif item.entity_type == "phase":
                phase: DeliverablePhase | None = repo.get_phase(item.entity_id)
                project = repo.get_project(item.project_id) if item.project_id else None
                if phase is not None and project is not None:
                    sent += self.phase_event(
                        project,
                        phase.title,
                        "DeliverablePhaseStatusChanged",
                        f"moved from {item.previous} to {item.current}",
                    )
            elif item.entity_type == "project":
                project = repo.get_project(item.entity_id)
                if project is not None:
                    sent += self.send_many(
                        [project.project_manager_id],
                        event_type="ProjectProgressChanged",
                        project_id=project.id,
                        message=f'Project "{project.title}" progress is now {item.current}%.',
                    )
        return sent


def build_dispatcher(db: Session) -> NotificationDispatcher:
    settings = get_settings()
    return NotificationDispatcher(
        OutboxPublisher(db, topic=settings.notification_topic),
        enabled=settings.notifications_enabled,
    )
