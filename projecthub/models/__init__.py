"""ORM model package."""

from projecthub.models.entities import (
    Deliverable,
    DeliverablePhase,
    NotificationMessage,
    PermissionGrant,
    Priority,
    Project,
    Task,
    WorkStatus,
)

__all__ = [
    "Deliverable",
    "DeliverablePhase",
    "NotificationMessage",
    "PermissionGrant",
    "Priority",
    "Project",
    "Task",
    "WorkStatus",
]
