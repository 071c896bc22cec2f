"""Per-project capability resolution.

Everything here is a pure predicate over the requester, the project and the
requester's grant for that project. Callers decide what to do with ``False``.
"""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from projecthub.core.auth import AppRole, RequestUserContext


class Capability(str, Enum):
    VIEW = "view"
    EDIT = "edit"
    MANAGE_PHASES = "manage_phases"
    MANAGE_DELIVERABLES = "manage_deliverables"
    MANAGE_TASKS = "manage_tasks"
    MANAGE_TEAM = "manage_team"
    FULL_ACCESS_LIMITED = "full_access_limited"
    ADMIN = "admin"


class EntityKind(str, Enum):
    PHASE = "phase"
    DELIVERABLE = "deliverable"
    TASK = "task"


MANAGE_CAPABILITY: dict[EntityKind, Capability] = {
    EntityKind.PHASE: Capability.MANAGE_PHASES,
    EntityKind.DELIVERABLE: Capability.MANAGE_DELIVERABLES,
    EntityKind.TASK: Capability.MANAGE_TASKS,
}


class ProjectLike(Protocol):
    project_manager_id: str | None


def has_permission(
    role: AppRole,
    requester_id: str,
    project: ProjectLike | None,
    grant: Collection[str] | None,
    name: str,
) -> bool:
    """Check one named capability for a requester within a project scope."""

    if role is AppRole.ADMIN:
        return True

    if role is AppRole.PROJECT_MANAGER:
        return project is not None and project.project_manager_id == requester_id

    if role is AppRole.TEAM_MEMBER:
        capabilities = grant or ()
        if Capability.ADMIN.value in capabilities:
            return True
        if Capability.FULL_ACCESS_LIMITED.value in capabilities and name != Capability.ADMIN.value:
            return True
        return name in capabilities

    return False


@dataclass(frozen=True)
class AccessScope:
    """Resolved inputs for the per-action threshold checks."""

    context: RequestUserContext
    project: ProjectLike | None
    grant: frozenset[str]

    def has(self, capability: Capability) -> bool:
        return has_permission(
            self.context.role,
            self.context.user_id,
            self.project,
            self.grant,
            capability.value,
        )

    def has_any(self, *capabilities: Capability) -> bool:
        return any(self.has(capability) for capability in capabilities)


def can_view_project(scope: AccessScope, *, member_ids: Collection[str] = ()) -> bool:
    if scope.context.user_id in member_ids:
        return True
    return scope.has(Capability.VIEW)


def can_create(scope: AccessScope, kind: EntityKind) -> bool:
    return scope.has(MANAGE_CAPABILITY[kind])


def can_edit(scope: AccessScope, kind: EntityKind) -> bool:
    return scope.has_any(Capability.EDIT, MANAGE_CAPABILITY[kind])


def can_delete(scope: AccessScope, kind: EntityKind) -> bool:
    if kind is EntityKind.TASK:
        return scope.has_any(Capability.MANAGE_TASKS, Capability.ADMIN)
    return scope.has(Capability.ADMIN)


def can_drag(scope: AccessScope, kind: EntityKind, *, assignee_id: str | None = None) -> bool:
    """Whether the requester may move an item between status columns.

    A task's own assignee may always move it when acting as a team member.
    """

    if scope.has_any(MANAGE_CAPABILITY[kind], Capability.EDIT):
        return True
    return (
        kind is EntityKind.TASK
        and scope.context.role is AppRole.TEAM_MEMBER
        and assignee_id is not None
        and assignee_id == scope.context.user_id
    )


def can_update_project(scope: AccessScope) -> bool:
    return scope.has(Capability.EDIT)


def can_delete_project(scope: AccessScope) -> bool:
    role = scope.context.role
    if role is AppRole.ADMIN:
        return True
    return (
        role is AppRole.PROJECT_MANAGER
        and scope.project is not None
        and scope.project.project_manager_id == scope.context.user_id
    )


def can_create_project(context: RequestUserContext) -> bool:
    return context.role in {AppRole.ADMIN, AppRole.PROJECT_MANAGER}


def can_manage_grants(scope: AccessScope) -> bool:
    return scope.has(Capability.ADMIN)


def capability_matrix(scope: AccessScope, *, member_ids: Collection[str] = ()) -> dict[str, object]:
    """Flattened view of every threshold for one requester and project."""

    matrix: dict[str, object] = {
        "view": can_view_project(scope, member_ids=member_ids),
        "update_project": can_update_project(scope),
        "delete_project": can_delete_project(scope),
        "manage_permissions": can_manage_grants(scope),
    }
    for kind in EntityKind:
        matrix[kind.value] = {
            "create": can_create(scope, kind),
            "edit": can_edit(scope, kind),
            "delete": can_delete(scope, kind),
            "drag": can_drag(scope, kind),
        }
    return matrix
