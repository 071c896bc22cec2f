from __future__ import annotations

from dataclasses import dataclass

import pytest

from projecthub.core.access import (
    AccessScope,
    EntityKind,
    can_create,
    can_create_project,
    can_delete,
    can_delete_project,
    can_drag,
    can_edit,
    can_view_project,
    capability_matrix,
    has_permission,
)
from projecthub.core.auth import AppRole, RequestUserContext, parse_role


@dataclass
class _Project:
    project_manager_id: str | None


PROJECT = _Project(project_manager_id="pm-1")


def _scope(user_id: str, role: AppRole, *grant: str) -> AccessScope:
    return AccessScope(
        context=RequestUserContext(user_id=user_id, role=role),
        project=PROJECT,
        grant=frozenset(grant),
    )


def test_admin_has_every_permission() -> None:
    assert has_permission(AppRole.ADMIN, "admin-1", None, None, "admin") is True
    assert has_permission(AppRole.ADMIN, "admin-1", PROJECT, (), "manage_tasks") is True


def test_project_manager_only_on_owned_project() -> None:
    assert has_permission(AppRole.PROJECT_MANAGER, "pm-1", PROJECT, (), "admin") is True
    assert has_permission(AppRole.PROJECT_MANAGER, "pm-2", PROJECT, ("admin",), "view") is False
    assert has_permission(AppRole.PROJECT_MANAGER, "pm-1", None, (), "view") is False


def test_full_access_limited_excludes_admin() -> None:
    grant = {"full_access_limited"}

    assert has_permission(AppRole.TEAM_MEMBER, "tm-1", PROJECT, grant, "admin") is False
    assert has_permission(AppRole.TEAM_MEMBER, "tm-1", PROJECT, grant, "edit") is True


def test_team_member_admin_grant_implies_everything() -> None:
    assert has_permission(AppRole.TEAM_MEMBER, "tm-1", PROJECT, {"admin"}, "manage_phases") is True


def test_team_member_needs_named_capability() -> None:
    assert has_permission(AppRole.TEAM_MEMBER, "tm-1", PROJECT, {"view"}, "view") is True
    assert has_permission(AppRole.TEAM_MEMBER, "tm-1", PROJECT, {"view"}, "edit") is False
    assert has_permission(AppRole.TEAM_MEMBER, "tm-1", PROJECT, None, "view") is False


def test_parse_role_is_closed() -> None:
    assert parse_role("TeamMember") is AppRole.TEAM_MEMBER
    assert parse_role(" project_manager ") is AppRole.PROJECT_MANAGER
    with pytest.raises(ValueError):
        parse_role("Owner")


@pytest.mark.parametrize("kind", list(EntityKind))
def test_edit_accepts_edit_or_matching_manage(kind: EntityKind) -> None:
    manage = f"manage_{kind.value}s"

    assert can_edit(_scope("tm-1", AppRole.TEAM_MEMBER, "edit"), kind) is True
    assert can_edit(_scope("tm-1", AppRole.TEAM_MEMBER, manage), kind) is True
    assert can_edit(_scope("tm-1", AppRole.TEAM_MEMBER, "view"), kind) is False


def test_create_requires_matching_manage_capability() -> None:
    scope = _scope("tm-1", AppRole.TEAM_MEMBER, "manage_deliverables")

    assert can_create(scope, EntityKind.DELIVERABLE) is True
    assert can_create(scope, EntityKind.TASK) is False
    assert can_create(_scope("tm-1", AppRole.TEAM_MEMBER, "edit"), EntityKind.PHASE) is False


def test_delete_thresholds() -> None:
    tasks_only = _scope("tm-1", AppRole.TEAM_MEMBER, "manage_tasks")
    grant_admin = _scope("tm-1", AppRole.TEAM_MEMBER, "admin")
    limited = _scope("tm-1", AppRole.TEAM_MEMBER, "full_access_limited")

    assert can_delete(tasks_only, EntityKind.TASK) is True
    assert can_delete(tasks_only, EntityKind.DELIVERABLE) is False
    assert can_delete(grant_admin, EntityKind.PHASE) is True
    assert can_delete(limited, EntityKind.DELIVERABLE) is False
    assert can_delete(limited, EntityKind.TASK) is True


def test_task_assignee_can_drag_without_grant() -> None:
    scope = _scope("tm-1", AppRole.TEAM_MEMBER)

    assert can_drag(scope, EntityKind.TASK, assignee_id="tm-1") is True
    assert can_drag(scope, EntityKind.TASK, assignee_id="tm-2") is False
    assert can_drag(scope, EntityKind.DELIVERABLE, assignee_id="tm-1") is False


def test_drag_with_edit_grant() -> None:
    scope = _scope("tm-1", AppRole.TEAM_MEMBER, "edit")

    for kind in EntityKind:
        assert can_drag(scope, kind) is True


def test_membership_grants_view() -> None:
    scope = _scope("tm-1", AppRole.TEAM_MEMBER)

    assert can_view_project(scope) is False
    assert can_view_project(scope, member_ids=["tm-1"]) is True


def test_project_level_thresholds() -> None:
    owner = _scope("pm-1", AppRole.PROJECT_MANAGER)
    other_pm = _scope("pm-2", AppRole.PROJECT_MANAGER)
    admin_grant = _scope("tm-1", AppRole.TEAM_MEMBER, "admin")

    assert can_delete_project(owner) is True
    assert can_delete_project(other_pm) is False
    assert can_delete_project(admin_grant) is False
    assert can_create_project(RequestUserContext(user_id="pm-2", role=AppRole.PROJECT_MANAGER)) is True
    assert can_create_project(RequestUserContext(user_id="tm-1", role=AppRole.TEAM_MEMBER)) is False


def test_capability_matrix_for_limited_member() -> None:
    matrix = capability_matrix(_scope("tm-1", AppRole.TEAM_MEMBER, "full_access_limited"))

    assert matrix["view"] is True
    assert matrix["update_project"] is True
    assert matrix["manage_permissions"] is False
    assert matrix["task"] == {"create": True, "edit": True, "delete": True, "drag": True}
    assert matrix["phase"] == {"create": True, "edit": True, "delete": False, "drag": True}
