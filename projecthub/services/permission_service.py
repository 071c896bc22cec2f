"""Per-project capability grants for team members."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from projecthub.core.access import AccessScope, Capability, can_manage_grants
from projecthub.core.auth import AppRole, RequestUserContext
from projecthub.core.errors import ConflictError, InvalidStateError, NotFoundError, UnauthorizedError
from projecthub.models.entities import PermissionGrant, Project
from projecthub.repositories.hierarchy_repository import HierarchyRepository

logger = logging.getLogger(__name__)

KNOWN_CAPABILITIES = frozenset(member.value for member in Capability)


@dataclass(slots=True)
class GrantAssignData:
    project_id: str
    user_id: str
    permissions: list[str]


def normalize_capabilities(values: list[str]) -> list[str]:
    """Strip, dedupe and validate capability names, keeping caller order."""

    cleaned = list(dict.fromkeys(value.strip() for value in values if value and value.strip()))
    if not cleaned:
        raise InvalidStateError("At least one permission is required.")
    unknown = [value for value in cleaned if value not in KNOWN_CAPABILITIES]
    if unknown:
        raise InvalidStateError(f"Unknown permissions: {', '.join(unknown)}.")
    return cleaned


class PermissionService:
    """Assign and read capability grants."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = HierarchyRepository(db)

    def _load_project(self, project_id: str) -> Project:
        project = self.repo.get_project(project_id)
        if project is None:
            raise NotFoundError("Project not found.")
        return project

    def _scope(self, context: RequestUserContext, project: Project) -> AccessScope:
        grant: frozenset[str] = frozenset()
        if context.role is AppRole.TEAM_MEMBER:
            row = self.repo.get_grant(project.id, context.user_id)
            if row is not None:
                grant = frozenset(row.capabilities or [])
        return AccessScope(context=context, project=project, grant=grant)

    def _ensure_can_manage(self, context: RequestUserContext, project: Project) -> None:
        if not can_manage_grants(self._scope(context, project)):
            raise UnauthorizedError("You cannot manage permissions for this project.")

    @staticmethod
    def serialize_grant(grant: PermissionGrant) -> dict[str, object]:
        return {
            "projectId": grant.project_id,
            "userId": grant.user_id,
            "permissions": list(grant.capabilities or []),
        }

    def assign(self, *, context: RequestUserContext, data: GrantAssignData) -> PermissionGrant:
        project = self._load_project(data.project_id)
        self._ensure_can_manage(context, project)
        user_id = data.user_id.strip()
        if not user_id:
            raise InvalidStateError("A user id is required.")
        capabilities = normalize_capabilities(data.permissions)

        grant = self.repo.get_grant(project.id, user_id)
        if grant is None:
            grant = PermissionGrant(project_id=project.id, user_id=user_id)
            self.repo.add_grant(grant)
        grant.capabilities = capabilities
        grant.updated_at = datetime.utcnow()

        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("Permission grant could not be stored.") from exc
        self.db.refresh(grant)

        logger.info("Granted %s on project %s to %s", ",".join(capabilities), project.id, user_id)
        return grant

    def get_for_project_and_user(
        self,
        *,
        context: RequestUserContext,
        project_id: str,
        user_id: str,
    ) -> PermissionGrant:
        project = self._load_project(project_id)
        if user_id != context.user_id:
            self._ensure_can_manage(context, project)

        grant = self.repo.get_grant(project.id, user_id)
        if grant is None:
            raise NotFoundError("No permissions found for this user in the project.")
        return grant

    def list_for_project(self, *, context: RequestUserContext, project_id: str) -> list[PermissionGrant]:
        project = self._load_project(project_id)
        self._ensure_can_manage(context, project)
        return self.repo.list_grants_for_project(project.id)

    def list_for_user(self, *, context: RequestUserContext, user_id: str) -> list[PermissionGrant]:
        if user_id != context.user_id and context.role is not AppRole.ADMIN:
            raise UnauthorizedError("Only administrators can read another user's permissions.")
        return self.repo.list_grants_for_user(user_id)
