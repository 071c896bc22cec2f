"""Access context endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from projecthub.core.access import capability_matrix
from projecthub.core.auth import RequestUserContext, get_current_user_context
from projecthub.core.errors import NotFoundError
from projecthub.db.dependencies import get_db_session
from projecthub.services.hierarchy_service import HierarchyService

router = APIRouter(prefix="/access", tags=["access"])


@router.get("/projects/{project_id}")
def get_project_access(
    project_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Return what the requester may do inside one project."""

    service = HierarchyService(db)
    project = service.repo.get_project(project_id)
    if project is None:
        raise NotFoundError("Project not found.")

    scope = service.scope_for(context, project)
    return {
        "projectId": project.id,
        "user": {"id": context.user_id, "role": context.role.value},
        "permissions": sorted(scope.grant),
        "capabilities": capability_matrix(scope, member_ids=project.member_ids or []),
    }
