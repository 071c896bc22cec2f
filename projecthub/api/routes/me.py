"""Current user endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from projecthub.core.auth import RequestUserContext, get_current_user_context
from projecthub.db.dependencies import get_db_session
from projecthub.repositories.hierarchy_repository import HierarchyRepository

router = APIRouter(prefix="/me", tags=["me"])


def _serialize_grant(project_id: str, capabilities: list[str]) -> dict[str, object]:
    return {"projectId": project_id, "permissions": list(capabilities)}


@router.get("")
def get_me(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Return the authenticated user, their role and per-project grants."""

    grants = HierarchyRepository(db).list_grants_for_user(context.user_id)
    return {
        "id": context.user_id,
        "role": context.role.value,
        "grants": [_serialize_grant(grant.project_id, grant.capabilities or []) for grant in grants],
    }
