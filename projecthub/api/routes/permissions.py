"""Project permission grant endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from projecthub.core.auth import RequestUserContext, get_current_user_context
from projecthub.db.dependencies import get_db_session
from projecthub.services.permission_service import GrantAssignData, PermissionService

router = APIRouter(prefix="/permissions", tags=["permissions"])


class GrantAssignPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    project_id: str = Field(min_length=1, max_length=36)
    user_id: str = Field(min_length=1, max_length=128)
    permissions: list[str] = Field(min_length=1)


def _service(db: Session) -> PermissionService:
    return PermissionService(db)


@router.post("/assign")
def assign_permissions(
    payload: GrantAssignPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    grant = service.assign(
        context=context,
        data=GrantAssignData(
            project_id=payload.project_id,
            user_id=payload.user_id,
            permissions=payload.permissions,
        ),
    )
    return service.serialize_grant(grant)


@router.get("/by-project-and-user")
def get_permissions_for_project_and_user(
    project_id: str = Query(alias="projectId"),
    user_id: str = Query(alias="userId"),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    grant = service.get_for_project_and_user(context=context, project_id=project_id, user_id=user_id)
    return service.serialize_grant(grant)


@router.get("/by-project/{project_id}")
def list_project_permissions(
    project_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    rows = service.list_for_project(context=context, project_id=project_id)
    return {"items": [service.serialize_grant(grant) for grant in rows]}


@router.get("/by-user/{user_id}")
def list_user_permissions(
    user_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    rows = service.list_for_user(context=context, user_id=user_id)
    return {"items": [service.serialize_grant(grant) for grant in rows]}
