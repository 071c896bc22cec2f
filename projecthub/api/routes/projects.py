"""Project lifecycle endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from projecthub.core.auth import RequestUserContext, get_current_user_context
from projecthub.db.dependencies import get_db_session
from projecthub.services.hierarchy_service import HierarchyService, ProjectCreateData, ProjectUpdateData

router = APIRouter(prefix="/projects", tags=["projects"])


class ProjectCreatePayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    start_date: date | None = None
    end_date: date | None = None
    project_manager: str | None = Field(default=None, max_length=128)
    members: list[str] = Field(default_factory=list)


class ProjectUpdatePayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    start_date: date | None = None
    end_date: date | None = None
    project_manager: str | None = Field(default=None, max_length=128)
    members: list[str] | None = None


def _service(db: Session) -> HierarchyService:
    return HierarchyService(db)


@router.get("")
def list_projects(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    rows = service.list_projects(context=context)
    return {"items": [service.serialize_project(project) for project in rows]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_project(
    payload: ProjectCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    project = service.create_project(
        context=context,
        data=ProjectCreateData(
            title=payload.title,
            description=payload.description,
            start_date=payload.start_date,
            end_date=payload.end_date,
            project_manager_id=payload.project_manager,
            member_ids=payload.members,
        ),
    )
    return service.serialize_project(project)


@router.get("/{project_id}")
def get_project(
    project_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_project(service.get_project(context=context, project_id=project_id))


@router.put("/{project_id}")
def update_project(
    project_id: str,
    payload: ProjectUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    project = service.update_project(
        context=context,
        project_id=project_id,
        data=ProjectUpdateData(
            title=payload.title,
            description=payload.description,
            start_date=payload.start_date,
            end_date=payload.end_date,
            project_manager_id=payload.project_manager,
            member_ids=payload.members,
        ),
    )
    return service.serialize_project(project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(
    project_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_project(context=context, project_id=project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
