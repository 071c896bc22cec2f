"""Deliverable endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Body, Depends, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from projecthub.core.auth import RequestUserContext, get_current_user_context
from projecthub.db.dependencies import get_db_session
from projecthub.models.entities import Priority
from projecthub.services.hierarchy_service import DeliverableCreateData, DeliverableUpdateData, HierarchyService

router = APIRouter(prefix="/deliverable", tags=["deliverables"])


class DeliverableCreatePayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    project_id: str = Field(min_length=1, max_length=36)
    deliverable_phase_id: str = Field(min_length=1, max_length=36)
    title: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    link: str | None = Field(default=None, max_length=1000)
    priority: Priority = Priority.MED
    priority_number: int = Field(default=0, ge=0)
    due_date: date | None = Field(default=None, alias="date")
    status: str | None = None
    assignee: list[str] = Field(default_factory=list)


class DeliverableUpdatePayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    deliverable_phase_id: str | None = Field(default=None, min_length=1, max_length=36)
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    link: str | None = Field(default=None, max_length=1000)
    priority: Priority | None = None
    priority_number: int | None = Field(default=None, ge=0)
    due_date: date | None = Field(default=None, alias="date")
    status: str | None = None
    assignee: list[str] | None = None


def _service(db: Session) -> HierarchyService:
    return HierarchyService(db)


@router.get("")
def list_deliverables(
    phase_id: str | None = Query(default=None, alias="phaseId"),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    rows = service.list_deliverables(context=context, phase_id=phase_id)
    return {"items": [service.serialize_deliverable(item) for item in rows]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_deliverable(
    payload: DeliverableCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    deliverable = service.create_deliverable(
        context=context,
        data=DeliverableCreateData(
            project_id=payload.project_id,
            phase_id=payload.deliverable_phase_id,
            title=payload.title,
            description=payload.description,
            link=payload.link,
            priority=payload.priority,
            priority_number=payload.priority_number,
            due_date=payload.due_date,
            status=payload.status,
            assignee_ids=payload.assignee,
        ),
    )
    return service.serialize_deliverable(deliverable)


@router.get("/{deliverable_id}")
def get_deliverable(
    deliverable_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_deliverable(service.get_deliverable(context=context, deliverable_id=deliverable_id))


@router.get("/{deliverable_id}/task-summary")
def get_deliverable_task_summary(
    deliverable_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).deliverable_task_summary(context=context, deliverable_id=deliverable_id)


@router.put("/{deliverable_id}")
def update_deliverable(
    deliverable_id: str,
    payload: DeliverableUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    deliverable = service.update_deliverable(
        context=context,
        deliverable_id=deliverable_id,
        data=DeliverableUpdateData(
            phase_id=payload.deliverable_phase_id,
            title=payload.title,
            description=payload.description,
            link=payload.link,
            priority=payload.priority,
            priority_number=payload.priority_number,
            due_date=payload.due_date,
            status=payload.status,
            assignee_ids=payload.assignee,
        ),
    )
    return service.serialize_deliverable(deliverable)


@router.put("/{deliverable_id}/status")
def update_deliverable_status(
    deliverable_id: str,
    new_status: str = Body(...),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    result = service.set_deliverable_status(context=context, deliverable_id=deliverable_id, status=new_status)
    return service.serialize_cascade(result)


@router.delete("/{deliverable_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_deliverable(
    deliverable_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_deliverable(context=context, deliverable_id=deliverable_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
