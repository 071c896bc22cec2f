"""Task endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Body, Depends, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from projecthub.core.auth import RequestUserContext, get_current_user_context
from projecthub.db.dependencies import get_db_session
from projecthub.models.entities import Priority
from projecthub.services.hierarchy_service import HierarchyService, TaskCreateData, TaskUpdateData

router = APIRouter(prefix="/task", tags=["tasks"])


class TaskCreatePayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    project_id: str = Field(min_length=1, max_length=36)
    text: str = Field(min_length=1, max_length=1000)
    priority: Priority = Priority.MED
    due_date: date | None = Field(default=None, alias="date")
    status: str | None = None
    assignee: str | None = Field(default=None, max_length=128)
    deliverable_id: str | None = Field(default=None, max_length=36)
    deliverable_phase_id: str | None = Field(default=None, max_length=36)


class TaskUpdatePayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    text: str | None = Field(default=None, min_length=1, max_length=1000)
    priority: Priority | None = None
    due_date: date | None = Field(default=None, alias="date")
    status: str | None = None
    assignee: str | None = Field(default=None, max_length=128)
    deliverable_id: str | None = Field(default=None, max_length=36)
    detach_deliverable: bool = False


def _service(db: Session) -> HierarchyService:
    return HierarchyService(db)


@router.get("")
def list_tasks(
    deliverable_id: str | None = Query(default=None, alias="deliverableId"),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    rows = service.list_tasks(context=context, deliverable_id=deliverable_id)
    return {"items": [service.serialize_task(task) for task in rows]}


@router.get("/assignee/{user_id}")
def list_assignee_tasks(
    user_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    rows = service.list_tasks_for_assignee(context=context, assignee_id=user_id)
    return {"items": [service.serialize_task(task) for task in rows]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_task(
    payload: TaskCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    task = service.create_task(
        context=context,
        data=TaskCreateData(
            project_id=payload.project_id,
            text=payload.text,
            priority=payload.priority,
            due_date=payload.due_date,
            status=payload.status,
            assignee_id=payload.assignee,
            deliverable_id=payload.deliverable_id,
            phase_id=payload.deliverable_phase_id,
        ),
    )
    return service.serialize_task(task)


@router.get("/{task_id}")
def get_task(
    task_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_task(service.get_task(context=context, task_id=task_id))


@router.put("/{task_id}")
def update_task(
    task_id: str,
    payload: TaskUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    task = service.update_task(
        context=context,
        task_id=task_id,
        data=TaskUpdateData(
            text=payload.text,
            priority=payload.priority,
            due_date=payload.due_date,
            status=payload.status,
            assignee_id=payload.assignee,
            deliverable_id=payload.deliverable_id,
            detach_deliverable=payload.detach_deliverable,
        ),
    )
    return service.serialize_task(task)


@router.put("/{task_id}/status")
def update_task_status(
    task_id: str,
    new_status: str = Body(...),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    result = service.set_task_status(context=context, task_id=task_id, status=new_status)
    return service.serialize_cascade(result)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_task(context=context, task_id=task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
