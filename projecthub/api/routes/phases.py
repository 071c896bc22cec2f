"""Deliverable phase endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Body, Depends, Response, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from projecthub.core.auth import RequestUserContext, get_current_user_context
from projecthub.db.dependencies import get_db_session
from projecthub.services.hierarchy_service import HierarchyService, PhaseCreateData, PhaseUpdateData

router = APIRouter(prefix="/phase", tags=["phases"])


class PhaseCreatePayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    project_id: str = Field(min_length=1, max_length=36)
    title: str = Field(min_length=1, max_length=255)
    start_date: date | None = None
    end_date: date | None = None
    color: str | None = Field(default=None, max_length=32)


class PhaseUpdatePayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str | None = Field(default=None, min_length=1, max_length=255)
    start_date: date | None = None
    end_date: date | None = None
    color: str | None = Field(default=None, max_length=32)


def _service(db: Session) -> HierarchyService:
    return HierarchyService(db)


def _serialize(service: HierarchyService, phase) -> dict[str, object]:
    return service.serialize_phase(phase, service.repo.list_deliverables_for_phase(phase.id))


@router.get("/by-project/{project_id}")
def list_project_phases(
    project_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    rows = service.list_phases(context=context, project_id=project_id)
    return {"items": [_serialize(service, phase) for phase in rows]}


@router.get("/stats/{project_id}")
def get_phase_stats(
    project_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, int]:
    return _service(db).phase_stats(context=context, project_id=project_id)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_phase(
    payload: PhaseCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    phase = service.create_phase(
        context=context,
        data=PhaseCreateData(
            project_id=payload.project_id,
            title=payload.title,
            start_date=payload.start_date,
            end_date=payload.end_date,
            color=payload.color,
        ),
    )
    return _serialize(service, phase)


@router.get("/{phase_id}")
def get_phase(
    phase_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return _serialize(service, service.get_phase(context=context, phase_id=phase_id))


@router.put("/{phase_id}")
def update_phase(
    phase_id: str,
    payload: PhaseUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    phase = service.update_phase(
        context=context,
        phase_id=phase_id,
        data=PhaseUpdateData(
            title=payload.title,
            start_date=payload.start_date,
            end_date=payload.end_date,
            color=payload.color,
        ),
    )
    return _serialize(service, phase)


@router.put("/{phase_id}/status")
def update_phase_status(
    phase_id: str,
    new_status: str = Body(...),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    result = service.set_phase_status(context=context, phase_id=phase_id, status=new_status)
    return service.serialize_cascade(result)


@router.delete("/{phase_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_phase(
    phase_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_phase(context=context, phase_id=phase_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
