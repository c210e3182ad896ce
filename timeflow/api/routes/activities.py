"""Activity logging endpoints."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from timeflow.core.auth import RequestUserContext, get_current_user_context
from timeflow.db.dependencies import get_db_session
from timeflow.domain.records import ActivityType
from timeflow.services.activity_service import ActivityCreateData, ActivityFilters, ActivityService

router = APIRouter(prefix="/activities", tags=["activities"])


class ActivityCreatePayload(BaseModel):
    date: dt.date
    activity_name: str = Field(min_length=1, max_length=255)
    activity_type: ActivityType
    execution_time: Decimal = Field(max_digits=6, decimal_places=2)
    project_id: UUID | None = None
    task_id: UUID | None = None
    other_area: str | None = Field(default=None, max_length=255)
    observations: str | None = Field(default=None, max_length=2000)


class ActivityUpdatePayload(BaseModel):
    # date and user_id are accepted only to reject attempts to change them.
    date: dt.date | None = None
    user_id: UUID | None = None
    activity_name: str | None = Field(default=None, min_length=1, max_length=255)
    activity_type: ActivityType | None = None
    execution_time: Decimal | None = Field(default=None, max_digits=6, decimal_places=2)
    project_id: UUID | None = None
    task_id: UUID | None = None
    other_area: str | None = Field(default=None, max_length=255)
    observations: str | None = Field(default=None, max_length=2000)


def _service(db: Session) -> ActivityService:
    return ActivityService(db)


def _filters(
    date_from: dt.date | None = None,
    date_to: dt.date | None = None,
    user_id: UUID | None = None,
    project_id: UUID | None = None,
    activity_type: ActivityType | None = None,
) -> ActivityFilters:
    return ActivityFilters(
        date_from=date_from,
        date_to=date_to,
        user_id=user_id,
        project_id=project_id,
        activity_type=activity_type,
    )


@router.get("")
def list_activities(
    filters: ActivityFilters = Depends(_filters),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    items = service.list_activities(context=context, filters=filters)
    return {"items": [service.serialize_activity(activity) for activity in items]}


@router.get("/stats")
def get_activity_stats(
    filters: ActivityFilters = Depends(_filters),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).activity_stats(context=context, filters=filters)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_activity(
    payload: ActivityCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    activity = service.create_activity(
        context=context,
        data=ActivityCreateData(
            date=payload.date,
            activity_name=payload.activity_name,
            activity_type=payload.activity_type,
            execution_time=payload.execution_time,
            project_id=payload.project_id,
            task_id=payload.task_id,
            other_area=payload.other_area,
            observations=payload.observations,
        ),
    )
    return service.serialize_activity(activity)


@router.patch("/{activity_id}")
def update_activity(
    activity_id: UUID,
    payload: ActivityUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    activity = service.update_activity(
        context=context,
        activity_id=activity_id,
        changes=payload.model_dump(exclude_unset=True),
    )
    return service.serialize_activity(activity)


@router.delete("/{activity_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_activity(
    activity_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_activity(context=context, activity_id=activity_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
