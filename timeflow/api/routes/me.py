"""Current user endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from timeflow.core.auth import RequestUserContext, get_current_user_context
from timeflow.db.dependencies import get_db_session
from timeflow.services.admin_service import AdminService, ScheduleDayData, WorkScheduleData

router = APIRouter(prefix="/me", tags=["me"])


class ScheduleDayPayload(BaseModel):
    enabled: bool = False
    start: str | None = Field(default=None, max_length=5)
    end: str | None = Field(default=None, max_length=5)

    def to_data(self) -> ScheduleDayData:
        return ScheduleDayData(enabled=self.enabled, start=self.start, end=self.end)


class WorkSchedulePayload(BaseModel):
    work_schedule: dict[str, ScheduleDayPayload]
    lunch_break: ScheduleDayPayload | None = None


@router.get("")
def get_me(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Return current authenticated user profile, role and schedule."""

    service = AdminService(db)
    return service.serialize_user(service.get_profile(context=context))


@router.put("/work-schedule")
def update_work_schedule(
    payload: WorkSchedulePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = AdminService(db)
    user = service.update_work_schedule(
        context=context,
        data=WorkScheduleData(
            days={name: day.to_data() for name, day in payload.work_schedule.items()},
            lunch_break=payload.lunch_break.to_data() if payload.lunch_break is not None else None,
        ),
    )
    return service.serialize_user(user)
