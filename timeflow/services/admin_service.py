"""Area administration, user role management and personal work schedules."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from timeflow.core.auth import RequestUserContext, ensure_area_exists
from timeflow.domain.daily_goal import parse_time_range
from timeflow.domain.errors import ScheduleError
from timeflow.domain.records import Role, normalize_weekday
from timeflow.models.entities import Area, User, utcnow
from timeflow.repositories.tracking_repository import TrackingRepository
from timeflow.services.common import http_error, uuid_text

logger = logging.getLogger(__name__)

_UNSET = object()


@dataclass(slots=True)
class AreaCreateData:
    name: str
    description: str | None = None


@dataclass(slots=True)
class AreaUpdateData:
    name: str | None = None
    description: str | None = None
    is_active: bool | None = None


@dataclass(slots=True)
class UserUpdateData:
    role: Role | None = None
    area_id: object = _UNSET
    is_active: bool | None = None


@dataclass(slots=True)
class ScheduleDayData:
    enabled: bool
    start: str | None = None
    end: str | None = None


@dataclass(slots=True)
class WorkScheduleData:
    days: dict[str, ScheduleDayData]
    lunch_break: ScheduleDayData | None = None


def normalize_work_schedule(data: WorkScheduleData) -> tuple[dict[str, dict[str, object]], dict[str, object] | None]:
    """Validate a submitted schedule and key it by English weekday name.

    Raises ``ScheduleError`` for unknown days, malformed times and ranges
    that end before they start. Disabled days keep whatever times were sent.
    """

    days: dict[str, dict[str, object]] = {}
    for raw_name, day in data.days.items():
        weekday = normalize_weekday(raw_name)
        if weekday is None:
            raise ScheduleError(f"Unknown weekday {raw_name!r}")
        if day.enabled:
            parse_time_range(day.start, day.end, label=f"{weekday} shift")
        days[weekday] = {"enabled": day.enabled, "start": day.start, "end": day.end}

    lunch: dict[str, object] | None = None
    if data.lunch_break is not None:
        if data.lunch_break.enabled:
            parse_time_range(data.lunch_break.start, data.lunch_break.end, label="lunch break")
        lunch = {
            "enabled": data.lunch_break.enabled,
            "start": data.lunch_break.start,
            "end": data.lunch_break.end,
        }
    return days, lunch


class AdminService:
    """Areas, user roles and profile settings."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = TrackingRepository(db)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_area(area: Area) -> dict[str, object]:
        return {
            "id": str(area.id),
            "name": area.name,
            "description": area.description,
            "is_active": area.is_active,
        }

    @staticmethod
    def serialize_user(user: User) -> dict[str, object]:
        return {
            "id": str(user.id),
            "microsoft_oid": user.microsoft_oid,
            "email": user.email,
            "display_name": user.display_name,
            "role": user.role.value,
            "area_id": uuid_text(user.area_id),
            "is_active": user.is_active,
            "work_schedule": user.work_schedule,
            "lunch_break": user.lunch_break,
        }

    def _commit(self, detail: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail) from exc

    # ---------- Areas ----------
    def list_areas(self) -> list[Area]:
        return list(self.repo.list_areas())

    def create_area(self, *, context: RequestUserContext, data: AreaCreateData) -> Area:
        name = data.name.strip()
        if self.repo.get_area_by_name(name) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Area name already exists.")
        now = utcnow()
        area = Area(name=name, description=data.description, is_active=True, created_at=now, updated_at=now)
        self.repo.add(area)
        self._commit("Area name already exists.")
        self.db.refresh(area)
        logger.info("User %s created area %s (%s)", context.user_id, area.id, area.name)
        return area

    def update_area(self, *, context: RequestUserContext, area_id: UUID, data: AreaUpdateData) -> Area:
        area = ensure_area_exists(self.db, area_id)
        if data.name is not None:
            name = data.name.strip()
            existing = self.repo.get_area_by_name(name)
            if existing is not None and existing.id != area.id:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Area name already exists.")
            area.name = name
        if data.description is not None:
            area.description = data.description
        if data.is_active is not None:
            area.is_active = data.is_active
        area.updated_at = utcnow()
        self._commit("Area name already exists.")
        self.db.refresh(area)
        logger.info("User %s updated area %s", context.user_id, area.id)
        return area

    # ---------- Users ----------
    def update_user(self, *, context: RequestUserContext, user_id: UUID, data: UserUpdateData) -> User:
        user = self.repo.get_user(user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")

        if not context.is_super_admin:
            if user.area_id is None or user.area_id != context.area_id:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Admins can only manage users of their own area.",
                )
            if data.role is not None or data.area_id is not _UNSET:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Only super admins can change roles or areas.",
                )

        role = data.role if data.role is not None else user.role
        area_id = user.area_id if data.area_id is _UNSET else data.area_id
        if area_id is not None:
            ensure_area_exists(self.db, area_id)  # type: ignore[arg-type]
        if role is Role.ADMIN and area_id is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Admin role requires an area.",
            )

        user.role = role
        user.area_id = area_id  # type: ignore[assignment]
        if data.is_active is not None:
            user.is_active = data.is_active
        user.updated_at = utcnow()
        self._commit("User update conflicts with existing data.")
        self.db.refresh(user)
        logger.info("User %s updated user %s (role=%s, area=%s)", context.user_id, user.id, user.role.value, area_id)
        return user

    # ---------- Profile ----------
    def get_profile(self, *, context: RequestUserContext) -> User:
        user = self.repo.get_user(context.user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
        return user

    def update_work_schedule(self, *, context: RequestUserContext, data: WorkScheduleData) -> User:
        user = self.get_profile(context=context)
        try:
            days, lunch = normalize_work_schedule(data)
        except ScheduleError as exc:
            raise http_error(exc) from exc
        user.work_schedule = days
        user.lunch_break = lunch
        user.updated_at = utcnow()
        self._commit("Work schedule could not be saved.")
        self.db.refresh(user)
        logger.info("User %s updated work schedule (%d days)", context.user_id, len(days))
        return user
