"""Roll-up report endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from timeflow.core.auth import RequestUserContext, require_roles
from timeflow.db.dependencies import get_db_session
from timeflow.domain.records import Role
from timeflow.services.stats_service import StatsService

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("/areas")
def get_area_stats(
    date_from: date | None = None,
    date_to: date | None = None,
    _: RequestUserContext = Depends(require_roles(Role.SUPER_ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    return {"items": StatsService(db).area_stats(date_from=date_from, date_to=date_to)}


@router.get("/users")
def get_user_stats(
    date_from: date | None = None,
    date_to: date | None = None,
    context: RequestUserContext = Depends(require_roles(Role.ADMIN, Role.SUPER_ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    return {"items": StatsService(db).user_stats(context=context, date_from=date_from, date_to=date_to)}


@router.get("/projects")
def get_project_stats(
    context: RequestUserContext = Depends(require_roles(Role.ADMIN, Role.SUPER_ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    return {"items": StatsService(db).project_stats(context=context)}
