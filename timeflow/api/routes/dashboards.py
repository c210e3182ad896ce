"""Dashboard endpoints for daily progress and role overviews."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from timeflow.core.auth import RequestUserContext, get_current_user_context, require_roles
from timeflow.db.dependencies import get_db_session
from timeflow.domain.records import Role
from timeflow.services.dashboard_service import DashboardService

router = APIRouter(prefix="/dashboards", tags=["dashboards"])


def _service(db: Session) -> DashboardService:
    return DashboardService(db)


@router.get("/daily-progress")
def get_daily_progress(
    on: date | None = None,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).daily_progress(context=context, on=on)


@router.get("/user")
def get_user_dashboard(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).user_dashboard(context=context)


@router.get("/admin")
def get_admin_dashboard(
    context: RequestUserContext = Depends(require_roles(Role.ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).admin_dashboard(context=context)


@router.get("/superadmin")
def get_superadmin_dashboard(
    _: RequestUserContext = Depends(require_roles(Role.SUPER_ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).superadmin_dashboard()
