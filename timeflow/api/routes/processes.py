"""Process and process activity workflow endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from timeflow.api.routes.projects import StatusChangePayload
from timeflow.core.auth import RequestUserContext, get_current_user_context
from timeflow.db.dependencies import get_db_session
from timeflow.services.workflow_service import WorkflowService

router = APIRouter(tags=["processes"])


class DependencyPayload(BaseModel):
    depends_on_id: UUID | None = None


def _service(db: Session) -> WorkflowService:
    return WorkflowService(db)


@router.patch("/processes/{process_id}/status")
def change_process_status(
    process_id: UUID,
    payload: StatusChangePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).change_process_status(context=context, process_id=process_id, new_status=payload.status)


@router.patch("/process-activities/{activity_id}/status")
def change_process_activity_status(
    activity_id: UUID,
    payload: StatusChangePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).change_process_activity_status(
        context=context,
        activity_id=activity_id,
        new_status=payload.status,
    )


@router.get("/process-activities/{activity_id}/can-start")
def get_can_start(
    activity_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).can_start(context=context, activity_id=activity_id)


@router.get("/process-activities/{activity_id}/dependency-chain")
def get_dependency_chain(
    activity_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).dependency_chain(context=context, activity_id=activity_id)


@router.get("/process-activities/{activity_id}/blocked")
def get_blocked_activities(
    activity_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).blocked(context=context, activity_id=activity_id)


@router.put("/process-activities/{activity_id}/dependency")
def set_dependency(
    activity_id: UUID,
    payload: DependencyPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    row = service.set_dependency(context=context, activity_id=activity_id, depends_on_id=payload.depends_on_id)
    return service.serialize_process_activity(row)
