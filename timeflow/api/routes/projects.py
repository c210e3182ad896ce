"""Project listing and status endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from timeflow.core.auth import RequestUserContext, get_current_user_context
from timeflow.db.dependencies import get_db_session
from timeflow.services.stats_service import StatsService
from timeflow.services.workflow_service import WorkflowService

router = APIRouter(tags=["projects"])


class StatusChangePayload(BaseModel):
    status: str = Field(min_length=1, max_length=32)


@router.get("/projects")
def list_projects(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    return {"items": StatsService(db).list_projects(context=context)}


@router.get("/projects/{project_id}/summary")
def get_project_summary(
    project_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return StatsService(db).project_summary(context=context, project_id=project_id)


@router.patch("/projects/{project_id}/status")
def change_project_status(
    project_id: UUID,
    payload: StatusChangePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return WorkflowService(db).change_project_status(
        context=context,
        project_id=project_id,
        new_status=payload.status,
    )


@router.patch("/tasks/{task_id}/status")
def change_task_status(
    task_id: UUID,
    payload: StatusChangePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return WorkflowService(db).change_task_status(context=context, task_id=task_id, new_status=payload.status)
