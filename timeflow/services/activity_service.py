"""Application service for logging, editing and summarizing activities."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from timeflow.core.auth import RequestUserContext
from timeflow.core.config import get_settings
from timeflow.domain.activity_rules import (
    ActivityDraft,
    accepts_hours,
    can_log_hours,
    merge_update,
    month_key,
    validate_activity,
)
from timeflow.domain.aggregation import activity_stats, daily_totals, hours_by_type
from timeflow.domain.errors import ValidationError
from timeflow.domain.records import ActivityRecord, ActivityType, ProjectRecord, TaskRecord
from timeflow.domain.visibility import can_edit, filter_visible
from timeflow.models.entities import Activity, utcnow
from timeflow.repositories.tracking_repository import TrackingRepository, to_activity_record
from timeflow.services.common import hours, http_error, uuid_text

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ActivityFilters:
    date_from: date | None = None
    date_to: date | None = None
    user_id: UUID | None = None
    project_id: UUID | None = None
    activity_type: ActivityType | None = None


@dataclass(slots=True)
class ActivityCreateData:
    date: date
    activity_name: str
    activity_type: ActivityType
    execution_time: Decimal
    project_id: UUID | None = None
    task_id: UUID | None = None
    other_area: str | None = None
    observations: str | None = None


class ActivityService:
    """Activity CRUD honoring the edit boundary rules."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = TrackingRepository(db)
        self.settings = get_settings()

    # ---------- Serialization ----------
    @staticmethod
    def serialize_activity(activity: ActivityRecord) -> dict[str, object]:
        return {
            "id": str(activity.id),
            "user_id": str(activity.user_id),
            "date": activity.date.isoformat(),
            "month": month_key(activity.date),
            "activity_name": activity.activity_name,
            "activity_type": activity.activity_type.value,
            "execution_time": hours(activity.execution_time),
            "project_id": uuid_text(activity.project_id),
            "task_id": uuid_text(activity.task_id),
            "area_id": uuid_text(activity.area_id),
            "other_area": activity.other_area,
            "observations": activity.observations,
        }

    # ---------- Access ----------
    def _ensure_activity_access(self, *, context: RequestUserContext, activity_id: UUID) -> Activity:
        activity = self.repo.get_activity(activity_id)
        if activity is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Activity not found.")
        if not can_edit(context.scope, to_activity_record(activity)):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions for this activity.",
            )
        return activity

    def _project_for_task(self, task_id: UUID | None, project_id: UUID | None) -> UUID | None:
        if task_id is None or project_id is not None:
            return project_id
        task = self.repo.get_task(task_id)
        if task is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found.")
        return task.project_id

    @staticmethod
    def _ensure_loggable(author_id: UUID, record: ProjectRecord | TaskRecord, label: str) -> None:
        if not can_log_hours(author_id, record):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Only the creator or assignee of this {label} can log hours against it.",
            )
        if not accepts_hours(record):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Hours can only be logged against a {label} that is in progress or completed.",
            )

    def _ensure_references(self, draft: ActivityDraft, *, author_id: UUID) -> None:
        if draft.project_id is not None:
            project = self.repo.project_record(draft.project_id)
            if project is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
            self._ensure_loggable(author_id, project, "project")
        if draft.task_id is not None:
            task = self.repo.task_record(draft.task_id)
            if task is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found.")
            if task.project_id != draft.project_id:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="Task does not belong to the selected project.",
                )
            self._ensure_loggable(author_id, task, "task")

    def _commit(self, detail: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail) from exc

    # ---------- Queries ----------
    def list_activities(self, *, context: RequestUserContext, filters: ActivityFilters) -> list[ActivityRecord]:
        records = self.repo.activity_records(
            date_from=filters.date_from,
            date_to=filters.date_to,
            user_id=filters.user_id,
            project_id=filters.project_id,
            activity_type=filters.activity_type,
        )
        visible = filter_visible(context.scope, records)
        logger.debug("Listing %d of %d activities for user %s", len(visible), len(records), context.user_id)
        return visible

    def get_activity(self, *, context: RequestUserContext, activity_id: UUID) -> ActivityRecord:
        return to_activity_record(self._ensure_activity_access(context=context, activity_id=activity_id))

    def activity_stats(
        self,
        *,
        context: RequestUserContext,
        filters: ActivityFilters,
        today: date | None = None,
    ) -> dict[str, object]:
        today = today or date.today()
        activities = self.list_activities(context=context, filters=filters)
        stats = activity_stats(activities, today=today, window_days=self.settings.activity_window_days)
        return {
            "total_hours": hours(stats.total_hours),
            "total_activities": stats.total_activities,
            "unique_users": stats.unique_users,
            "daily_average": hours(stats.daily_average),
            "window_days": stats.window_days,
            "window_hours": hours(stats.window_hours),
            "hours_by_type": {kind.value: hours(value) for kind, value in hours_by_type(activities).items()},
            "daily_totals": [
                {"date": day.isoformat(), "hours": hours(value)}
                for day, value in sorted(daily_totals(activities).items())
            ],
        }

    # ---------- Commands ----------
    def create_activity(self, *, context: RequestUserContext, data: ActivityCreateData) -> ActivityRecord:
        draft = ActivityDraft(
            date=data.date,
            execution_time=data.execution_time,
            activity_type=data.activity_type,
            activity_name=data.activity_name,
            project_id=self._project_for_task(data.task_id, data.project_id),
            task_id=data.task_id,
            other_area=data.other_area,
            observations=data.observations,
        )
        try:
            validate_activity(draft)
        except ValidationError as exc:
            raise http_error(exc) from exc
        self._ensure_references(draft, author_id=context.user_id)

        now = utcnow()
        activity = Activity(
            user_id=context.user_id,
            date=draft.date,
            month=month_key(draft.date),
            activity_name=draft.activity_name.strip(),
            activity_type=draft.activity_type,
            execution_time=draft.execution_time,
            project_id=draft.project_id,
            task_id=draft.task_id,
            area_id=context.area_id,
            other_area=draft.other_area,
            observations=draft.observations,
            created_at=now,
            updated_at=now,
        )
        self.repo.add(activity)
        self.repo.refresh_used_hours(project_id=activity.project_id, task_id=activity.task_id)
        self._commit("Activity could not be saved.")
        self.db.refresh(activity)
        logger.info(
            "User %s logged %s h on %s (activity %s)",
            context.user_id,
            activity.execution_time,
            activity.date.isoformat(),
            activity.id,
        )
        return to_activity_record(activity)

    def update_activity(
        self,
        *,
        context: RequestUserContext,
        activity_id: UUID,
        changes: dict[str, object],
    ) -> ActivityRecord:
        activity = self._ensure_activity_access(context=context, activity_id=activity_id)
        previous_project_id, previous_task_id = activity.project_id, activity.task_id
        project_id = changes.get("project_id", previous_project_id)
        filled = self._project_for_task(changes.get("task_id", previous_task_id), project_id)  # type: ignore[arg-type]
        if filled != project_id:
            changes = {**changes, "project_id": filled}
        try:
            draft = merge_update(to_activity_record(activity), changes)
        except ValidationError as exc:
            raise http_error(exc) from exc
        if (draft.project_id, draft.task_id) != (previous_project_id, previous_task_id):
            self._ensure_references(draft, author_id=activity.user_id)

        activity.activity_name = draft.activity_name.strip()
        activity.activity_type = draft.activity_type
        activity.execution_time = draft.execution_time
        activity.project_id = draft.project_id
        activity.task_id = draft.task_id
        activity.other_area = draft.other_area
        activity.observations = draft.observations
        activity.updated_at = utcnow()
        self.db.flush()

        self.repo.refresh_used_hours(project_id=activity.project_id, task_id=activity.task_id)
        if (previous_project_id, previous_task_id) != (activity.project_id, activity.task_id):
            self.repo.refresh_used_hours(project_id=previous_project_id, task_id=previous_task_id)
        self._commit("Activity could not be updated.")
        self.db.refresh(activity)
        logger.info("User %s updated activity %s", context.user_id, activity.id)
        return to_activity_record(activity)

    def delete_activity(self, *, context: RequestUserContext, activity_id: UUID) -> None:
        activity = self._ensure_activity_access(context=context, activity_id=activity_id)
        project_id, task_id = activity.project_id, activity.task_id
        self.repo.delete(activity)
        self.repo.refresh_used_hours(project_id=project_id, task_id=task_id)
        self._commit("Activity could not be deleted.")
        logger.info("User %s deleted activity %s", context.user_id, activity_id)
