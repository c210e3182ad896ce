"""Area, user and project roll-up reports."""

from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from timeflow.core.auth import RequestUserContext
from timeflow.domain.aggregation import sum_hours
from timeflow.domain.hours import HoursAccount
from timeflow.domain.records import ActivityRecord, TaskRecord
from timeflow.domain.rollups import summarize_areas, summarize_projects, summarize_users, task_status_counts
from timeflow.domain.visibility import filter_visible, is_visible
from timeflow.repositories.tracking_repository import TrackingRepository
from timeflow.services.common import hours, uuid_text
from timeflow.services.dashboard_service import (
    serialize_area_summary,
    serialize_project_summary,
    serialize_user_summary,
)

logger = logging.getLogger(__name__)


class StatsService:
    """Roll-up reports sorted for presentation."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = TrackingRepository(db)

    def _activities(self, *, date_from: date | None, date_to: date | None) -> list[ActivityRecord]:
        if date_from is not None and date_to is not None and date_from > date_to:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="date_from must be on or before date_to.",
            )
        return self.repo.activity_records(date_from=date_from, date_to=date_to)

    def area_stats(self, *, date_from: date | None = None, date_to: date | None = None) -> list[dict[str, object]]:
        activities = self._activities(date_from=date_from, date_to=date_to)
        summaries = summarize_areas(
            self.repo.area_records(),
            users=self.repo.user_records(),
            projects=self.repo.project_records(),
            activities=activities,
        )
        summaries.sort(key=lambda item: item.total_hours, reverse=True)
        logger.debug("Computed %d area summaries over %d activities", len(summaries), len(activities))
        return [serialize_area_summary(item) for item in summaries]

    def user_stats(
        self,
        *,
        context: RequestUserContext,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[dict[str, object]]:
        scope = context.scope
        users = filter_visible(scope, self.repo.user_records())
        activities = filter_visible(scope, self._activities(date_from=date_from, date_to=date_to))
        projects = filter_visible(scope, self.repo.project_records())
        summaries = summarize_users(users, activities=activities, projects=projects)
        summaries.sort(key=lambda item: item.total_hours, reverse=True)
        logger.debug("Computed %d user summaries for %s", len(summaries), context.user_id)
        return [serialize_user_summary(item) for item in summaries]

    def project_stats(self, *, context: RequestUserContext) -> list[dict[str, object]]:
        projects = filter_visible(context.scope, self.repo.project_records())
        summaries = summarize_projects(projects)
        summaries.sort(key=lambda item: item.completion_percent, reverse=True)
        return [serialize_project_summary(item) for item in summaries]

    def list_projects(self, *, context: RequestUserContext) -> list[dict[str, object]]:
        """Visible projects with their derived hour metrics."""

        items: list[dict[str, object]] = []
        projects = filter_visible(context.scope, self.repo.project_records())
        for project, summary in zip(projects, summarize_projects(projects)):
            item = serialize_project_summary(summary)
            item.update(
                {
                    "project_type": project.project_type.value,
                    "priority": project.priority.value,
                    "area_id": uuid_text(project.area_id),
                    "creator_id": str(project.creator_id),
                }
            )
            items.append(item)
        return items

    def project_summary(self, *, context: RequestUserContext, project_id: UUID) -> dict[str, object]:
        project = self.repo.project_record(project_id)
        if project is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
        if not is_visible(context.scope, project):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions for this project.",
            )
        tasks = self.repo.task_records(project_id=project_id)
        activities = self.repo.activity_records(project_id=project_id)
        payload = serialize_project_summary(summarize_projects([project])[0])
        payload.update(
            {
                "task_status_counts": task_status_counts(tasks),
                "tasks": [
                    {
                        "id": str(task.id),
                        "name": task.name,
                        "status": task.status.value,
                        "assigned_user_id": uuid_text(task.assigned_user_id),
                        **serialize_task_hours(task),
                    }
                    for task in tasks
                ],
                "total_activities": len(activities),
                "logged_hours": hours(sum_hours(activities)),
            }
        )
        return payload


def serialize_task_hours(task: TaskRecord) -> dict[str, object]:
    account = HoursAccount.of(task)
    return {
        "estimated_hours": hours(account.estimated),
        "used_hours": hours(account.used),
        "remaining_hours": hours(account.remaining),
        "completion_percent": hours(account.completion_percent),
    }
