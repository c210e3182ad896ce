"""Dashboards built from role-scoped collections and the accounting core."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from timeflow.core.auth import RequestUserContext
from timeflow.core.config import get_settings
from timeflow.domain.aggregation import activity_stats, sum_hours, week_breakdown
from timeflow.domain.daily_goal import daily_progress, expected_hours
from timeflow.domain.errors import ScheduleError
from timeflow.domain.records import ZERO, Role, UserRecord
from timeflow.domain.rollups import (
    AreaSummary,
    ProjectSummary,
    UserSummary,
    UserWorkload,
    status_distribution,
    summarize_area,
    summarize_areas,
    summarize_projects,
    summarize_users,
    task_status_counts,
    user_workloads,
)
from timeflow.domain.visibility import filter_visible
from timeflow.repositories.tracking_repository import TrackingRepository, to_area_record
from timeflow.services.common import hours, uuid_text

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 5


def serialize_area_summary(summary: AreaSummary) -> dict[str, object]:
    return {
        "area_id": uuid_text(summary.area_id),
        "area_name": summary.area_name,
        "total_users": summary.total_users,
        "total_projects": summary.total_projects,
        "active_projects": summary.active_projects,
        "total_hours": hours(summary.total_hours),
        "total_activities": summary.total_activities,
        "average_completion": hours(summary.average_completion),
    }


def serialize_user_summary(summary: UserSummary) -> dict[str, object]:
    return {
        "user_id": str(summary.user_id),
        "display_name": summary.display_name,
        "total_activities": summary.total_activities,
        "total_hours": hours(summary.total_hours),
        "assigned_projects": summary.assigned_projects,
        "average_completion": hours(summary.average_completion),
    }


def serialize_project_summary(summary: ProjectSummary) -> dict[str, object]:
    return {
        "project_id": str(summary.project_id),
        "name": summary.name,
        "status": summary.status.value,
        "estimated_hours": hours(summary.estimated_hours),
        "used_hours": hours(summary.used_hours),
        "remaining_hours": hours(summary.remaining_hours),
        "completion_percent": hours(summary.completion_percent),
        "is_active": summary.is_active,
        "assigned_user_id": uuid_text(summary.assigned_user_id),
    }


def serialize_workload(workload: UserWorkload) -> dict[str, object]:
    return {
        "user_id": str(workload.user_id),
        "display_name": workload.display_name,
        "active_processes": workload.active_processes,
        "pending_activities": workload.pending_activities,
        "pending_estimated_hours": hours(workload.pending_estimated_hours),
    }


def week_start(value: date) -> date:
    return value - timedelta(days=value.weekday())


class DashboardService:
    """Daily goal and role dashboards."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = TrackingRepository(db)
        self.settings = get_settings()

    def _user_record(self, user_id: UUID) -> UserRecord:
        user = self.repo.user_record(user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
        return user

    def _expected_hours(self, user: UserRecord, on: date) -> tuple[Decimal, bool]:
        """Expected hours for ``on``; a malformed stored schedule counts as zero."""

        try:
            return expected_hours(user, on, fallback_hours=self.settings.default_daily_hours), True
        except ScheduleError as exc:
            logger.warning("Ignoring malformed work schedule of user %s on %s: %s", user.id, on.isoformat(), exc)
            return ZERO, False

    # ---------- Daily goal ----------
    def daily_progress(self, *, context: RequestUserContext, on: date | None = None) -> dict[str, object]:
        on = on or date.today()
        user = self._user_record(context.user_id)
        expected, schedule_valid = self._expected_hours(user, on)
        logged = self.repo.activity_records(date_from=on, date_to=on, user_id=user.id)
        progress = daily_progress(on, sum_hours(logged), expected)
        return {
            "date": on.isoformat(),
            "current_hours": hours(progress.current_hours),
            "expected_hours": hours(progress.expected_hours),
            "percent": hours(progress.percent),
            "tier": progress.tier.value,
            "remaining_hours": hours(progress.remaining_hours),
            "exceeded_hours": hours(progress.exceeded_hours),
            "bar_width": hours(progress.bar_width),
            "schedule_valid": schedule_valid,
        }

    # ---------- Role dashboards ----------
    def user_dashboard(self, *, context: RequestUserContext, today: date | None = None) -> dict[str, object]:
        today = today or date.today()
        scope = context.scope
        window_days = self.settings.activity_window_days
        own_activities = self.repo.activity_records(user_id=context.user_id)
        stats = activity_stats(own_activities, today=today, window_days=window_days)
        projects = [
            project for project in self.repo.project_records() if context.user_id in project.owner_ids
        ]
        tasks = [task for task in self.repo.task_records() if context.user_id in task.owner_ids]
        breakdown = week_breakdown(own_activities, week_start(today))
        logger.debug(
            "User dashboard for %s: %d activities, %d projects, %d tasks",
            scope.user_id,
            len(own_activities),
            len(projects),
            len(tasks),
        )
        return {
            "today": self.daily_progress(context=context, on=today),
            "week": {day: hours(value) for day, value in breakdown.items()},
            "stats": {
                "total_hours": hours(stats.total_hours),
                "total_activities": stats.total_activities,
                "daily_average": hours(stats.daily_average),
                "window_days": stats.window_days,
                "window_hours": hours(stats.window_hours),
            },
            "projects": [serialize_project_summary(summary) for summary in summarize_projects(projects)],
            "task_status_counts": task_status_counts(tasks),
            "recent_activities": [
                {
                    "id": str(activity.id),
                    "date": activity.date.isoformat(),
                    "activity_name": activity.activity_name,
                    "execution_time": hours(activity.execution_time),
                }
                for activity in own_activities[:RECENT_ACTIVITY_LIMIT]
            ],
        }

    def admin_dashboard(self, *, context: RequestUserContext) -> dict[str, object]:
        if context.area_id is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Admin user has no area assigned.",
            )
        scope = context.scope
        area = self.repo.get_area(context.area_id)
        users = filter_visible(scope, [user for user in self.repo.user_records() if user.area_id == context.area_id])
        projects = filter_visible(scope, self.repo.project_records())
        activities = filter_visible(scope, self.repo.activity_records())
        processes = filter_visible(scope, self.repo.process_records())
        summary = summarize_area(
            area=to_area_record(area) if area is not None else None,
            users=users,
            projects=projects,
            activities=activities,
        )
        user_summaries = sorted(
            summarize_users(users, activities=activities, projects=projects),
            key=lambda item: item.total_hours,
            reverse=True,
        )
        return {
            "area": serialize_area_summary(summary),
            "users": [serialize_user_summary(item) for item in user_summaries],
            "project_status": {key.value: count for key, count in status_distribution(projects).items()},
            "workloads": [
                serialize_workload(item)
                for item in user_workloads(
                    users,
                    processes=processes,
                    process_activities=self.repo.process_activity_records(),
                )
            ],
        }

    def superadmin_dashboard(self) -> dict[str, object]:
        users = self.repo.user_records()
        projects = self.repo.project_records()
        activities = self.repo.activity_records()
        overall = summarize_area(area=None, users=users, projects=projects, activities=activities)
        areas = sorted(
            summarize_areas(self.repo.area_records(), users=users, projects=projects, activities=activities),
            key=lambda item: item.total_hours,
            reverse=True,
        )
        return {
            "overall": serialize_area_summary(overall),
            "areas": [serialize_area_summary(item) for item in areas],
            "project_status": {key.value: count for key, count in status_distribution(projects).items()},
            "users_by_role": {role.value: sum(1 for user in users if user.role is role) for role in Role},
        }
