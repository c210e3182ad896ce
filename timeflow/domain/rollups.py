"""Area, user and project roll-ups built on top of hours accounting.

``average_completion`` is an unweighted mean of each project's completion
percent, so a small project moves the average as much as a large one.
Results come back unordered; sorting belongs to whoever presents them.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from timeflow.domain.aggregation import sum_hours
from timeflow.domain.hours import HoursAccount
from timeflow.domain.records import (
    ZERO,
    ActivityRecord,
    AreaRecord,
    ProcessActivityRecord,
    ProcessActivityStatus,
    ProcessRecord,
    ProcessStatus,
    ProjectRecord,
    ProjectStatus,
    Role,
    TaskRecord,
    UserRecord,
)

OPEN_PROCESS_STATUSES = {ProcessStatus.ACTIVE, ProcessStatus.PAUSED}


@dataclass(frozen=True)
class ProjectSummary:
    project_id: UUID
    name: str
    status: ProjectStatus
    estimated_hours: Decimal
    used_hours: Decimal
    remaining_hours: Decimal
    completion_percent: Decimal
    is_active: bool
    assigned_user_id: UUID | None = None


@dataclass(frozen=True)
class AreaSummary:
    area_id: UUID | None
    area_name: str | None
    total_users: int
    total_projects: int
    active_projects: int
    total_hours: Decimal
    total_activities: int
    average_completion: Decimal


@dataclass(frozen=True)
class UserSummary:
    user_id: UUID
    display_name: str
    total_activities: int
    total_hours: Decimal
    assigned_projects: int
    average_completion: Decimal


@dataclass(frozen=True)
class UserWorkload:
    user_id: UUID
    display_name: str
    active_processes: int
    pending_activities: int
    pending_estimated_hours: Decimal


def summarize_project(project: ProjectRecord) -> ProjectSummary:
    account = HoursAccount.of(project)
    return ProjectSummary(
        project_id=project.id,
        name=project.name,
        status=project.status,
        estimated_hours=account.estimated,
        used_hours=account.used,
        remaining_hours=account.remaining,
        completion_percent=account.completion_percent,
        is_active=project.is_active,
        assigned_user_id=project.assigned_user_id,
    )


def summarize_projects(projects: Iterable[ProjectRecord]) -> list[ProjectSummary]:
    return [summarize_project(project) for project in projects]


def average_completion(entities: Iterable[ProjectRecord | TaskRecord]) -> Decimal:
    percents = [HoursAccount.of(entity).completion_percent for entity in entities]
    if not percents:
        return ZERO
    return sum(percents, ZERO) / Decimal(len(percents))


def summarize_area(
    *,
    area: AreaRecord | None,
    users: Sequence[UserRecord],
    projects: Sequence[ProjectRecord],
    activities: Sequence[ActivityRecord],
) -> AreaSummary:
    """Summarize an already scoped collection of users, projects and activities."""

    return AreaSummary(
        area_id=area.id if area is not None else None,
        area_name=area.name if area is not None else None,
        total_users=sum(1 for user in users if user.role is Role.USER),
        total_projects=len(projects),
        active_projects=sum(1 for project in projects if project.is_active),
        total_hours=sum_hours(activities),
        total_activities=len(activities),
        average_completion=average_completion(projects),
    )


def summarize_areas(
    areas: Iterable[AreaRecord],
    *,
    users: Sequence[UserRecord],
    projects: Sequence[ProjectRecord],
    activities: Sequence[ActivityRecord],
) -> list[AreaSummary]:
    summaries: list[AreaSummary] = []
    for area in areas:
        summaries.append(
            summarize_area(
                area=area,
                users=[user for user in users if user.area_id == area.id],
                projects=[project for project in projects if project.area_id == area.id],
                activities=[activity for activity in activities if activity.area_id == area.id],
            )
        )
    return summaries


def summarize_user(
    user: UserRecord,
    *,
    activities: Iterable[ActivityRecord],
    projects: Iterable[ProjectRecord],
) -> UserSummary:
    own_activities = [activity for activity in activities if activity.user_id == user.id]
    assigned = [project for project in projects if project.assigned_user_id == user.id]
    return UserSummary(
        user_id=user.id,
        display_name=user.display_name,
        total_activities=len(own_activities),
        total_hours=sum_hours(own_activities),
        assigned_projects=len(assigned),
        average_completion=average_completion(assigned),
    )


def summarize_users(
    users: Iterable[UserRecord],
    *,
    activities: Sequence[ActivityRecord],
    projects: Sequence[ProjectRecord],
) -> list[UserSummary]:
    return [summarize_user(user, activities=activities, projects=projects) for user in users]


def status_distribution(projects: Iterable[ProjectRecord]) -> dict[ProjectStatus, int]:
    distribution = {status: 0 for status in ProjectStatus}
    for project in projects:
        distribution[project.status] += 1
    return distribution


def task_status_counts(tasks: Iterable[TaskRecord]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for task in tasks:
        counts[task.status.value] = counts.get(task.status.value, 0) + 1
    return counts


def user_workloads(
    users: Iterable[UserRecord],
    *,
    processes: Sequence[ProcessRecord],
    process_activities: Sequence[ProcessActivityRecord],
) -> list[UserWorkload]:
    """Open process load per user, counting pending activities of open processes."""

    open_processes = {process.id: process for process in processes if process.status in OPEN_PROCESS_STATUSES}
    workloads: list[UserWorkload] = []
    for user in users:
        process_ids = {pid for pid, process in open_processes.items() if user.id in process.assigned_user_ids}
        pending = [
            row
            for row in process_activities
            if row.process_id in process_ids and row.status is ProcessActivityStatus.PENDING
        ]
        workloads.append(
            UserWorkload(
                user_id=user.id,
                display_name=user.display_name,
                active_processes=len(process_ids),
                pending_activities=len(pending),
                pending_estimated_hours=sum((row.estimated_hours for row in pending), ZERO),
            )
        )
    return workloads
