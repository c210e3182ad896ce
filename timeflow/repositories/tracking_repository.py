"""Persistence helpers and the request-scoped fetch layer.

Collections handed to the accounting core are loaded once per repository
instance and memoized by query key. A repository lives for one request, so
nothing is cached across users; writes call ``invalidate`` so the next read
sees fresh rows.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from decimal import Decimal
from typing import TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from timeflow.domain.records import (
    ActivityRecord,
    ActivityType,
    AreaRecord,
    ProcessActivityRecord,
    ProcessRecord,
    ProjectRecord,
    TaskRecord,
    UserRecord,
    WorkSchedule,
    lunch_break_from_mapping,
)
from timeflow.models.entities import (
    Activity,
    Area,
    Process,
    ProcessActivity,
    ProcessAssignment,
    Project,
    Task,
    User,
)

T = TypeVar("T")

ZERO_HOURS = Decimal("0.00")


def to_area_record(area: Area) -> AreaRecord:
    return AreaRecord(id=area.id, name=area.name, is_active=area.is_active)


def to_user_record(user: User) -> UserRecord:
    return UserRecord(
        id=user.id,
        role=user.role,
        display_name=user.display_name,
        area_id=user.area_id,
        is_active=user.is_active,
        work_schedule=WorkSchedule.from_mapping(user.work_schedule),
        lunch_break=lunch_break_from_mapping(user.lunch_break),
    )


def to_activity_record(activity: Activity) -> ActivityRecord:
    return ActivityRecord(
        id=activity.id,
        user_id=activity.user_id,
        date=activity.date,
        execution_time=Decimal(activity.execution_time),
        activity_type=activity.activity_type,
        activity_name=activity.activity_name,
        project_id=activity.project_id,
        task_id=activity.task_id,
        area_id=activity.area_id,
        other_area=activity.other_area,
        observations=activity.observations,
    )


def to_project_record(project: Project) -> ProjectRecord:
    return ProjectRecord(
        id=project.id,
        name=project.name,
        estimated_hours=Decimal(project.estimated_hours),
        used_hours=Decimal(project.used_hours),
        status=project.status,
        creator_id=project.creator_id,
        project_type=project.project_type,
        priority=project.priority,
        area_id=project.area_id,
        assigned_user_id=project.assigned_user_id,
        is_active=project.is_active,
    )


def to_task_record(task: Task, *, area_id: UUID | None) -> TaskRecord:
    return TaskRecord(
        id=task.id,
        project_id=task.project_id,
        name=task.name,
        estimated_hours=Decimal(task.estimated_hours),
        used_hours=Decimal(task.used_hours),
        status=task.status,
        creator_id=task.creator_id,
        priority=task.priority,
        assigned_user_id=task.assigned_user_id,
        due_date=task.due_date,
        area_id=area_id,
    )


def to_process_record(process: Process, *, assigned_user_ids: frozenset[UUID]) -> ProcessRecord:
    return ProcessRecord(
        id=process.id,
        name=process.name,
        estimated_hours=Decimal(process.estimated_hours),
        used_hours=Decimal(process.used_hours),
        status=process.status,
        creator_id=process.creator_id,
        requirement_id=process.requirement_id,
        incident_id=process.incident_id,
        area_id=process.area_id,
        assigned_user_ids=assigned_user_ids,
    )


def to_process_activity_record(row: ProcessActivity) -> ProcessActivityRecord:
    return ProcessActivityRecord(
        id=row.id,
        process_id=row.process_id,
        name=row.name,
        status=row.status,
        estimated_hours=Decimal(row.estimated_hours),
        used_hours=Decimal(row.used_hours),
        depends_on_id=row.depends_on_id,
        assigned_user_id=row.assigned_user_id,
    )


class TrackingRepository:
    """Persistence operations and memoized record loaders for one request."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self._cache: dict[tuple[object, ...], object] = {}

    def _memoized(self, key: tuple[object, ...], loader: Callable[[], T]) -> T:
        if key not in self._cache:
            self._cache[key] = loader()
        return self._cache[key]  # type: ignore[return-value]

    def invalidate(self) -> None:
        self._cache.clear()

    def add(self, entity: T) -> T:
        self.db.add(entity)
        self.db.flush()
        self.invalidate()
        return entity

    def delete(self, entity: object) -> None:
        self.db.delete(entity)
        self.db.flush()
        self.invalidate()

    # ---------- Areas and users ----------
    def get_area(self, area_id: UUID) -> Area | None:
        return self.db.scalar(select(Area).where(Area.id == area_id))

    def get_area_by_name(self, name: str) -> Area | None:
        return self.db.scalar(select(Area).where(func.lower(Area.name) == name.strip().lower()))

    def list_areas(self) -> list[Area]:
        return self.db.scalars(select(Area).order_by(Area.name.asc())).all()

    def get_user(self, user_id: UUID) -> User | None:
        return self.db.scalar(select(User).where(User.id == user_id))

    def area_records(self) -> list[AreaRecord]:
        return self._memoized(("areas",), lambda: [to_area_record(area) for area in self.list_areas()])

    def user_records(self) -> list[UserRecord]:
        def load() -> list[UserRecord]:
            users = self.db.scalars(select(User).order_by(User.display_name.asc())).all()
            return [to_user_record(user) for user in users]

        return self._memoized(("users",), load)

    def user_record(self, user_id: UUID) -> UserRecord | None:
        def load() -> UserRecord | None:
            user = self.get_user(user_id)
            return to_user_record(user) if user is not None else None

        return self._memoized(("user", user_id), load)

    # ---------- Activities ----------
    def get_activity(self, activity_id: UUID) -> Activity | None:
        return self.db.scalar(select(Activity).where(Activity.id == activity_id))

    def activity_records(
        self,
        *,
        date_from: date | None = None,
        date_to: date | None = None,
        user_id: UUID | None = None,
        project_id: UUID | None = None,
        activity_type: ActivityType | None = None,
    ) -> list[ActivityRecord]:
        key = ("activities", date_from, date_to, user_id, project_id, activity_type)

        def load() -> list[ActivityRecord]:
            query = select(Activity)
            if date_from is not None:
                query = query.where(Activity.date >= date_from)
            if date_to is not None:
                query = query.where(Activity.date <= date_to)
            if user_id is not None:
                query = query.where(Activity.user_id == user_id)
            if project_id is not None:
                query = query.where(Activity.project_id == project_id)
            if activity_type is not None:
                query = query.where(Activity.activity_type == activity_type)
            rows = self.db.scalars(query.order_by(Activity.date.desc(), Activity.created_at.desc())).all()
            return [to_activity_record(row) for row in rows]

        return self._memoized(key, load)

    def sum_activity_hours(self, *, project_id: UUID | None = None, task_id: UUID | None = None) -> Decimal:
        query = select(func.coalesce(func.sum(Activity.execution_time), 0))
        if task_id is not None:
            query = query.where(Activity.task_id == task_id)
        elif project_id is not None:
            query = query.where(Activity.project_id == project_id)
        else:
            return ZERO_HOURS
        return Decimal(str(self.db.scalar(query) or 0)).quantize(ZERO_HOURS)

    def refresh_used_hours(self, *, project_id: UUID | None, task_id: UUID | None) -> None:
        """Recompute stored ``used_hours`` from the activities logged against them."""

        if project_id is not None:
            project = self.get_project(project_id)
            if project is not None:
                project.used_hours = self.sum_activity_hours(project_id=project_id)
        if task_id is not None:
            task = self.get_task(task_id)
            if task is not None:
                task.used_hours = self.sum_activity_hours(task_id=task_id)
        self.db.flush()
        self.invalidate()

    # ---------- Projects and tasks ----------
    def get_project(self, project_id: UUID) -> Project | None:
        return self.db.scalar(select(Project).where(Project.id == project_id))

    def get_task(self, task_id: UUID) -> Task | None:
        return self.db.scalar(select(Task).where(Task.id == task_id))

    def project_records(self) -> list[ProjectRecord]:
        def load() -> list[ProjectRecord]:
            rows = self.db.scalars(select(Project).order_by(Project.name.asc())).all()
            return [to_project_record(row) for row in rows]

        return self._memoized(("projects",), load)

    def project_record(self, project_id: UUID) -> ProjectRecord | None:
        return next((record for record in self.project_records() if record.id == project_id), None)

    def task_records(self, *, project_id: UUID | None = None) -> list[TaskRecord]:
        def load() -> list[TaskRecord]:
            query = select(Task, Project.area_id).join(Project, Project.id == Task.project_id)
            if project_id is not None:
                query = query.where(Task.project_id == project_id)
            rows = self.db.execute(query.order_by(Task.name.asc())).all()
            return [to_task_record(task, area_id=area_id) for task, area_id in rows]

        return self._memoized(("tasks", project_id), load)

    def task_record(self, task_id: UUID) -> TaskRecord | None:
        row = self.db.execute(
            select(Task, Project.area_id).join(Project, Project.id == Task.project_id).where(Task.id == task_id)
        ).first()
        if row is None:
            return None
        task, area_id = row
        return to_task_record(task, area_id=area_id)

    # ---------- Processes ----------
    def get_process(self, process_id: UUID) -> Process | None:
        return self.db.scalar(select(Process).where(Process.id == process_id))

    def get_process_activity(self, activity_id: UUID) -> ProcessActivity | None:
        return self.db.scalar(select(ProcessActivity).where(ProcessActivity.id == activity_id))

    def _assignments_by_process(self) -> dict[UUID, frozenset[UUID]]:
        def load() -> dict[UUID, frozenset[UUID]]:
            grouped: dict[UUID, set[UUID]] = {}
            for process_id, user_id in self.db.execute(
                select(ProcessAssignment.process_id, ProcessAssignment.user_id)
            ).all():
                grouped.setdefault(process_id, set()).add(user_id)
            return {process_id: frozenset(user_ids) for process_id, user_ids in grouped.items()}

        return self._memoized(("process_assignments",), load)

    def process_records(self) -> list[ProcessRecord]:
        def load() -> list[ProcessRecord]:
            assignments = self._assignments_by_process()
            rows = self.db.scalars(select(Process).order_by(Process.name.asc())).all()
            return [
                to_process_record(row, assigned_user_ids=assignments.get(row.id, frozenset())) for row in rows
            ]

        return self._memoized(("processes",), load)

    def process_record(self, process_id: UUID) -> ProcessRecord | None:
        return next((record for record in self.process_records() if record.id == process_id), None)

    def process_activity_records(self, *, process_id: UUID | None = None) -> list[ProcessActivityRecord]:
        def load() -> list[ProcessActivityRecord]:
            query = select(ProcessActivity)
            if process_id is not None:
                query = query.where(ProcessActivity.process_id == process_id)
            rows = self.db.scalars(query.order_by(ProcessActivity.created_at.asc())).all()
            return [to_process_activity_record(row) for row in rows]

        return self._memoized(("process_activities", process_id), load)
