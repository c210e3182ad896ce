"""Rules enforced when an activity is created or edited."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from timeflow.domain.errors import ValidationError
from timeflow.domain.records import (
    ZERO,
    ActivityRecord,
    ActivityType,
    ProjectRecord,
    ProjectStatus,
    TaskRecord,
    TaskStatus,
    to_decimal,
)

IMMUTABLE_FIELDS = ("date", "user_id")
REQUIRED_FIELDS = ("activity_type", "activity_name", "execution_time")
LOGGABLE_STATUSES = frozenset(
    {ProjectStatus.IN_PROGRESS, ProjectStatus.COMPLETED, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED}
)


@dataclass(frozen=True)
class ActivityDraft:
    date: date
    execution_time: Decimal
    activity_type: ActivityType
    activity_name: str
    project_id: UUID | None = None
    task_id: UUID | None = None
    other_area: str | None = None
    observations: str | None = None


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def validate_activity(draft: ActivityDraft) -> None:
    if to_decimal(draft.execution_time) <= ZERO:
        raise ValidationError("execution_time must be greater than zero")
    if _blank(draft.activity_name):
        raise ValidationError("activity_name is required")
    if draft.project_id is not None and _blank(draft.observations):
        raise ValidationError("observations are required when the activity is linked to a project")
    if draft.task_id is not None and draft.project_id is None:
        raise ValidationError("task_id requires project_id")
    if draft.activity_type is ActivityType.APOYO_SOLICITADO_POR_OTRAS_AREAS and _blank(draft.other_area):
        raise ValidationError("other_area is required for support requested by other areas")


def validate_update(existing: ActivityRecord, changes: dict[str, object]) -> None:
    """Reject edits to fields that are fixed once an activity is logged."""

    for name in IMMUTABLE_FIELDS:
        if name in changes and changes[name] != getattr(existing, name):
            raise ValidationError(f"{name} cannot be changed after the activity is logged")


def accepts_hours(record: ProjectRecord | TaskRecord) -> bool:
    """Hours go only to work that has started or finished."""

    return record.status in LOGGABLE_STATUSES


def can_log_hours(user_id: UUID, record: ProjectRecord | TaskRecord) -> bool:
    return user_id in record.owner_ids


def merge_update(existing: ActivityRecord, changes: dict[str, object]) -> ActivityDraft:
    validate_update(existing, changes)
    for name in REQUIRED_FIELDS:
        if name in changes and changes[name] is None:
            raise ValidationError(f"{name} cannot be cleared")
    values = {
        "date": existing.date,
        "execution_time": existing.execution_time,
        "activity_type": existing.activity_type,
        "activity_name": existing.activity_name,
        "project_id": existing.project_id,
        "task_id": existing.task_id,
        "other_area": existing.other_area,
        "observations": existing.observations,
    }
    for name, value in changes.items():
        if name in values and name not in IMMUTABLE_FIELDS:
            values[name] = value
    draft = ActivityDraft(**values)  # type: ignore[arg-type]
    validate_activity(draft)
    return draft


def month_key(value: date) -> str:
    return value.strftime("%Y-%m")
