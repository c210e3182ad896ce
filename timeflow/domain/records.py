"""Plain records consumed by the accounting core.

Repositories build these from ORM rows so that the computation modules never
touch a session or a request.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from uuid import UUID

ZERO = Decimal("0")


class Role(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "superadmin"


class ProjectType(str, enum.Enum):
    PERSONAL = "personal"
    AREA = "area"


class Priority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ProjectStatus(str, enum.Enum):
    UNASSIGNED = "unassigned"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"


class TaskStatus(str, enum.Enum):
    BACKLOG = "backlog"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"


class ProcessStatus(str, enum.Enum):
    ACTIVE = "Activo"
    PAUSED = "En Pausa"
    COMPLETED = "Completado"
    CANCELLED = "Cancelado"


class ProcessActivityStatus(str, enum.Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"

    @classmethod
    def _missing_(cls, value: object) -> ProcessActivityStatus | None:
        aliases = {"backlog": cls.PENDING, "blocked": cls.PAUSED}
        if isinstance(value, str):
            return aliases.get(value.strip().lower())
        return None


class ActivityType(str, enum.Enum):
    PLAN_DE_TRABAJO = "plan_de_trabajo"
    APOYO_SOLICITADO_POR_OTRAS_AREAS = "apoyo_solicitado_por_otras_areas"
    TEAMS = "teams"
    INTERNO = "interno"
    SESION = "sesion"
    INVESTIGACION = "investigacion"
    PROTOTIPADO = "prototipado"
    DISENOS = "disenos"
    PRUEBAS = "pruebas"
    DOCUMENTACION = "documentacion"


WEEKDAYS: tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

# Schedules saved by the Spanish UI use localized day names.
WEEKDAY_ALIASES: dict[str, str] = {
    "lunes": "monday",
    "martes": "tuesday",
    "miércoles": "wednesday",
    "miercoles": "wednesday",
    "jueves": "thursday",
    "viernes": "friday",
    "sábado": "saturday",
    "sabado": "saturday",
    "domingo": "sunday",
}


def normalize_weekday(name: str) -> str | None:
    key = name.strip().lower()
    if key in WEEKDAYS:
        return key
    return WEEKDAY_ALIASES.get(key)


def weekday_name(value: date) -> str:
    return WEEKDAYS[value.weekday()]


def to_decimal(value: Decimal | float | int | str | None) -> Decimal:
    """Coerce a numeric input to ``Decimal`` without binary float noise."""

    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class TimeRange:
    """Same-day span between two ``HH:MM`` clock times."""

    start: time
    end: time

    @property
    def minutes(self) -> int:
        return (self.end.hour * 60 + self.end.minute) - (self.start.hour * 60 + self.start.minute)


@dataclass(frozen=True)
class DaySchedule:
    enabled: bool
    start: str | None = None
    end: str | None = None


@dataclass(frozen=True)
class LunchBreak:
    enabled: bool
    start: str | None = None
    end: str | None = None


@dataclass(frozen=True)
class WorkSchedule:
    """Weekly schedule keyed by normalized English weekday name."""

    days: dict[str, DaySchedule] = field(default_factory=dict)

    def for_weekday(self, weekday: str) -> DaySchedule | None:
        return self.days.get(weekday)

    @classmethod
    def from_mapping(cls, payload: dict[str, dict[str, object]] | None) -> WorkSchedule | None:
        if payload is None:
            return None
        days: dict[str, DaySchedule] = {}
        for raw_name, raw_day in payload.items():
            weekday = normalize_weekday(raw_name)
            if weekday is None or not isinstance(raw_day, dict):
                continue
            days[weekday] = DaySchedule(
                enabled=bool(raw_day.get("enabled", False)),
                start=raw_day.get("start"),  # type: ignore[arg-type]
                end=raw_day.get("end"),  # type: ignore[arg-type]
            )
        return cls(days=days)


def lunch_break_from_mapping(payload: dict[str, object] | None) -> LunchBreak | None:
    if payload is None:
        return None
    return LunchBreak(
        enabled=bool(payload.get("enabled", False)),
        start=payload.get("start"),  # type: ignore[arg-type]
        end=payload.get("end"),  # type: ignore[arg-type]
    )


@dataclass(frozen=True)
class ViewerScope:
    """Role and area of the actor a collection is being prepared for."""

    user_id: UUID
    role: Role
    area_id: UUID | None = None


@dataclass(frozen=True)
class AreaRecord:
    id: UUID
    name: str
    is_active: bool = True


@dataclass(frozen=True)
class UserRecord:
    id: UUID
    role: Role
    display_name: str = ""
    area_id: UUID | None = None
    is_active: bool = True
    work_schedule: WorkSchedule | None = None
    lunch_break: LunchBreak | None = None

    @property
    def owner_ids(self) -> frozenset[UUID]:
        return frozenset({self.id})


@dataclass(frozen=True)
class ActivityRecord:
    id: UUID
    user_id: UUID
    date: date
    execution_time: Decimal
    activity_type: ActivityType
    activity_name: str = ""
    project_id: UUID | None = None
    task_id: UUID | None = None
    area_id: UUID | None = None
    other_area: str | None = None
    observations: str | None = None

    @property
    def owner_ids(self) -> frozenset[UUID]:
        return frozenset({self.user_id})


@dataclass(frozen=True)
class ProjectRecord:
    id: UUID
    name: str
    estimated_hours: Decimal
    used_hours: Decimal
    status: ProjectStatus
    creator_id: UUID
    project_type: ProjectType = ProjectType.PERSONAL
    priority: Priority = Priority.MEDIUM
    area_id: UUID | None = None
    assigned_user_id: UUID | None = None
    is_active: bool = True

    @property
    def owner_ids(self) -> frozenset[UUID]:
        return frozenset(uid for uid in (self.creator_id, self.assigned_user_id) if uid is not None)


@dataclass(frozen=True)
class TaskRecord:
    id: UUID
    project_id: UUID
    name: str
    estimated_hours: Decimal
    used_hours: Decimal
    status: TaskStatus
    creator_id: UUID
    priority: Priority = Priority.MEDIUM
    assigned_user_id: UUID | None = None
    due_date: date | None = None
    area_id: UUID | None = None

    @property
    def owner_ids(self) -> frozenset[UUID]:
        return frozenset(uid for uid in (self.creator_id, self.assigned_user_id) if uid is not None)


@dataclass(frozen=True)
class ProcessRecord:
    id: UUID
    name: str
    estimated_hours: Decimal
    status: ProcessStatus
    creator_id: UUID
    used_hours: Decimal = ZERO
    requirement_id: UUID | None = None
    incident_id: UUID | None = None
    area_id: UUID | None = None
    assigned_user_ids: frozenset[UUID] = frozenset()

    @property
    def owner_ids(self) -> frozenset[UUID]:
        return frozenset({self.creator_id}) | self.assigned_user_ids


@dataclass(frozen=True)
class ProcessActivityRecord:
    id: UUID
    process_id: UUID
    name: str
    status: ProcessActivityStatus
    estimated_hours: Decimal = ZERO
    used_hours: Decimal = ZERO
    depends_on_id: UUID | None = None
    assigned_user_id: UUID | None = None
