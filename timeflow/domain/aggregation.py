"""Grouping and summing of logged activities.

Callers pass a collection that is already filtered by role and date range;
nothing here looks at who is asking.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import TypeVar
from uuid import UUID

from timeflow.domain.records import ZERO, WEEKDAYS, ActivityRecord, ActivityType

K = TypeVar("K", bound=Hashable)


@dataclass(frozen=True)
class ActivityStats:
    total_hours: Decimal
    total_activities: int
    unique_users: int
    daily_average: Decimal
    window_days: int
    window_hours: Decimal


def group_by(activities: Iterable[ActivityRecord], key: Callable[[ActivityRecord], K]) -> dict[K, list[ActivityRecord]]:
    """Group activities preserving the order in which each key is first seen."""

    grouped: dict[K, list[ActivityRecord]] = {}
    for activity in activities:
        grouped.setdefault(key(activity), []).append(activity)
    return grouped


def group_by_date(activities: Iterable[ActivityRecord]) -> dict[date, list[ActivityRecord]]:
    return group_by(activities, lambda activity: activity.date)


def group_by_user(activities: Iterable[ActivityRecord]) -> dict[UUID, list[ActivityRecord]]:
    return group_by(activities, lambda activity: activity.user_id)


def group_by_project(activities: Iterable[ActivityRecord]) -> dict[UUID | None, list[ActivityRecord]]:
    return group_by(activities, lambda activity: activity.project_id)


def group_by_type(activities: Iterable[ActivityRecord]) -> dict[ActivityType, list[ActivityRecord]]:
    return group_by(activities, lambda activity: activity.activity_type)


def sum_hours(activities: Iterable[ActivityRecord]) -> Decimal:
    return sum((activity.execution_time for activity in activities), ZERO)


def daily_totals(activities: Iterable[ActivityRecord]) -> dict[date, Decimal]:
    return {day: sum_hours(rows) for day, rows in group_by_date(activities).items()}


def hours_by_type(activities: Iterable[ActivityRecord]) -> dict[ActivityType, Decimal]:
    return {kind: sum_hours(rows) for kind, rows in group_by_type(activities).items()}


def daily_average(activities: Iterable[ActivityRecord]) -> Decimal:
    """Mean of per-day totals, counting only days that have activity."""

    totals = daily_totals(activities)
    if not totals:
        return ZERO
    return sum(totals.values(), ZERO) / Decimal(len(totals))


def window_sum(activities: Iterable[ActivityRecord], days: int = 7, *, today: date) -> Decimal:
    """Hours logged from ``today - days`` onwards, both ends inclusive."""

    cutoff = today - timedelta(days=days)
    return sum_hours(activity for activity in activities if activity.date >= cutoff)


def unique_users(activities: Iterable[ActivityRecord]) -> int:
    return len({activity.user_id for activity in activities})


def week_breakdown(activities: Iterable[ActivityRecord], week_start: date) -> dict[str, Decimal]:
    """Hours per weekday for the seven days starting at ``week_start``."""

    totals = daily_totals(activities)
    breakdown: dict[str, Decimal] = {}
    for offset in range(7):
        day = week_start + timedelta(days=offset)
        breakdown[WEEKDAYS[day.weekday()]] = totals.get(day, ZERO)
    return breakdown


def activity_stats(activities: Sequence[ActivityRecord], *, today: date, window_days: int = 7) -> ActivityStats:
    return ActivityStats(
        total_hours=sum_hours(activities),
        total_activities=len(activities),
        unique_users=unique_users(activities),
        daily_average=daily_average(activities),
        window_days=window_days,
        window_hours=window_sum(activities, window_days, today=today),
    )
