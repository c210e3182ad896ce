"""Daily hour goal derived from a user's weekly work schedule."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal

from timeflow.domain.errors import ScheduleError, invalid_clock_time, reversed_time_range
from timeflow.domain.hours import HUNDRED
from timeflow.domain.records import ZERO, LunchBreak, TimeRange, UserRecord, to_decimal, weekday_name

MINUTES_PER_HOUR = Decimal("60")

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


class GoalTier(str, enum.Enum):
    COMPLETE = "complete"
    NEAR = "near"
    HALFWAY = "halfway"
    STARTED = "started"
    JUST_BEGINNING = "just_beginning"


# Lower bounds are inclusive: exactly 75 is NEAR, exactly 100 is COMPLETE.
GOAL_TIER_THRESHOLDS: tuple[tuple[Decimal, GoalTier], ...] = (
    (Decimal("100"), GoalTier.COMPLETE),
    (Decimal("75"), GoalTier.NEAR),
    (Decimal("50"), GoalTier.HALFWAY),
    (Decimal("25"), GoalTier.STARTED),
)


@dataclass(frozen=True)
class DailyProgress:
    day: date
    current_hours: Decimal
    expected_hours: Decimal
    percent: Decimal
    tier: GoalTier
    remaining_hours: Decimal
    exceeded_hours: Decimal

    @property
    def bar_width(self) -> Decimal:
        return min(self.percent, HUNDRED)


def parse_clock(value: object, *, label: str) -> time:
    if not isinstance(value, str):
        raise ScheduleError(invalid_clock_time(label, value))
    match = _CLOCK_RE.match(value.strip())
    if match is None:
        raise ScheduleError(invalid_clock_time(label, value))
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ScheduleError(invalid_clock_time(label, value))
    return time(hour, minute)


def parse_time_range(start: object, end: object, *, label: str) -> TimeRange:
    """Parse a same-day range, rejecting one that ends before it starts.

    Overnight shifts are not wrapped to the next day.
    """

    start_time = parse_clock(start, label=f"{label} start")
    end_time = parse_clock(end, label=f"{label} end")
    if end_time < start_time:
        raise ScheduleError(reversed_time_range(label, str(start), str(end)))
    return TimeRange(start=start_time, end=end_time)


def lunch_minutes(lunch_break: LunchBreak | None) -> int:
    if lunch_break is None or not lunch_break.enabled:
        return 0
    return parse_time_range(lunch_break.start, lunch_break.end, label="lunch break").minutes


def expected_hours(user: UserRecord, on: date, *, fallback_hours: Decimal = ZERO) -> Decimal:
    """Hours the user is expected to log on ``on``.

    A user without any schedule gets ``fallback_hours``; a day that is absent
    from an existing schedule, or disabled, expects nothing and its start/end
    values are not looked at.
    """

    if user.work_schedule is None:
        return to_decimal(fallback_hours)

    weekday = weekday_name(on)
    day = user.work_schedule.for_weekday(weekday)
    if day is None or not day.enabled:
        return ZERO

    shift = parse_time_range(day.start, day.end, label=f"{weekday} shift")
    worked_minutes = max(0, shift.minutes - lunch_minutes(user.lunch_break))
    return Decimal(worked_minutes) / MINUTES_PER_HOUR


def progress_percent(current: Decimal, expected: Decimal) -> Decimal:
    if expected <= ZERO:
        return ZERO
    return to_decimal(current) / to_decimal(expected) * HUNDRED


def goal_tier(percent: Decimal) -> GoalTier:
    for threshold, tier in GOAL_TIER_THRESHOLDS:
        if percent >= threshold:
            return tier
    return GoalTier.JUST_BEGINNING


def daily_progress(day: date, current: Decimal, expected: Decimal) -> DailyProgress:
    current = to_decimal(current)
    expected = to_decimal(expected)
    percent = progress_percent(current, expected)
    return DailyProgress(
        day=day,
        current_hours=current,
        expected_hours=expected,
        percent=percent,
        tier=goal_tier(percent),
        remaining_hours=max(ZERO, expected - current),
        exceeded_hours=max(ZERO, current - expected),
    )
