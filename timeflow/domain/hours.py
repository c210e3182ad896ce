"""Estimated versus consumed hours and the completion rules derived from them."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from timeflow.domain.records import ZERO, to_decimal

HUNDRED = Decimal("100")


class HasHours(Protocol):
    estimated_hours: Decimal
    used_hours: Decimal


@dataclass(frozen=True)
class HoursAccount:
    """Hours budget of a worked entity.

    ``used`` may exceed ``estimated``; an over-budget account is a valid state
    and shows up as a negative ``remaining`` and a percent above 100.
    """

    estimated: Decimal
    used: Decimal

    @classmethod
    def of(cls, entity: HasHours) -> HoursAccount:
        return cls(estimated=to_decimal(entity.estimated_hours), used=to_decimal(entity.used_hours))

    @classmethod
    def from_values(cls, estimated: Decimal | float | int, used: Decimal | float | int) -> HoursAccount:
        return cls(estimated=to_decimal(estimated), used=to_decimal(used))

    @property
    def remaining(self) -> Decimal:
        return remaining_hours(self)

    @property
    def completion_percent(self) -> Decimal:
        return completion_percent(self)

    @property
    def is_over_budget(self) -> bool:
        return self.used > self.estimated


def completion_percent(account: HoursAccount) -> Decimal:
    """Percent of the estimate already consumed; zero when nothing was estimated."""

    if account.estimated <= ZERO:
        return ZERO
    return account.used / account.estimated * HUNDRED


def remaining_hours(account: HoursAccount) -> Decimal:
    """Signed hours left; negative once the estimate is exceeded."""

    return account.estimated - account.used


def progress_bar_width(percent: Decimal) -> Decimal:
    """Width for a progress bar, capped at 100 while the value itself is not."""

    return min(percent, HUNDRED)
