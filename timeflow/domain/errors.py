"""Domain error types raised by the accounting core."""

from __future__ import annotations

from uuid import UUID


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses keep ``ValueError`` compatibility so callers outside the HTTP
    layer can treat them as ordinary bad input.
    """


class ValidationError(DomainError):
    """Input that violates a business rule at the edit boundary."""


class ScheduleError(ValidationError):
    """Malformed clock time or a range whose end precedes its start."""


class DependencyCycleError(DomainError):
    """Process activity dependencies loop back on themselves."""

    def __init__(self, cycle: list[UUID]) -> None:
        self.cycle = cycle
        super().__init__(dependency_cycle(cycle))


def dependency_cycle(cycle: list[UUID]) -> str:
    """Return message for a dependency cycle."""
    return "Circular dependency detected: " + " -> ".join(str(item) for item in cycle)


def reversed_time_range(label: str, start: str, end: str) -> str:
    """Return message for a time range that ends before it starts."""
    return f"{label} ends at {end} before it starts at {start}"


def invalid_clock_time(label: str, value: object) -> str:
    """Return message for a value that is not an HH:MM clock time."""
    return f"{label} must be a HH:MM time, got {value!r}"
