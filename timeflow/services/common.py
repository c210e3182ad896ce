"""Helpers shared by application services."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException, status

from timeflow.domain.errors import DependencyCycleError, DomainError, ValidationError

Q2 = Decimal("0.01")


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


def hours(value: Decimal) -> str:
    """Decimal hours as a two-place string for JSON output."""

    return str(_q2(value))


def uuid_text(value: UUID | None) -> str | None:
    return str(value) if value is not None else None


def http_error(exc: DomainError) -> HTTPException:
    """Map a domain error raised by the core to an HTTP error."""

    if isinstance(exc, DependencyCycleError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
