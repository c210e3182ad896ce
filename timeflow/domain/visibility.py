"""Role based filtering of records for a viewer.

Super admins see everything, admins see their area and users see what they
own. A record owns nothing unless it exposes ``owner_ids``, and belongs to no
area unless it exposes ``area_id``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TypeVar
from uuid import UUID

from timeflow.domain.records import Role, ViewerScope

T = TypeVar("T")


def record_area(record: object) -> UUID | None:
    return getattr(record, "area_id", None)


def record_owners(record: object) -> frozenset[UUID]:
    return getattr(record, "owner_ids", frozenset())


def is_visible(scope: ViewerScope, record: object) -> bool:
    if scope.role is Role.SUPER_ADMIN:
        return True
    if scope.role is Role.ADMIN:
        return scope.area_id is not None and record_area(record) == scope.area_id
    return scope.user_id in record_owners(record)


def filter_visible(scope: ViewerScope, records: Iterable[T]) -> list[T]:
    return [record for record in records if is_visible(scope, record)]


def can_edit(scope: ViewerScope, record: object) -> bool:
    """Edit rights follow the same rule as visibility."""

    return is_visible(scope, record)
