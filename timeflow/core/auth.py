"""Authentication context extraction and RBAC guard utilities."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from timeflow.core.config import get_settings
from timeflow.db.dependencies import get_db_session
from timeflow.domain.records import Role, ViewerScope
from timeflow.models.entities import Area, User, utcnow


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor resolved from headers and DB state."""

    user_id: UUID
    microsoft_oid: str
    email: str
    display_name: str
    role: Role
    area_id: UUID | None
    is_active: bool = True

    @property
    def is_super_admin(self) -> bool:
        return self.role is Role.SUPER_ADMIN

    @property
    def scope(self) -> ViewerScope:
        """Role and area scope handed to the visibility filters."""

        return ViewerScope(user_id=self.user_id, role=self.role, area_id=self.area_id)


def _require_identity_headers(
    x_ms_oid: str | None,
    x_ms_email: str | None,
    x_ms_display_name: str | None,
) -> tuple[str, str, str]:
    if not x_ms_oid or not x_ms_email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=(
                "Missing identity headers. Expected X-MS-OID and X-MS-EMAIL or enable development principal fallback."
            ),
        )

    display_name = x_ms_display_name or x_ms_email
    return x_ms_oid.strip(), x_ms_email.strip().lower(), display_name.strip()


def _resolve_identity(
    x_ms_oid: str | None,
    x_ms_email: str | None,
    x_ms_display_name: str | None,
) -> tuple[str, str, str]:
    settings = get_settings()
    if x_ms_oid and x_ms_email:
        return _require_identity_headers(x_ms_oid, x_ms_email, x_ms_display_name)

    if settings.auth_allow_dev_principal:
        return (
            settings.auth_dev_microsoft_oid.strip(),
            settings.auth_dev_email.strip().lower(),
            settings.auth_dev_display_name.strip(),
        )

    return _require_identity_headers(x_ms_oid, x_ms_email, x_ms_display_name)


def _upsert_user(db: Session, *, microsoft_oid: str, email: str, display_name: str) -> User:
    user = db.scalar(select(User).where(User.microsoft_oid == microsoft_oid))
    now = utcnow()

    if user is None:
        user = User(
            microsoft_oid=microsoft_oid,
            email=email,
            display_name=display_name,
            role=Role.USER,
            is_active=True,
            last_login_at=now,
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        db.flush()
        return user

    changed = False
    if user.email != email:
        user.email = email
        changed = True
    if user.display_name != display_name:
        user.display_name = display_name
        changed = True

    user.last_login_at = now
    if changed:
        user.updated_at = now
    db.flush()
    return user


def ensure_user_principal(
    db: Session,
    *,
    microsoft_oid: str,
    email: str,
    display_name: str,
) -> User:
    """Ensure user exists and return persisted row.

    Utility exported for tests and seed helpers.
    """

    normalized_oid = microsoft_oid.strip()
    normalized_email = email.strip().lower()
    normalized_display_name = display_name.strip() or normalized_email

    user = _upsert_user(
        db,
        microsoft_oid=normalized_oid,
        email=normalized_email,
        display_name=normalized_display_name,
    )
    db.commit()
    db.refresh(user)
    return user


def get_current_user_context(
    x_ms_oid: str | None = Header(default=None, alias="X-MS-OID"),
    x_ms_email: str | None = Header(default=None, alias="X-MS-EMAIL"),
    x_ms_display_name: str | None = Header(default=None, alias="X-MS-DISPLAY-NAME"),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve current request user with role and area.

    Users seen for the first time are created with the ``user`` role.
    Deactivated users are rejected before any route runs.
    """

    microsoft_oid, email, display_name = _resolve_identity(x_ms_oid, x_ms_email, x_ms_display_name)
    user = _upsert_user(db, microsoft_oid=microsoft_oid, email=email, display_name=display_name)
    db.commit()

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated.",
        )

    return RequestUserContext(
        user_id=user.id,
        microsoft_oid=user.microsoft_oid,
        email=user.email,
        display_name=user.display_name,
        role=user.role,
        area_id=user.area_id,
        is_active=user.is_active,
    )


def has_role(context: RequestUserContext, allowed_roles: set[Role]) -> bool:
    """Check whether user holds one of the allowed roles."""

    return context.role in allowed_roles


def has_area_access(
    context: RequestUserContext,
    *,
    area_id: UUID | None,
    allowed_roles: set[Role] | None = None,
) -> bool:
    """Check area scoped access optionally constrained by allowed roles."""

    if allowed_roles is not None and context.role not in allowed_roles:
        return False
    if context.is_super_admin:
        return True
    return area_id is not None and context.area_id == area_id


def require_roles(*roles: Role):
    """Dependency factory requiring at least one provided role."""

    allowed = set(roles)

    def dependency(context: RequestUserContext = Depends(get_current_user_context)) -> RequestUserContext:
        if not has_role(context, allowed):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role permissions for this operation.",
            )
        return context

    return dependency


def ensure_area_exists(db: Session, area_id: UUID) -> Area:
    """Resolve area or raise 404."""

    area = db.scalar(select(Area).where(Area.id == area_id))
    if area is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Area not found.",
        )
    return area
