"""Administration endpoints for areas and user roles."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from timeflow.core.auth import RequestUserContext, require_roles
from timeflow.db.dependencies import get_db_session
from timeflow.domain.records import Role
from timeflow.services.admin_service import AdminService, AreaCreateData, AreaUpdateData, UserUpdateData

router = APIRouter(prefix="/admin", tags=["admin"])


class AreaCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)


class AreaUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    is_active: bool | None = None


class UserUpdatePayload(BaseModel):
    role: Role | None = None
    area_id: UUID | None = None
    is_active: bool | None = None


@router.get("/areas")
def list_areas(
    _: RequestUserContext = Depends(require_roles(Role.ADMIN, Role.SUPER_ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = AdminService(db)
    return {"items": [service.serialize_area(area) for area in service.list_areas()]}


@router.post("/areas", status_code=status.HTTP_201_CREATED)
def create_area(
    payload: AreaCreatePayload,
    context: RequestUserContext = Depends(require_roles(Role.SUPER_ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = AdminService(db)
    area = service.create_area(
        context=context,
        data=AreaCreateData(name=payload.name, description=payload.description),
    )
    return service.serialize_area(area)


@router.patch("/areas/{area_id}")
def update_area(
    area_id: UUID,
    payload: AreaUpdatePayload,
    context: RequestUserContext = Depends(require_roles(Role.SUPER_ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = AdminService(db)
    area = service.update_area(
        context=context,
        area_id=area_id,
        data=AreaUpdateData(name=payload.name, description=payload.description, is_active=payload.is_active),
    )
    return service.serialize_area(area)


@router.patch("/users/{user_id}")
def update_user(
    user_id: UUID,
    payload: UserUpdatePayload,
    context: RequestUserContext = Depends(require_roles(Role.ADMIN, Role.SUPER_ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    data = UserUpdateData(role=payload.role, is_active=payload.is_active)
    # An explicit null clears the area; an omitted field keeps it.
    if "area_id" in payload.model_fields_set:
        data.area_id = payload.area_id
    service = AdminService(db)
    user = service.update_user(context=context, user_id=user_id, data=data)
    return service.serialize_user(user)
