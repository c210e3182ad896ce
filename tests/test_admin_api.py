from __future__ import annotations

import uuid

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from timeflow.core.auth import ensure_user_principal
from timeflow.domain.records import Role
from timeflow.models.entities import Area, User, utcnow


def _headers(oid: str, email: str, display_name: str) -> dict[str, str]:
    return {
        "X-MS-OID": oid,
        "X-MS-EMAIL": email,
        "X-MS-DISPLAY-NAME": display_name,
    }


def _create_area(db: Session, name: str) -> Area:
    now = utcnow()
    area = Area(name=name, is_active=True, created_at=now, updated_at=now)
    db.add(area)
    db.commit()
    db.refresh(area)
    return area


def _create_user(db: Session, *, oid: str, role: Role = Role.USER, area_id: uuid.UUID | None = None) -> User:
    user = ensure_user_principal(db, microsoft_oid=oid, email=f"{oid}@test.local", display_name=oid.title())
    user.role = role
    user.area_id = area_id
    db.commit()
    db.refresh(user)
    return user


def _user_headers(user: User) -> dict[str, str]:
    return _headers(user.microsoft_oid, user.email, user.display_name)


def test_first_request_creates_user_profile(client: TestClient) -> None:
    response = client.get("/api/v1/me", headers=_headers("new-oid", "New.Person@Test.Local", "New Person"))

    assert response.status_code == 200
    body = response.json()
    assert body["email"] == "new.person@test.local"
    assert body["role"] == "user"
    assert body["area_id"] is None
    assert body["work_schedule"] is None


def test_deactivated_user_is_rejected(client: TestClient, db_session: Session) -> None:
    user = _create_user(db_session, oid="ana")
    user.is_active = False
    db_session.commit()

    response = client.get("/api/v1/me", headers=_user_headers(user))

    assert response.status_code == 403


def test_work_schedule_is_normalized_and_saved(client: TestClient, db_session: Session) -> None:
    user = _create_user(db_session, oid="ana")

    response = client.put(
        "/api/v1/me/work-schedule",
        headers=_user_headers(user),
        json={
            "work_schedule": {
                "Lunes": {"enabled": True, "start": "08:00", "end": "17:00"},
                "sábado": {"enabled": False, "start": "20:00", "end": "08:00"},
            },
            "lunch_break": {"enabled": True, "start": "13:00", "end": "14:00"},
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["work_schedule"] == {
        "monday": {"enabled": True, "start": "08:00", "end": "17:00"},
        "saturday": {"enabled": False, "start": "20:00", "end": "08:00"},
    }
    assert body["lunch_break"] == {"enabled": True, "start": "13:00", "end": "14:00"}


def test_work_schedule_rejects_malformed_days(client: TestClient, db_session: Session) -> None:
    user = _create_user(db_session, oid="ana")
    headers = _user_headers(user)

    for schedule in (
        {"monday": {"enabled": True, "start": "18:00", "end": "09:00"}},
        {"monday": {"enabled": True, "start": "25:00", "end": "26:00"}},
        {"monday": {"enabled": True, "start": "9am", "end": "5pm"}},
        {"funday": {"enabled": True, "start": "09:00", "end": "17:00"}},
    ):
        response = client.put("/api/v1/me/work-schedule", headers=headers, json={"work_schedule": schedule})
        assert response.status_code == 422

    reversed_lunch = client.put(
        "/api/v1/me/work-schedule",
        headers=headers,
        json={
            "work_schedule": {"monday": {"enabled": True, "start": "09:00", "end": "17:00"}},
            "lunch_break": {"enabled": True, "start": "14:00", "end": "13:00"},
        },
    )
    assert reversed_lunch.status_code == 422

    db_session.refresh(user)
    assert user.work_schedule is None


def test_area_management_is_super_admin_only(client: TestClient, db_session: Session) -> None:
    area = _create_area(db_session, "Desarrollo")
    user = _create_user(db_session, oid="ana", area_id=area.id)
    admin = _create_user(db_session, oid="marta", role=Role.ADMIN, area_id=area.id)
    super_admin = _create_user(db_session, oid="root", role=Role.SUPER_ADMIN)

    assert client.get("/api/v1/admin/areas", headers=_user_headers(user)).status_code == 403
    assert client.post("/api/v1/admin/areas", headers=_user_headers(admin), json={"name": "QA"}).status_code == 403

    created = client.post(
        "/api/v1/admin/areas",
        headers=_user_headers(super_admin),
        json={"name": "QA", "description": "Quality"},
    )
    assert created.status_code == 201
    assert created.json()["name"] == "QA"

    duplicate = client.post("/api/v1/admin/areas", headers=_user_headers(super_admin), json={"name": " qa "})
    assert duplicate.status_code == 409

    renamed = client.patch(
        f"/api/v1/admin/areas/{created.json()['id']}",
        headers=_user_headers(super_admin),
        json={"name": "Calidad", "is_active": False},
    )
    assert renamed.status_code == 200
    assert renamed.json() == {
        "id": created.json()["id"],
        "name": "Calidad",
        "description": "Quality",
        "is_active": False,
    }

    clash = client.patch(
        f"/api/v1/admin/areas/{created.json()['id']}",
        headers=_user_headers(super_admin),
        json={"name": "desarrollo"},
    )
    assert clash.status_code == 409

    listed = client.get("/api/v1/admin/areas", headers=_user_headers(admin))
    assert listed.status_code == 200
    assert [item["name"] for item in listed.json()["items"]] == ["Calidad", "Desarrollo"]

    missing = client.patch(
        f"/api/v1/admin/areas/{uuid.uuid4()}",
        headers=_user_headers(super_admin),
        json={"name": "Ghost"},
    )
    assert missing.status_code == 404


def test_super_admin_assigns_roles_and_areas(client: TestClient, db_session: Session) -> None:
    area = _create_area(db_session, "Desarrollo")
    user = _create_user(db_session, oid="ana")
    super_admin = _create_user(db_session, oid="root", role=Role.SUPER_ADMIN)
    headers = _user_headers(super_admin)

    without_area = client.patch(f"/api/v1/admin/users/{user.id}", headers=headers, json={"role": "admin"})
    assert without_area.status_code == 422

    unknown_area = client.patch(
        f"/api/v1/admin/users/{user.id}",
        headers=headers,
        json={"area_id": str(uuid.uuid4())},
    )
    assert unknown_area.status_code == 404

    promoted = client.patch(
        f"/api/v1/admin/users/{user.id}",
        headers=headers,
        json={"role": "admin", "area_id": str(area.id)},
    )
    assert promoted.status_code == 200
    assert promoted.json()["role"] == "admin"
    assert promoted.json()["area_id"] == str(area.id)

    cleared = client.patch(
        f"/api/v1/admin/users/{user.id}",
        headers=headers,
        json={"role": "user", "area_id": None},
    )
    assert cleared.status_code == 200
    assert cleared.json()["area_id"] is None

    missing = client.patch(f"/api/v1/admin/users/{uuid.uuid4()}", headers=headers, json={"is_active": False})
    assert missing.status_code == 404


def test_admin_manages_only_own_area_users(client: TestClient, db_session: Session) -> None:
    area = _create_area(db_session, "Desarrollo")
    other_area = _create_area(db_session, "Soporte")
    admin = _create_user(db_session, oid="marta", role=Role.ADMIN, area_id=area.id)
    colleague = _create_user(db_session, oid="ana", area_id=area.id)
    outsider = _create_user(db_session, oid="pedro", area_id=other_area.id)
    headers = _user_headers(admin)

    deactivated = client.patch(f"/api/v1/admin/users/{colleague.id}", headers=headers, json={"is_active": False})
    assert deactivated.status_code == 200
    assert deactivated.json()["is_active"] is False

    promote = client.patch(f"/api/v1/admin/users/{colleague.id}", headers=headers, json={"role": "superadmin"})
    assert promote.status_code == 403

    move = client.patch(
        f"/api/v1/admin/users/{colleague.id}",
        headers=headers,
        json={"area_id": str(other_area.id)},
    )
    assert move.status_code == 403

    foreign = client.patch(f"/api/v1/admin/users/{outsider.id}", headers=headers, json={"is_active": False})
    assert foreign.status_code == 403

    by_user = client.patch(
        f"/api/v1/admin/users/{outsider.id}",
        headers=_user_headers(colleague),
        json={"is_active": True},
    )
    assert by_user.status_code == 403
