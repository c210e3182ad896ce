from __future__ import annotations

import uuid
from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from timeflow.core.auth import ensure_user_principal
from timeflow.domain.records import ProcessActivityStatus, Role
from timeflow.models.entities import Process, ProcessActivity, ProcessAssignment, Project, Task, User, utcnow


def _headers(oid: str, email: str, display_name: str) -> dict[str, str]:
    return {
        "X-MS-OID": oid,
        "X-MS-EMAIL": email,
        "X-MS-DISPLAY-NAME": display_name,
    }


def _create_user(db: Session, *, oid: str, role: Role = Role.USER) -> User:
    user = ensure_user_principal(db, microsoft_oid=oid, email=f"{oid}@test.local", display_name=oid.title())
    user.role = role
    db.commit()
    db.refresh(user)
    return user


def _user_headers(user: User) -> dict[str, str]:
    return _headers(user.microsoft_oid, user.email, user.display_name)


def _create_project_with_task(db: Session, *, creator: User) -> tuple[Project, Task]:
    now = utcnow()
    project = Project(
        name="Portal",
        creator_id=creator.id,
        estimated_hours=Decimal("10"),
        used_hours=Decimal("0"),
        created_at=now,
        updated_at=now,
    )
    db.add(project)
    db.flush()
    task = Task(
        project_id=project.id,
        name="Login page",
        creator_id=creator.id,
        estimated_hours=Decimal("3"),
        used_hours=Decimal("0"),
        created_at=now,
        updated_at=now,
    )
    db.add(task)
    db.commit()
    db.refresh(project)
    db.refresh(task)
    return project, task


def _create_process(db: Session, *, creator: User, name: str = "Onboarding") -> Process:
    now = utcnow()
    process = Process(
        name=name,
        creator_id=creator.id,
        estimated_hours=Decimal("12"),
        used_hours=Decimal("0"),
        created_at=now,
        updated_at=now,
    )
    db.add(process)
    db.commit()
    db.refresh(process)
    return process


def _create_step(
    db: Session,
    process: Process,
    name: str,
    *,
    depends_on: ProcessActivity | None = None,
    status: ProcessActivityStatus = ProcessActivityStatus.PENDING,
) -> ProcessActivity:
    now = utcnow()
    step = ProcessActivity(
        process_id=process.id,
        name=name,
        status=status,
        estimated_hours=Decimal("2"),
        used_hours=Decimal("0"),
        depends_on_id=depends_on.id if depends_on is not None else None,
        created_at=now,
        updated_at=now,
    )
    db.add(step)
    db.commit()
    db.refresh(step)
    return step


def test_project_status_moves_between_any_legal_states(client: TestClient, db_session: Session) -> None:
    owner = _create_user(db_session, oid="ana")
    project, _ = _create_project_with_task(db_session, creator=owner)
    headers = _user_headers(owner)

    started = client.patch(f"/api/v1/projects/{project.id}/status", headers=headers, json={"status": "in_progress"})
    assert started.status_code == 200
    assert started.json() == {
        "entity": "project",
        "id": str(project.id),
        "previous_status": "unassigned",
        "status": "in_progress",
    }

    finished = client.patch(f"/api/v1/projects/{project.id}/status", headers=headers, json={"status": "completed"})
    assert finished.status_code == 200

    reopened = client.patch(f"/api/v1/projects/{project.id}/status", headers=headers, json={"status": "unassigned"})
    assert reopened.status_code == 200
    assert reopened.json()["previous_status"] == "completed"


def test_status_changes_reject_unknown_states_and_strangers(client: TestClient, db_session: Session) -> None:
    owner = _create_user(db_session, oid="ana")
    stranger = _create_user(db_session, oid="luis")
    super_admin = _create_user(db_session, oid="root", role=Role.SUPER_ADMIN)
    project, task = _create_project_with_task(db_session, creator=owner)

    unknown = client.patch(
        f"/api/v1/projects/{project.id}/status",
        headers=_user_headers(owner),
        json={"status": "archived"},
    )
    assert unknown.status_code == 422

    forbidden = client.patch(
        f"/api/v1/tasks/{task.id}/status",
        headers=_user_headers(stranger),
        json={"status": "in_progress"},
    )
    assert forbidden.status_code == 403

    by_super_admin = client.patch(
        f"/api/v1/tasks/{task.id}/status",
        headers=_user_headers(super_admin),
        json={"status": "completed"},
    )
    assert by_super_admin.status_code == 200
    assert by_super_admin.json()["previous_status"] == "backlog"

    missing = client.patch(
        f"/api/v1/tasks/{uuid.uuid4()}/status",
        headers=_user_headers(owner),
        json={"status": "completed"},
    )
    assert missing.status_code == 404


def test_process_status_uses_its_own_vocabulary(client: TestClient, db_session: Session) -> None:
    owner = _create_user(db_session, oid="ana")
    process = _create_process(db_session, creator=owner)
    headers = _user_headers(owner)

    paused = client.patch(f"/api/v1/processes/{process.id}/status", headers=headers, json={"status": "En Pausa"})
    assert paused.status_code == 200
    assert paused.json()["previous_status"] == "Activo"

    english = client.patch(f"/api/v1/processes/{process.id}/status", headers=headers, json={"status": "paused"})
    assert english.status_code == 422


def test_process_activity_waits_for_dependencies(client: TestClient, db_session: Session) -> None:
    owner = _create_user(db_session, oid="ana")
    process = _create_process(db_session, creator=owner)
    first = _create_step(db_session, process, "Collect documents")
    second = _create_step(db_session, process, "Create accounts", depends_on=first)
    headers = _user_headers(owner)

    blocked_start = client.patch(
        f"/api/v1/process-activities/{second.id}/status",
        headers=headers,
        json={"status": "in_progress"},
    )
    assert blocked_start.status_code == 409
    assert blocked_start.json()["detail"]["pending_dependency_ids"] == [str(first.id)]

    can_start = client.get(f"/api/v1/process-activities/{second.id}/can-start", headers=headers)
    assert can_start.json() == {
        "activity_id": str(second.id),
        "can_start": False,
        "pending_dependency_ids": [str(first.id)],
    }

    assigned = client.patch(
        f"/api/v1/process-activities/{second.id}/status",
        headers=headers,
        json={"status": "assigned"},
    )
    assert assigned.status_code == 200

    done = client.patch(
        f"/api/v1/process-activities/{first.id}/status",
        headers=headers,
        json={"status": "completed"},
    )
    assert done.status_code == 200

    started = client.patch(
        f"/api/v1/process-activities/{second.id}/status",
        headers=headers,
        json={"status": "in_progress"},
    )
    assert started.status_code == 200
    assert client.get(f"/api/v1/process-activities/{second.id}/can-start", headers=headers).json()["can_start"]


def test_process_activity_status_aliases(client: TestClient, db_session: Session) -> None:
    owner = _create_user(db_session, oid="ana")
    process = _create_process(db_session, creator=owner)
    step = _create_step(db_session, process, "Review")

    response = client.patch(
        f"/api/v1/process-activities/{step.id}/status",
        headers=_user_headers(owner),
        json={"status": "blocked"},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "paused"


def test_process_activity_permissions_follow_process(client: TestClient, db_session: Session) -> None:
    owner = _create_user(db_session, oid="ana")
    member = _create_user(db_session, oid="luis")
    stranger = _create_user(db_session, oid="pedro")
    process = _create_process(db_session, creator=owner)
    db_session.add(ProcessAssignment(process_id=process.id, user_id=member.id))
    db_session.commit()
    step = _create_step(db_session, process, "Review")

    by_member = client.patch(
        f"/api/v1/process-activities/{step.id}/status",
        headers=_user_headers(member),
        json={"status": "in_progress"},
    )
    assert by_member.status_code == 200

    by_stranger = client.patch(
        f"/api/v1/process-activities/{step.id}/status",
        headers=_user_headers(stranger),
        json={"status": "completed"},
    )
    assert by_stranger.status_code == 403
    hidden = client.get(f"/api/v1/process-activities/{step.id}/can-start", headers=_user_headers(stranger))
    assert hidden.status_code == 403


def test_dependency_chain_and_blocked_activities(client: TestClient, db_session: Session) -> None:
    owner = _create_user(db_session, oid="ana")
    process = _create_process(db_session, creator=owner)
    first = _create_step(db_session, process, "First")
    second = _create_step(db_session, process, "Second", depends_on=first)
    third = _create_step(db_session, process, "Third", depends_on=second)
    headers = _user_headers(owner)

    chain = client.get(f"/api/v1/process-activities/{third.id}/dependency-chain", headers=headers)
    assert chain.status_code == 200
    assert [item["name"] for item in chain.json()["items"]] == ["First", "Second", "Third"]

    blocked = client.get(f"/api/v1/process-activities/{first.id}/blocked", headers=headers)
    assert blocked.status_code == 200
    assert [item["name"] for item in blocked.json()["items"]] == ["Second"]

    pending = client.get(f"/api/v1/process-activities/{third.id}/can-start", headers=headers)
    assert pending.json()["pending_dependency_ids"] == [str(second.id), str(first.id)]


def test_set_dependency_rejects_cycles_and_foreign_processes(client: TestClient, db_session: Session) -> None:
    owner = _create_user(db_session, oid="ana")
    process = _create_process(db_session, creator=owner)
    other_process = _create_process(db_session, creator=owner, name="Offboarding")
    first = _create_step(db_session, process, "First")
    second = _create_step(db_session, process, "Second", depends_on=first)
    third = _create_step(db_session, process, "Third")
    foreign = _create_step(db_session, other_process, "Foreign")
    headers = _user_headers(owner)

    cycle = client.put(
        f"/api/v1/process-activities/{first.id}/dependency",
        headers=headers,
        json={"depends_on_id": str(second.id)},
    )
    assert cycle.status_code == 409

    itself = client.put(
        f"/api/v1/process-activities/{first.id}/dependency",
        headers=headers,
        json={"depends_on_id": str(first.id)},
    )
    assert itself.status_code == 409

    cross_process = client.put(
        f"/api/v1/process-activities/{first.id}/dependency",
        headers=headers,
        json={"depends_on_id": str(foreign.id)},
    )
    assert cross_process.status_code == 422

    linked = client.put(
        f"/api/v1/process-activities/{third.id}/dependency",
        headers=headers,
        json={"depends_on_id": str(second.id)},
    )
    assert linked.status_code == 200
    assert linked.json()["depends_on_id"] == str(second.id)

    cleared = client.put(f"/api/v1/process-activities/{second.id}/dependency", headers=headers, json={})
    assert cleared.status_code == 200
    assert cleared.json()["depends_on_id"] is None


def test_activity_assignee_can_relink_dependency(client: TestClient, db_session: Session) -> None:
    owner = _create_user(db_session, oid="ana")
    assignee = _create_user(db_session, oid="luis")
    stranger = _create_user(db_session, oid="pedro")
    process = _create_process(db_session, creator=owner)
    first = _create_step(db_session, process, "First")
    second = _create_step(db_session, process, "Second")
    second.assigned_user_id = assignee.id
    db_session.commit()

    linked = client.put(
        f"/api/v1/process-activities/{second.id}/dependency",
        headers=_user_headers(assignee),
        json={"depends_on_id": str(first.id)},
    )
    assert linked.status_code == 200
    assert linked.json()["depends_on_id"] == str(first.id)

    can_start = client.get(f"/api/v1/process-activities/{second.id}/can-start", headers=_user_headers(assignee))
    assert can_start.status_code == 200

    by_stranger = client.put(
        f"/api/v1/process-activities/{second.id}/dependency",
        headers=_user_headers(stranger),
        json={},
    )
    assert by_stranger.status_code == 403

    other_step = client.put(
        f"/api/v1/process-activities/{first.id}/dependency",
        headers=_user_headers(assignee),
        json={},
    )
    assert other_step.status_code == 403
