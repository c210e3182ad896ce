"""Status transitions and process activity dependencies."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from timeflow.core.auth import RequestUserContext
from timeflow.domain.errors import DependencyCycleError
from timeflow.domain.records import ProcessActivityRecord, ProcessRecord
from timeflow.domain.status_policy import (
    DependencyGraph,
    EntityKind,
    TransitionOutcome,
    check_transition,
    parse_status,
)
from timeflow.domain.visibility import can_edit, is_visible
from timeflow.models.entities import Process, ProcessActivity, Project, Task, utcnow
from timeflow.repositories.tracking_repository import (
    TrackingRepository,
    to_process_activity_record,
    to_project_record,
)
from timeflow.services.common import hours, http_error, uuid_text

logger = logging.getLogger(__name__)

OUTCOME_STATUS_CODES = {
    TransitionOutcome.ILLEGAL_STATE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    TransitionOutcome.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    TransitionOutcome.DEPENDENCIES_PENDING: status.HTTP_409_CONFLICT,
}


@dataclass(frozen=True)
class ProcessActivityAccess:
    """Process activity seen through its parent process's area and owners."""

    id: UUID
    area_id: UUID | None
    owner_ids: frozenset[UUID]

    @classmethod
    def of(cls, row: ProcessActivity, process: ProcessRecord) -> ProcessActivityAccess:
        owners = set(process.owner_ids)
        if row.assigned_user_id is not None:
            owners.add(row.assigned_user_id)
        return cls(id=row.id, area_id=process.area_id, owner_ids=frozenset(owners))


class WorkflowService:
    """Permission gated status moves over projects, tasks and processes."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = TrackingRepository(db)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_process_activity(row: ProcessActivityRecord) -> dict[str, object]:
        return {
            "id": str(row.id),
            "process_id": str(row.process_id),
            "name": row.name,
            "status": row.status.value,
            "estimated_hours": hours(row.estimated_hours),
            "used_hours": hours(row.used_hours),
            "depends_on_id": uuid_text(row.depends_on_id),
            "assigned_user_id": uuid_text(row.assigned_user_id),
        }

    @staticmethod
    def serialize_status_change(kind: EntityKind, entity_id: UUID, previous: str, current: str) -> dict[str, object]:
        return {
            "entity": kind.value,
            "id": str(entity_id),
            "previous_status": previous,
            "status": current,
        }

    # ---------- Loading ----------
    def _process_for(self, process_id: UUID) -> ProcessRecord:
        process = self.repo.process_record(process_id)
        if process is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Process not found.")
        return process

    def _ensure_process_activity(
        self,
        *,
        context: RequestUserContext,
        activity_id: UUID,
        edit: bool = False,
    ) -> tuple[ProcessActivity, ProcessRecord]:
        row = self.repo.get_process_activity(activity_id)
        if row is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Process activity not found.")
        process = self._process_for(row.process_id)
        access = ProcessActivityAccess.of(row, process)
        allowed = can_edit(context.scope, access) if edit else is_visible(context.scope, access)
        if not allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions for this process.",
            )
        return row, process

    def _graph(self, process_id: UUID) -> DependencyGraph:
        return DependencyGraph(self.repo.process_activity_records(process_id=process_id))

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Status change conflicts with existing data.",
            ) from exc

    # ---------- Status transitions ----------
    def _apply(
        self,
        *,
        context: RequestUserContext,
        kind: EntityKind,
        row: Project | Task | Process | ProcessActivity,
        permission_entity: object,
        new_status: str,
        graph: DependencyGraph | None = None,
    ) -> dict[str, object]:
        previous = row.status.value
        try:
            decision = check_transition(context.scope, kind, permission_entity, previous, new_status, graph=graph)
        except DependencyCycleError as exc:
            raise http_error(exc) from exc
        if not decision.allowed:
            detail: object = decision.detail
            if decision.pending_dependency_ids:
                detail = {
                    "message": decision.detail,
                    "pending_dependency_ids": [str(item) for item in decision.pending_dependency_ids],
                }
            raise HTTPException(status_code=OUTCOME_STATUS_CODES[decision.outcome], detail=detail)

        target = parse_status(kind, new_status)
        row.status = target
        row.updated_at = utcnow()
        self._commit()
        logger.info(
            "User %s moved %s %s from %s to %s",
            context.user_id,
            kind.value,
            row.id,
            previous,
            target.value,
        )
        return self.serialize_status_change(kind, row.id, previous, target.value)

    def change_project_status(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        new_status: str,
    ) -> dict[str, object]:
        project = self.repo.get_project(project_id)
        if project is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
        return self._apply(
            context=context,
            kind=EntityKind.PROJECT,
            row=project,
            permission_entity=to_project_record(project),
            new_status=new_status,
        )

    def change_task_status(self, *, context: RequestUserContext, task_id: UUID, new_status: str) -> dict[str, object]:
        task = self.repo.get_task(task_id)
        record = self.repo.task_record(task_id)
        if task is None or record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found.")
        return self._apply(
            context=context,
            kind=EntityKind.TASK,
            row=task,
            permission_entity=record,
            new_status=new_status,
        )

    def change_process_status(
        self,
        *,
        context: RequestUserContext,
        process_id: UUID,
        new_status: str,
    ) -> dict[str, object]:
        process = self.repo.get_process(process_id)
        if process is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Process not found.")
        return self._apply(
            context=context,
            kind=EntityKind.PROCESS,
            row=process,
            permission_entity=self._process_for(process_id),
            new_status=new_status,
        )

    def change_process_activity_status(
        self,
        *,
        context: RequestUserContext,
        activity_id: UUID,
        new_status: str,
    ) -> dict[str, object]:
        row = self.repo.get_process_activity(activity_id)
        if row is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Process activity not found.")
        process = self._process_for(row.process_id)
        return self._apply(
            context=context,
            kind=EntityKind.PROCESS_ACTIVITY,
            row=row,
            permission_entity=ProcessActivityAccess.of(row, process),
            new_status=new_status,
            graph=self._graph(row.process_id),
        )

    # ---------- Dependency queries ----------
    def can_start(self, *, context: RequestUserContext, activity_id: UUID) -> dict[str, object]:
        row, _ = self._ensure_process_activity(context=context, activity_id=activity_id)
        graph = self._graph(row.process_id)
        try:
            pending = graph.unmet_dependencies(row.id)
        except DependencyCycleError as exc:
            raise http_error(exc) from exc
        return {
            "activity_id": str(row.id),
            "can_start": not pending,
            "pending_dependency_ids": [str(item) for item in pending],
        }

    def dependency_chain(self, *, context: RequestUserContext, activity_id: UUID) -> dict[str, object]:
        row, _ = self._ensure_process_activity(context=context, activity_id=activity_id)
        graph = self._graph(row.process_id)
        try:
            chain = graph.dependency_chain(row.id)
        except DependencyCycleError as exc:
            raise http_error(exc) from exc
        return {
            "activity_id": str(row.id),
            "items": [self.serialize_process_activity(graph.activities[item]) for item in chain],
        }

    def blocked(self, *, context: RequestUserContext, activity_id: UUID) -> dict[str, object]:
        row, _ = self._ensure_process_activity(context=context, activity_id=activity_id)
        graph = self._graph(row.process_id)
        return {
            "activity_id": str(row.id),
            "items": [self.serialize_process_activity(graph.activities[item]) for item in graph.blocked_by(row.id)],
        }

    def set_dependency(
        self,
        *,
        context: RequestUserContext,
        activity_id: UUID,
        depends_on_id: UUID | None,
    ) -> ProcessActivityRecord:
        row, _ = self._ensure_process_activity(context=context, activity_id=activity_id, edit=True)
        if depends_on_id is not None:
            target = self.repo.get_process_activity(depends_on_id)
            if target is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Dependency activity not found.")
            if target.process_id != row.process_id:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="Dependency must belong to the same process.",
                )
            graph = self._graph(row.process_id)
            graph.edges[row.id] = []
            if graph.would_create_cycle(row.id, depends_on_id):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Dependency would create a cycle.",
                )

        row.depends_on_id = depends_on_id
        row.updated_at = utcnow()
        self.db.flush()
        self._commit()
        self.db.refresh(row)
        logger.info("User %s set dependency of %s to %s", context.user_id, row.id, depends_on_id)
        return to_process_activity_record(row)

