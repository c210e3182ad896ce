"""Legal states per entity kind and who may move an entity between them.

Every state can reach every other state of its kind; the only gates are edit
rights over the entity and, for process activities, finished dependencies.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

from timeflow.domain.errors import DependencyCycleError
from timeflow.domain.records import (
    ProcessActivityRecord,
    ProcessActivityStatus,
    ProcessStatus,
    ProjectStatus,
    TaskStatus,
    ViewerScope,
)
from timeflow.domain.visibility import can_edit


class EntityKind(str, enum.Enum):
    PROJECT = "project"
    TASK = "task"
    PROCESS = "process"
    PROCESS_ACTIVITY = "process_activity"


STATUS_ENUMS: dict[EntityKind, type[enum.Enum]] = {
    EntityKind.PROJECT: ProjectStatus,
    EntityKind.TASK: TaskStatus,
    EntityKind.PROCESS: ProcessStatus,
    EntityKind.PROCESS_ACTIVITY: ProcessActivityStatus,
}

LEGAL_STATES: dict[EntityKind, frozenset[str]] = {
    kind: frozenset(member.value for member in enum_cls) for kind, enum_cls in STATUS_ENUMS.items()
}

INITIAL_STATES: dict[EntityKind, str] = {
    EntityKind.PROJECT: ProjectStatus.UNASSIGNED.value,
    EntityKind.TASK: TaskStatus.BACKLOG.value,
    EntityKind.PROCESS: ProcessStatus.ACTIVE.value,
    EntityKind.PROCESS_ACTIVITY: ProcessActivityStatus.PENDING.value,
}

# Moving into these states means work on the activity has begun.
DEPENDENCY_GATED_STATES = frozenset({ProcessActivityStatus.IN_PROGRESS.value, ProcessActivityStatus.COMPLETED.value})


class TransitionOutcome(str, enum.Enum):
    ALLOWED = "allowed"
    ILLEGAL_STATE = "illegal_state"
    FORBIDDEN = "forbidden"
    DEPENDENCIES_PENDING = "dependencies_pending"


@dataclass(frozen=True)
class TransitionDecision:
    outcome: TransitionOutcome
    detail: str = ""
    pending_dependency_ids: tuple[UUID, ...] = ()

    @property
    def allowed(self) -> bool:
        return self.outcome is TransitionOutcome.ALLOWED


def parse_status(kind: EntityKind, value: str) -> enum.Enum | None:
    try:
        return STATUS_ENUMS[kind](value)
    except ValueError:
        return None


def is_legal_state(kind: EntityKind, value: str) -> bool:
    return parse_status(kind, value) is not None


def initial_state(kind: EntityKind) -> str:
    return INITIAL_STATES[kind]


def can_transition(
    scope: ViewerScope,
    kind: EntityKind,
    entity: object,
    from_state: str,
    to_state: str,
) -> bool:
    """Permission predicate for a status move; any legal pair is allowed to an editor."""

    if not is_legal_state(kind, from_state) or not is_legal_state(kind, to_state):
        return False
    return can_edit(scope, entity)


class DependencyGraph:
    """Adjacency map ``activity_id -> [depends_on_id, ...]`` with statuses.

    Walks are iterative and keep a visited set, so a cyclic input is reported
    instead of looping.
    """

    def __init__(self, activities: Iterable[ProcessActivityRecord]) -> None:
        self.activities: dict[UUID, ProcessActivityRecord] = {}
        self.edges: dict[UUID, list[UUID]] = {}
        for activity in activities:
            self.activities[activity.id] = activity
            self.edges[activity.id] = [activity.depends_on_id] if activity.depends_on_id is not None else []

    def add_edge(self, activity_id: UUID, depends_on_id: UUID) -> None:
        self.edges.setdefault(activity_id, [])
        if depends_on_id not in self.edges[activity_id]:
            self.edges[activity_id].append(depends_on_id)

    def dependencies_of(self, activity_id: UUID) -> list[UUID]:
        return list(self.edges.get(activity_id, []))

    def is_completed(self, activity_id: UUID) -> bool:
        activity = self.activities.get(activity_id)
        return activity is not None and activity.status is ProcessActivityStatus.COMPLETED

    def ancestors(self, activity_id: UUID) -> list[UUID]:
        """All transitive dependencies, nearest first, raising on a cycle."""

        ordered: list[UUID] = []
        seen: set[UUID] = set()
        path = [activity_id]
        stack: list[tuple[UUID, int]] = [(activity_id, 0)]
        while stack:
            current, index = stack[-1]
            deps = self.edges.get(current, [])
            if index >= len(deps):
                stack.pop()
                path.pop()
                continue
            stack[-1] = (current, index + 1)
            dep = deps[index]
            if dep in path:
                raise DependencyCycleError(path[path.index(dep):] + [dep])
            if dep in seen:
                continue
            seen.add(dep)
            ordered.append(dep)
            stack.append((dep, 0))
            path.append(dep)
        return ordered

    def unmet_dependencies(self, activity_id: UUID) -> list[UUID]:
        return [dep for dep in self.ancestors(activity_id) if not self.is_completed(dep)]

    def can_start(self, activity_id: UUID) -> bool:
        return not self.unmet_dependencies(activity_id)

    def dependency_chain(self, activity_id: UUID) -> list[UUID]:
        """Ancestors ordered root first, ending with the activity itself."""

        chain = self.ancestors(activity_id)
        chain.reverse()
        chain.append(activity_id)
        return chain

    def blocked_by(self, activity_id: UUID) -> list[UUID]:
        return [
            other_id
            for other_id, deps in self.edges.items()
            if activity_id in deps and not self.is_completed(other_id)
        ]

    def would_create_cycle(self, activity_id: UUID, depends_on_id: UUID) -> bool:
        if activity_id == depends_on_id:
            return True
        stack = [depends_on_id]
        visited: set[UUID] = set()
        while stack:
            current = stack.pop()
            if current == activity_id:
                return True
            if current in visited:
                continue
            visited.add(current)
            stack.extend(self.edges.get(current, []))
        return False

    def find_cycle(self) -> list[UUID] | None:
        for activity_id in self.edges:
            try:
                self.ancestors(activity_id)
            except DependencyCycleError as exc:
                return exc.cycle
        return None


def check_transition(
    scope: ViewerScope,
    kind: EntityKind,
    entity: object,
    from_state: str,
    to_state: str,
    *,
    graph: DependencyGraph | None = None,
) -> TransitionDecision:
    """Explain whether a status move is allowed, naming the first rule that fails."""

    if not is_legal_state(kind, to_state):
        return TransitionDecision(TransitionOutcome.ILLEGAL_STATE, f"'{to_state}' is not a valid {kind.value} status.")
    if not can_transition(scope, kind, entity, from_state, to_state):
        if not is_legal_state(kind, from_state):
            return TransitionDecision(
                TransitionOutcome.ILLEGAL_STATE, f"'{from_state}' is not a valid {kind.value} status."
            )
        return TransitionDecision(TransitionOutcome.FORBIDDEN, f"No edit rights on this {kind.value}.")

    target = parse_status(kind, to_state)
    if (
        kind is EntityKind.PROCESS_ACTIVITY
        and graph is not None
        and target is not None
        and target.value in DEPENDENCY_GATED_STATES
    ):
        activity_id = getattr(entity, "id")
        pending = graph.unmet_dependencies(activity_id)
        if pending:
            return TransitionDecision(
                TransitionOutcome.DEPENDENCIES_PENDING,
                "Dependencies are not completed yet.",
                pending_dependency_ids=tuple(pending),
            )
    return TransitionDecision(TransitionOutcome.ALLOWED)
