"""ORM model package."""

from timeflow.models.entities import (
    Activity,
    Area,
    Incident,
    Process,
    ProcessActivity,
    ProcessAssignment,
    Project,
    Requirement,
    Task,
    User,
)

__all__ = [
    "Activity",
    "Area",
    "Incident",
    "Process",
    "ProcessActivity",
    "ProcessAssignment",
    "Project",
    "Requirement",
    "Task",
    "User",
]
