"""Task access policy.

Pure decisions over (caller, task): who may read, create, update which
fields, comment, track time, delete, and view reports. Nothing here touches
storage; TaskService consults these functions and raises on a denial.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from ..core.enums import MANAGER_ROLES, Role, TaskStatus
from .model import Task


@dataclass(frozen=True)
class Caller:
    """Authenticated actor, passed explicitly into every policy call."""

    user_id: int
    role: Role

    @property
    def is_manager(self) -> bool:
        return self.role in MANAGER_ROLES


class Relation(str, Enum):
    MANAGER = "manager"
    ASSIGNEE = "assignee"
    NONE = "none"


EDITABLE_FIELDS: dict[Relation, frozenset[str]] = {
    Relation.MANAGER: frozenset(
        {
            "title",
            "description",
            "priority",
            "assigned_to",
            "due_date",
            "estimated_hours",
            "category",
            "tags",
            "status",
            "progress",
            "dependencies",
            "completion_reason",
        }
    ),
    Relation.ASSIGNEE: frozenset({"status", "progress", "actual_hours", "completion_reason"}),
    Relation.NONE: frozenset(),
}


def relation_to(caller: Caller, task: Task) -> Relation:
    if caller.is_manager:
        return Relation.MANAGER
    if task.assigned_to == caller.user_id:
        return Relation.ASSIGNEE
    return Relation.NONE


def editable_fields(caller: Caller, task: Task) -> frozenset[str]:
    return EDITABLE_FIELDS[relation_to(caller, task)]


def permitted_updates(caller: Caller, task: Task, requested: Mapping[str, Any]) -> dict[str, Any]:
    """Keep only the requested keys the caller may change; the rest are dropped."""
    allowed = editable_fields(caller, task)
    return {key: value for key, value in requested.items() if key in allowed}


def apply_completion(task: Task, updates: Mapping[str, Any], *, now: datetime) -> dict[str, Any]:
    """Completing a task forces progress to 100 and stamps completed_at on the transition."""
    out = dict(updates)
    if out.get("status") == TaskStatus.COMPLETED:
        out["progress"] = 100
        if task.status != TaskStatus.COMPLETED or task.completed_at is None:
            out["completed_at"] = now
    return out


def can_read(caller: Caller, task: Task) -> bool:
    return caller.is_manager or task.assigned_to == caller.user_id


def can_update(caller: Caller, task: Task) -> bool:
    return relation_to(caller, task) != Relation.NONE


def can_create(caller: Caller) -> bool:
    return caller.is_manager


def can_comment(caller: Caller, task: Task) -> bool:
    return caller.is_manager or caller.user_id in (task.assigned_to, task.assigned_by)


def can_track_time(caller: Caller, task: Task) -> bool:
    # Assignee only: managers get no override here, unlike comments and updates.
    return task.assigned_to == caller.user_id


def can_delete(caller: Caller) -> bool:
    return caller.role == Role.ADMIN


def can_view_reports(caller: Caller) -> bool:
    return caller.is_manager
