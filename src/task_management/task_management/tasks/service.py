from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from ..common.datetime_utils import duration_minutes, now_utc, parse_iso_datetime
from ..common.validators import (
    require_choice,
    require_id,
    require_max_length,
    require_non_empty,
    require_non_negative,
    require_progress,
)
from ..core.constants import MAX_RECURRING_PATTERN_LENGTH, MAX_TAG_LENGTH, MAX_TITLE_LENGTH
from ..core.enums import TaskCategory, TaskPriority, TaskStatus
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.repository import UserRepository
from . import policy
from .model import NewTask, Task, TaskComment, TaskPage, TaskQuery, TimeEntry
from .policy import Caller
from .repository import TaskRepository

logger = logging.getLogger(__name__)


def _parse_tags(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        parts = value.split(",")
    elif isinstance(value, (list, tuple)):
        parts = value
    else:
        raise ValidationError("Tags must be a list of strings")

    out: list[str] = []
    seen: set[str] = set()
    for part in parts:
        if not isinstance(part, str):
            raise ValidationError("Tags must be a list of strings")
        tag = part.strip()
        # Tags are unique per task ignoring case (case-insensitive collation).
        if not tag or tag.casefold() in seen:
            continue
        seen.add(tag.casefold())
        out.append(require_max_length(tag, "Tag", MAX_TAG_LENGTH))
    return tuple(out)


def _optional_hours(value: Any, field_name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    return require_non_negative(value, field_name)


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("Expected a text value")
    return value.strip() or None


def _title(value: Any) -> str:
    return require_max_length(require_non_empty(value, "Title"), "Title", MAX_TITLE_LENGTH)


def _recurring_pattern(value: Any) -> Optional[str]:
    pattern = _optional_text(value)
    if pattern is not None:
        require_max_length(pattern, "Recurring pattern", MAX_RECURRING_PATTERN_LENGTH)
    return pattern


class TaskService:
    """Task use cases. Existence is always checked before relationship authorization."""

    def __init__(
        self,
        tasks: TaskRepository,
        users: UserRepository,
        *,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._tasks = tasks
        self._users = users
        self._clock = clock

    def _require_task(self, task_id: int) -> Task:
        task = self._tasks.get_by_id(int(task_id))
        if not task:
            raise NotFoundError("Task not found")
        return task

    def _require_assignee(self, value: Any) -> int:
        user_id = require_id(value, "assignedTo")
        if not self._users.get_by_id(user_id):
            raise NotFoundError("Assigned user not found")
        return user_id

    def _require_dependencies(self, value: Any, *, task_id: Optional[int] = None) -> tuple[int, ...]:
        if value is None:
            return ()
        if not isinstance(value, (list, tuple)):
            raise ValidationError("Dependencies must be a list of task IDs")

        ids: list[int] = []
        for raw in value:
            dep_id = require_id(raw, "dependency")
            if dep_id == task_id:
                raise ValidationError("A task cannot depend on itself")
            if dep_id not in ids:
                ids.append(dep_id)

        missing = set(ids) - self._tasks.existing_ids(ids) if ids else set()
        if missing:
            raise ValidationError(f"Dependency task not found: {', '.join(str(i) for i in sorted(missing))}")
        return tuple(ids)

    # ---- reads ----
    def list_tasks(self, query: TaskQuery) -> TaskPage:
        return self._tasks.find(query)

    def get_task(self, caller: Caller, task_id: int) -> Task:
        task = self._require_task(task_id)
        if not policy.can_read(caller, task):
            raise AuthorizationError("Access denied - You can only view tasks assigned to you")
        return task

    # ---- writes ----
    def create_task(self, caller: Caller, data: Mapping[str, Any]) -> Task:
        if not policy.can_create(caller):
            raise AuthorizationError("Access denied")

        title = _title(data.get("title"))
        description = require_non_empty(data.get("description"), "Description")
        assignee_raw = data.get("assigned_to")
        require_id(assignee_raw, "assignedTo")
        due_date = parse_iso_datetime(data.get("due_date"), "due date")
        priority = require_choice(data.get("priority"), TaskPriority, "priority")
        category = require_choice(data.get("category"), TaskCategory, "category")
        estimated_hours = _optional_hours(data.get("estimated_hours"), "Estimated hours")
        tags = _parse_tags(data.get("tags"))
        is_recurring = bool(data.get("is_recurring", False))
        recurring_pattern = _recurring_pattern(data.get("recurring_pattern")) if is_recurring else None

        assigned_to = self._require_assignee(assignee_raw)
        dependencies = self._require_dependencies(data.get("dependencies"))

        task_id = self._tasks.create(
            NewTask(
                title=title,
                description=description,
                assigned_to=assigned_to,
                assigned_by=caller.user_id,
                priority=priority,
                category=category,
                due_date=due_date,
                created_at=self._clock(),
                estimated_hours=estimated_hours,
                tags=tags,
                dependencies=dependencies,
                is_recurring=is_recurring,
                recurring_pattern=recurring_pattern,
            )
        )
        self._users.add_assigned_task(assigned_to, task_id)
        logger.info("Task %s created by user %s for user %s", task_id, caller.user_id, assigned_to)
        return self._require_task(task_id)

    def _clean_changes(self, task: Task, changes: Mapping[str, Any]) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for key, value in changes.items():
            if key == "title":
                out[key] = _title(value)
            elif key == "description":
                out[key] = require_non_empty(value, "Description")
            elif key == "priority":
                out[key] = require_choice(value, TaskPriority, "priority")
            elif key == "category":
                out[key] = require_choice(value, TaskCategory, "category")
            elif key == "status":
                out[key] = require_choice(value, TaskStatus, "status")
            elif key == "progress":
                out[key] = require_progress(value)
            elif key == "assigned_to":
                out[key] = self._require_assignee(value)
            elif key == "due_date":
                out[key] = parse_iso_datetime(value, "due date")
            elif key == "estimated_hours":
                out[key] = _optional_hours(value, "Estimated hours")
            elif key == "actual_hours":
                out[key] = require_non_negative(value, "Actual hours")
            elif key == "tags":
                out[key] = _parse_tags(value)
            elif key == "dependencies":
                out[key] = self._require_dependencies(value, task_id=task.task_id)
            elif key == "completion_reason":
                out[key] = _optional_text(value)
        return out

    def update_task(self, caller: Caller, task_id: int, changes: Mapping[str, Any]) -> Task:
        task = self._require_task(task_id)
        if not policy.can_update(caller, task):
            raise AuthorizationError("Access denied - You can only update tasks assigned to you")

        permitted = policy.permitted_updates(caller, task, changes)
        if permitted.get("status") == TaskStatus.COMPLETED:
            # Completion sets progress itself; whatever was sent is ignored.
            permitted.pop("progress", None)
        now = self._clock()
        updates = policy.apply_completion(task, self._clean_changes(task, permitted), now=now)

        if updates:
            self._tasks.update(task.task_id, updates, updated_at=now)
            new_assignee = updates.get("assigned_to")
            if new_assignee is not None and new_assignee != task.assigned_to:
                self._users.remove_assigned_task(task.assigned_to, task.task_id)
                self._users.add_assigned_task(new_assignee, task.task_id)
        return self._require_task(task.task_id)

    def add_comment(self, caller: Caller, task_id: int, text: Any) -> tuple[TaskComment, ...]:
        comment = require_non_empty(text, "Comment")
        task = self._require_task(task_id)
        if not policy.can_comment(caller, task):
            raise AuthorizationError(
                "Access denied - You can only comment on tasks assigned to you or created by you"
            )

        self._tasks.add_comment(task.task_id, user_id=caller.user_id, text=comment, created_at=self._clock())
        return self._require_task(task.task_id).comments

    def add_time_entry(
        self,
        caller: Caller,
        task_id: int,
        *,
        start_time: Any,
        end_time: Any,
        description: Any = None,
    ) -> tuple[TimeEntry, ...]:
        start = parse_iso_datetime(start_time, "start time")
        end = parse_iso_datetime(end_time, "end time")
        if description is not None and not isinstance(description, str):
            raise ValidationError("Description must be text")

        task = self._require_task(task_id)
        if not policy.can_track_time(caller, task):
            raise AuthorizationError("You can only track time for your own tasks")

        duration = duration_minutes(start, end)
        if duration <= 0:
            raise ValidationError("End time must be after start time")

        self._tasks.add_time_entry(
            task.task_id,
            start_time=start,
            end_time=end,
            duration=duration,
            work_date=start.date(),
            description=_optional_text(description),
        )
        return self._require_task(task.task_id).time_tracking

    def delete_task(self, caller: Caller, task_id: int) -> None:
        task = self._require_task(task_id)
        if not policy.can_delete(caller):
            raise AuthorizationError("Access denied")

        self._users.remove_assigned_task(task.assigned_to, task.task_id)
        if not self._tasks.delete(task.task_id):
            raise NotFoundError("Task not found")
        logger.info("Task %s deleted by user %s", task.task_id, caller.user_id)
