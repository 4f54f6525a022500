from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from .model import Task, TaskComment, TimeEntry, UserRef


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def user_ref_to_dict(ref: Optional[UserRef]) -> Optional[dict]:
    if ref is None:
        return None
    out = {"user_id": ref.user_id, "name": ref.name, "email": ref.email}
    if ref.role is not None:
        out["role"] = ref.role.value
    if ref.department is not None:
        out["department"] = ref.department
    return out


def comment_to_dict(comment: TaskComment) -> dict:
    return {
        "comment_id": comment.comment_id,
        "user": user_ref_to_dict(comment.author) or {"user_id": comment.user_id},
        "comment": comment.text,
        "created_at": _iso(comment.created_at),
    }


def time_entry_to_dict(entry: TimeEntry) -> dict:
    return {
        "entry_id": entry.entry_id,
        "start_time": _iso(entry.start_time),
        "end_time": _iso(entry.end_time),
        "duration": entry.duration,
        "date": _iso(entry.work_date),
        "description": entry.description,
    }


def task_to_dict(task: Task) -> dict:
    return {
        "task_id": task.task_id,
        "title": task.title,
        "description": task.description,
        "assigned_to": user_ref_to_dict(task.assignee) or {"user_id": task.assigned_to},
        "assigned_by": user_ref_to_dict(task.creator) or {"user_id": task.assigned_by},
        "status": task.status.value,
        "priority": task.priority.value,
        "category": task.category.value,
        "progress": task.progress,
        "due_date": _iso(task.due_date),
        "estimated_hours": task.estimated_hours,
        "actual_hours": task.actual_hours,
        "tags": list(task.tags),
        "dependencies": [
            {"task_id": d.task_id, "title": d.title, "status": d.status.value, "priority": d.priority.value}
            for d in task.dependency_refs
        ]
        or [{"task_id": dep_id} for dep_id in task.dependencies],
        "is_recurring": task.is_recurring,
        "recurring_pattern": task.recurring_pattern,
        "completion_reason": task.completion_reason,
        "completed_at": _iso(task.completed_at),
        "comments": [comment_to_dict(c) for c in task.comments],
        "time_tracking": [time_entry_to_dict(e) for e in task.time_tracking],
        "created_at": _iso(task.created_at),
        "updated_at": _iso(task.updated_at),
    }
