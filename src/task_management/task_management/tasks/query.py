"""Visibility filter: turn a caller plus raw list parameters into a TaskQuery.

Bad or unknown filter values never raise; they fall back to "no filter" or to
the documented defaults.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..common.validators import optional_choice, positive_int_or_default
from ..core.constants import DEFAULT_PAGE, DEFAULT_PAGE_LIMIT, DEFAULT_SORT_BY, FILTER_ALL
from ..core.enums import TaskCategory, TaskPriority, TaskStatus
from .model import TaskFilter, TaskQuery
from .policy import Caller

# API sort keys -> Task attribute / column names.
SORT_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "dueDate": "due_date",
    "title": "title",
    "status": "status",
    "priority": "priority",
    "category": "category",
    "progress": "progress",
}


def _active(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    if not value or value == FILTER_ALL:
        return None
    return value


def parse_statuses(value: Optional[str]) -> tuple[TaskStatus, ...]:
    raw = _active(value)
    if raw is None:
        return ()
    out: list[TaskStatus] = []
    for part in raw.split(","):
        status = optional_choice(part.strip(), TaskStatus)
        if status is not None and status not in out:
            out.append(status)
    return tuple(out)


def parse_assignee(value: Optional[str]) -> Optional[int]:
    raw = _active(value)
    if raw is None:
        return None
    try:
        ident = int(raw)
    except ValueError:
        return None
    return ident if ident > 0 else None


def build_task_filter(
    *,
    assigned_to: Optional[int] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    created_from: Optional[datetime] = None,
    created_to: Optional[datetime] = None,
) -> TaskFilter:
    priority_s = _active(priority)
    category_s = _active(category)
    search_s = (search or "").strip() or None
    # A range only applies when both ends are known.
    if created_from is None or created_to is None:
        created_from = created_to = None
    return TaskFilter(
        assigned_to=assigned_to,
        statuses=parse_statuses(status),
        priority=optional_choice(priority_s, TaskPriority) if priority_s else None,
        category=optional_choice(category_s, TaskCategory) if category_s else None,
        search=search_s,
        created_from=created_from,
        created_to=created_to,
    )


def visible_assignee(caller: Caller, requested: Optional[str]) -> int:
    """Whose tasks the caller gets to list.

    Employees always see their own; an assignedTo they pass is ignored.
    Admin/HR see their own unless they explicitly ask for someone else's.
    """
    if not caller.is_manager:
        return caller.user_id
    assignee = parse_assignee(requested)
    return assignee if assignee is not None else caller.user_id


def build_task_query(
    caller: Caller,
    *,
    assigned_to: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
) -> TaskQuery:
    task_filter = build_task_filter(
        assigned_to=visible_assignee(caller, assigned_to),
        status=status,
        priority=priority,
        category=category,
        search=search,
    )
    order = (sort_order or "").strip().lower()
    return TaskQuery(
        filter=task_filter,
        page=positive_int_or_default(page, DEFAULT_PAGE),
        limit=positive_int_or_default(limit, DEFAULT_PAGE_LIMIT),
        sort_by=SORT_FIELDS.get((sort_by or "").strip(), SORT_FIELDS[DEFAULT_SORT_BY]),
        descending=order not in {"1", "asc", "ascending"},
    )
