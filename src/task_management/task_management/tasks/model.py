from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import Role, TaskCategory, TaskPriority, TaskStatus


@dataclass(frozen=True)
class UserRef:
    """Populated user reference (assignee, creator, comment author)."""

    user_id: int
    name: str
    email: str
    role: Optional[Role] = None
    department: Optional[str] = None


@dataclass(frozen=True)
class DependencyRef:
    task_id: int
    title: str
    status: TaskStatus
    priority: TaskPriority


@dataclass(frozen=True)
class TaskComment:
    comment_id: int
    user_id: int
    text: str
    created_at: datetime
    author: Optional[UserRef] = None


@dataclass(frozen=True)
class TimeEntry:
    """A tracked work interval. duration is derived from start/end, never supplied."""

    entry_id: int
    start_time: datetime
    end_time: datetime
    duration: int
    work_date: date
    description: Optional[str] = None


@dataclass(frozen=True)
class Task:
    task_id: int
    title: str
    description: str
    assigned_to: int
    assigned_by: int
    status: TaskStatus
    priority: TaskPriority
    category: TaskCategory
    due_date: datetime
    created_at: datetime
    updated_at: datetime
    progress: int = 0
    estimated_hours: Optional[float] = None
    actual_hours: float = 0.0
    tags: tuple[str, ...] = ()
    dependencies: tuple[int, ...] = ()
    is_recurring: bool = False
    recurring_pattern: Optional[str] = None
    completion_reason: Optional[str] = None
    completed_at: Optional[datetime] = None
    comments: tuple[TaskComment, ...] = ()
    time_tracking: tuple[TimeEntry, ...] = ()
    assignee: Optional[UserRef] = None
    creator: Optional[UserRef] = None
    dependency_refs: tuple[DependencyRef, ...] = ()


@dataclass(frozen=True)
class NewTask:
    """Validated input for TaskRepository.create."""

    title: str
    description: str
    assigned_to: int
    assigned_by: int
    priority: TaskPriority
    category: TaskCategory
    due_date: datetime
    created_at: datetime
    estimated_hours: Optional[float] = None
    tags: tuple[str, ...] = ()
    dependencies: tuple[int, ...] = ()
    is_recurring: bool = False
    recurring_pattern: Optional[str] = None


@dataclass(frozen=True)
class TaskFilter:
    """Logical predicate over tasks; each set field is ANDed."""

    assigned_to: Optional[int] = None
    statuses: tuple[TaskStatus, ...] = ()
    priority: Optional[TaskPriority] = None
    category: Optional[TaskCategory] = None
    search: Optional[str] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None

    def matches(self, task: Task) -> bool:
        """In-memory form of the WHERE clause MySQLTaskRepository builds from this filter.

        Repositories that hold tasks in memory filter with it.
        """
        if self.assigned_to is not None and task.assigned_to != self.assigned_to:
            return False
        if self.statuses and task.status not in self.statuses:
            return False
        if self.priority is not None and task.priority != self.priority:
            return False
        if self.category is not None and task.category != self.category:
            return False
        if self.created_from is not None and task.created_at < self.created_from:
            return False
        if self.created_to is not None and task.created_at > self.created_to:
            return False
        if self.search:
            needle = self.search.lower()
            haystack = [task.title, task.description, *task.tags]
            if not any(needle in (text or "").lower() for text in haystack):
                return False
        return True


@dataclass(frozen=True)
class TaskQuery:
    filter: TaskFilter
    page: int
    limit: int
    sort_by: str = "created_at"
    descending: bool = True

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class TaskPage:
    tasks: list[Task]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page * self.limit < self.total

    @property
    def has_prev(self) -> bool:
        return self.page > 1


@dataclass(frozen=True)
class TaskReportRow:
    """One task joined with its assignee, as read by the reporting queries."""

    task: Task
    employee: UserRef
