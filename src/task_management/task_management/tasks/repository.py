from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional, Protocol, Sequence

from .model import NewTask, Task, TaskFilter, TaskPage, TaskQuery, TaskReportRow


class TaskRepository(Protocol):
    """Persistence interface for tasks.

    Every write is one atomic unit; concurrent updates are last-write-wins.
    """

    def find(self, query: TaskQuery) -> TaskPage:
        raise NotImplementedError

    def get_by_id(self, task_id: int) -> Optional[Task]:
        """Fully populated task (references, comments, time entries) or None."""

        raise NotImplementedError

    def create(self, new_task: NewTask) -> int:
        raise NotImplementedError

    def update(self, task_id: int, changes: Mapping[str, Any], *, updated_at: datetime) -> bool:
        """Apply already-validated field changes keyed by Task attribute name."""

        raise NotImplementedError

    def add_comment(self, task_id: int, *, user_id: int, text: str, created_at: datetime) -> int:
        raise NotImplementedError

    def add_time_entry(
        self,
        task_id: int,
        *,
        start_time: datetime,
        end_time: datetime,
        duration: int,
        work_date: date,
        description: Optional[str],
    ) -> int:
        raise NotImplementedError

    def delete(self, task_id: int) -> bool:
        raise NotImplementedError

    def existing_ids(self, task_ids: Iterable[int]) -> set[int]:
        raise NotImplementedError

    def report_rows(self, task_filter: TaskFilter) -> Sequence[TaskReportRow]:
        """Matching tasks joined with their assignee; tasks without one are skipped."""

        raise NotImplementedError
