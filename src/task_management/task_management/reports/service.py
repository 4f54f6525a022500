from __future__ import annotations

from dataclasses import replace
from typing import Optional, Sequence

from ..common.datetime_utils import parse_range_bound
from ..common.validators import positive_int_or_default
from ..core.constants import DEFAULT_EMPLOYEE_PAGE_LIMIT, DEFAULT_PAGE
from ..core.enums import TaskCategory, TaskPriority, TaskStatus
from ..core.exceptions import AuthorizationError
from ..tasks import policy
from ..tasks.model import Task, TaskReportRow
from ..tasks.policy import Caller
from ..tasks.query import build_task_filter, parse_assignee
from ..tasks.repository import TaskRepository
from .model import EmployeeSummaryReport, EmployeeTaskStats, EmployeeTasksReport, OverviewReport

EMPTY_STATS = {
    "total_tasks": 0,
    "completed_tasks": 0,
    "in_progress_tasks": 0,
    "overdue_tasks": 0,
    "avg_estimated_hours": 0,
    "avg_actual_hours": 0,
    "total_estimated_hours": 0,
    "total_actual_hours": 0,
}


def _avg(values: Sequence[float]) -> Optional[float]:
    return round(sum(values) / len(values), 2) if values else None


def completion_rate(completed: int, total: int) -> float:
    return round(completed / total * 100, 2) if total > 0 else 0


def efficiency(estimated_hours: Optional[float], actual_hours: Optional[float]) -> Optional[float]:
    if not estimated_hours or not actual_hours:
        return None
    return round(estimated_hours / actual_hours * 100, 2)


def _count(tasks: Sequence[Task], status: TaskStatus) -> int:
    return sum(1 for t in tasks if t.status == status)


def _employee_stats(rows: Sequence[TaskReportRow]) -> list[EmployeeTaskStats]:
    grouped: dict[int, list[TaskReportRow]] = {}
    for row in rows:
        grouped.setdefault(row.employee.user_id, []).append(row)

    out: list[EmployeeTaskStats] = []
    for group in grouped.values():
        tasks = [r.task for r in group]
        total = len(tasks)
        completed = _count(tasks, TaskStatus.COMPLETED)
        estimated = sum(t.estimated_hours or 0 for t in tasks)
        actual = sum(t.actual_hours or 0 for t in tasks)
        out.append(
            EmployeeTaskStats(
                employee=group[0].employee,
                total_tasks=total,
                completed_tasks=completed,
                in_progress_tasks=_count(tasks, TaskStatus.IN_PROGRESS),
                overdue_tasks=_count(tasks, TaskStatus.OVERDUE),
                total_estimated_hours=estimated,
                total_actual_hours=actual,
                avg_progress=_avg([t.progress for t in tasks]) or 0,
                completion_rate=completion_rate(completed, total),
                efficiency=efficiency(estimated, actual),
                tasks=tuple(tasks),
            )
        )

    out.sort(key=lambda s: (-s.completion_rate, s.employee.name, s.employee.user_id))
    return out


class TaskReportService:
    """Read-only aggregations over tasks, for admin/HR dashboards."""

    def __init__(self, tasks: TaskRepository):
        self._tasks = tasks

    @staticmethod
    def _require_reporter(caller: Caller) -> None:
        if not policy.can_view_reports(caller):
            raise AuthorizationError("Access denied")

    def overview(
        self,
        caller: Caller,
        *,
        user_id: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> OverviewReport:
        self._require_reporter(caller)
        task_filter = build_task_filter(
            assigned_to=parse_assignee(user_id),
            created_from=parse_range_bound(start_date),
            created_to=parse_range_bound(end_date, end=True),
        )
        tasks = [r.task for r in self._tasks.report_rows(task_filter)]

        stats = dict(EMPTY_STATS)
        if tasks:
            estimated = [t.estimated_hours for t in tasks if t.estimated_hours is not None]
            actual = [t.actual_hours for t in tasks if t.actual_hours is not None]
            stats.update(
                total_tasks=len(tasks),
                completed_tasks=_count(tasks, TaskStatus.COMPLETED),
                in_progress_tasks=_count(tasks, TaskStatus.IN_PROGRESS),
                overdue_tasks=_count(tasks, TaskStatus.OVERDUE),
                avg_estimated_hours=_avg(estimated),
                avg_actual_hours=_avg(actual),
                total_estimated_hours=sum(estimated),
                total_actual_hours=sum(actual),
            )

        priority_stats = []
        for priority in TaskPriority:
            count = sum(1 for t in tasks if t.priority == priority)
            if count:
                priority_stats.append({"priority": priority.value, "count": count})

        category_stats = []
        for category in TaskCategory:
            in_category = [t for t in tasks if t.category == category]
            if in_category:
                category_stats.append(
                    {
                        "category": category.value,
                        "count": len(in_category),
                        "avg_hours": _avg([t.actual_hours for t in in_category if t.actual_hours is not None]),
                    }
                )

        return OverviewReport(stats=stats, priority_stats=priority_stats, category_stats=category_stats)

    def employee_summary(
        self,
        caller: Caller,
        *,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> EmployeeSummaryReport:
        self._require_reporter(caller)
        task_filter = build_task_filter(
            created_from=parse_range_bound(start_date),
            created_to=parse_range_bound(end_date, end=True),
        )
        rows = [
            # The summary view carries no task lists.
            replace(s, tasks=())
            for s in _employee_stats(self._tasks.report_rows(task_filter))
        ]
        avg_rate = round(sum(r.completion_rate for r in rows) / len(rows), 2) if rows else 0
        return EmployeeSummaryReport(rows=rows, total_employees=len(rows), avg_completion_rate=avg_rate)

    def tasks_by_employee(
        self,
        caller: Caller,
        *,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        page: Optional[str] = None,
        limit: Optional[str] = None,
    ) -> EmployeeTasksReport:
        self._require_reporter(caller)
        page_n = positive_int_or_default(page, DEFAULT_PAGE)
        limit_n = positive_int_or_default(limit, DEFAULT_EMPLOYEE_PAGE_LIMIT)
        task_filter = build_task_filter(
            status=status,
            priority=priority,
            category=category,
            search=search,
            created_from=parse_range_bound(start_date),
            created_to=parse_range_bound(end_date, end=True),
        )

        skip = (page_n - 1) * limit_n
        rows = [
            # Only each employee's task list is paginated, not the employee list.
            replace(s, tasks=s.tasks[skip : skip + limit_n])
            for s in _employee_stats(self._tasks.report_rows(task_filter))
        ]
        return EmployeeTasksReport(rows=rows, page=page_n, limit=limit_n, total_employees=len(rows))
