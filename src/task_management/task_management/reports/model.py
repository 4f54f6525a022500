from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..tasks.model import Task, UserRef


@dataclass(frozen=True)
class EmployeeTaskStats:
    employee: UserRef
    total_tasks: int
    completed_tasks: int
    in_progress_tasks: int
    overdue_tasks: int
    total_estimated_hours: float
    total_actual_hours: float
    avg_progress: float
    completion_rate: float
    efficiency: Optional[float]
    tasks: tuple[Task, ...] = ()


@dataclass(frozen=True)
class OverviewReport:
    stats: dict
    priority_stats: list[dict]
    category_stats: list[dict]


@dataclass(frozen=True)
class EmployeeSummaryReport:
    rows: list[EmployeeTaskStats]
    total_employees: int
    avg_completion_rate: float


@dataclass(frozen=True)
class EmployeeTasksReport:
    rows: list[EmployeeTaskStats]
    page: int
    limit: int
    total_employees: int

    @property
    def total_pages(self) -> int:
        return -(-self.total_employees // self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page * self.limit < self.total_employees

    @property
    def has_prev(self) -> bool:
        return self.page > 1
