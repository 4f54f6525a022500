from __future__ import annotations

from datetime import datetime

from src.task_management.task_management.core.enums import Role, TaskCategory, TaskPriority, TaskStatus
from src.task_management.task_management.tasks.model import Task, TaskFilter
from src.task_management.task_management.tasks.policy import Caller
from src.task_management.task_management.tasks.query import build_task_filter, build_task_query

ADMIN = Caller(user_id=1, role=Role.ADMIN)
EMPLOYEE = Caller(user_id=7, role=Role.EMPLOYEE)


def _task(task_id: int, *, assigned_to: int, status: TaskStatus, title: str = "Task", tags=()) -> Task:
    return Task(
        task_id=task_id,
        title=title,
        description="",
        assigned_to=assigned_to,
        assigned_by=1,
        status=status,
        priority=TaskPriority.LOW,
        category=TaskCategory.OTHER,
        due_date=datetime(2026, 3, 10),
        created_at=datetime(2026, 3, task_id),
        updated_at=datetime(2026, 3, task_id),
        tags=tuple(tags),
    )


def test_employee_assignee_override_is_ignored():
    query = build_task_query(EMPLOYEE, assigned_to="99")

    assert query.filter.assigned_to == EMPLOYEE.user_id


def test_manager_defaults_to_own_tasks_and_can_pick_another_user():
    assert build_task_query(ADMIN).filter.assigned_to == ADMIN.user_id
    assert build_task_query(ADMIN, assigned_to="7").filter.assigned_to == 7
    assert build_task_query(ADMIN, assigned_to="all").filter.assigned_to == ADMIN.user_id
    assert build_task_query(ADMIN, assigned_to="abc").filter.assigned_to == ADMIN.user_id


def test_status_list_filters_visible_tasks():
    tasks = [
        _task(1, assigned_to=7, status=TaskStatus.PENDING),
        _task(2, assigned_to=7, status=TaskStatus.COMPLETED),
        _task(3, assigned_to=7, status=TaskStatus.OVERDUE),
        _task(4, assigned_to=8, status=TaskStatus.PENDING),
    ]

    query = build_task_query(EMPLOYEE, status="pending,overdue")
    visible = [t.task_id for t in tasks if query.filter.matches(t)]

    assert visible == [1, 3]


def test_unknown_filter_values_mean_no_filter():
    task_filter = build_task_filter(status="bogus", priority="nope", category="all")

    assert task_filter == TaskFilter()


def test_page_and_limit_fall_back_to_defaults():
    query = build_task_query(EMPLOYEE, page="0", limit="x")

    assert (query.page, query.limit, query.offset) == (1, 10, 0)
    assert build_task_query(EMPLOYEE, page="3", limit="5").offset == 10


def test_sorting_defaults_to_newest_first():
    query = build_task_query(EMPLOYEE, sort_by="unknown")

    assert query.sort_by == "created_at"
    assert query.descending is True

    query = build_task_query(EMPLOYEE, sort_by="dueDate", sort_order="asc")
    assert query.sort_by == "due_date"
    assert query.descending is False


def test_search_matches_title_and_tags_case_insensitively():
    task_filter = build_task_filter(search="  Backend ")

    assert task_filter.matches(_task(1, assigned_to=7, status=TaskStatus.PENDING, title="backend cleanup"))
    assert task_filter.matches(_task(2, assigned_to=7, status=TaskStatus.PENDING, tags=["BACKEND"]))
    assert not task_filter.matches(_task(3, assigned_to=7, status=TaskStatus.PENDING, title="ui"))


def test_created_range_needs_both_bounds():
    task_filter = build_task_filter(created_from=datetime(2026, 3, 2))

    assert task_filter.created_from is None
    assert task_filter.created_to is None
