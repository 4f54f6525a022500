from __future__ import annotations

from dataclasses import replace
from datetime import datetime

import pytest

from src.task_management.task_management.core.enums import Role, TaskCategory, TaskPriority, TaskStatus
from src.task_management.task_management.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from src.task_management.task_management.tasks.model import Task, TaskComment, TimeEntry
from src.task_management.task_management.tasks.policy import Caller
from src.task_management.task_management.tasks.service import TaskService
from src.task_management.task_management.users.model import User

ADMIN = Caller(user_id=1, role=Role.ADMIN)
HR = Caller(user_id=2, role=Role.HR)
EMPLOYEE = Caller(user_id=3, role=Role.EMPLOYEE)
OTHER = Caller(user_id=4, role=Role.EMPLOYEE)


class FakeUsersRepo:
    def __init__(self, ids):
        self._users = {
            i: User(user_id=i, name=f"User {i}", email=f"u{i}@example.com", password_hash="x", role=Role.EMPLOYEE)
            for i in ids
        }
        self.assigned: dict[int, list[int]] = {i: [] for i in ids}

    def get_by_id(self, user_id):
        return self._users.get(int(user_id))

    def add_assigned_task(self, user_id, task_id):
        self.assigned.setdefault(user_id, []).append(task_id)

    def remove_assigned_task(self, user_id, task_id):
        if task_id in self.assigned.get(user_id, []):
            self.assigned[user_id].remove(task_id)


class FakeTasksRepo:
    def __init__(self):
        self._next_id = 1
        self._next_child_id = 1
        self.tasks: dict[int, Task] = {}

    def seed(self, task: Task) -> Task:
        self.tasks[task.task_id] = task
        self._next_id = max(self._next_id, task.task_id + 1)
        return task

    def get_by_id(self, task_id):
        return self.tasks.get(int(task_id))

    def existing_ids(self, task_ids):
        return {i for i in task_ids if i in self.tasks}

    def create(self, new_task):
        tid = self._next_id
        self._next_id += 1
        self.tasks[tid] = Task(
            task_id=tid,
            title=new_task.title,
            description=new_task.description,
            assigned_to=new_task.assigned_to,
            assigned_by=new_task.assigned_by,
            status=TaskStatus.PENDING,
            priority=new_task.priority,
            category=new_task.category,
            due_date=new_task.due_date,
            created_at=new_task.created_at,
            updated_at=new_task.created_at,
            estimated_hours=new_task.estimated_hours,
            tags=new_task.tags,
            dependencies=new_task.dependencies,
            is_recurring=new_task.is_recurring,
            recurring_pattern=new_task.recurring_pattern,
        )
        return tid

    def update(self, task_id, changes, *, updated_at):
        self.tasks[task_id] = replace(self.tasks[task_id], updated_at=updated_at, **changes)
        return True

    def add_comment(self, task_id, *, user_id, text, created_at):
        cid = self._next_child_id
        self._next_child_id += 1
        task = self.tasks[task_id]
        comment = TaskComment(comment_id=cid, user_id=user_id, text=text, created_at=created_at)
        self.tasks[task_id] = replace(task, comments=task.comments + (comment,))
        return cid

    def add_time_entry(self, task_id, *, start_time, end_time, duration, work_date, description):
        eid = self._next_child_id
        self._next_child_id += 1
        task = self.tasks[task_id]
        entry = TimeEntry(
            entry_id=eid,
            start_time=start_time,
            end_time=end_time,
            duration=duration,
            work_date=work_date,
            description=description,
        )
        self.tasks[task_id] = replace(task, time_tracking=task.time_tracking + (entry,))
        return eid

    def delete(self, task_id):
        return self.tasks.pop(int(task_id), None) is not None


def _task(task_id: int = 1, **overrides) -> Task:
    base = dict(
        task_id=task_id,
        title="Fix login bug",
        description="Users get logged out",
        assigned_to=EMPLOYEE.user_id,
        assigned_by=HR.user_id,
        status=TaskStatus.IN_PROGRESS,
        priority=TaskPriority.MEDIUM,
        category=TaskCategory.DEVELOPMENT,
        due_date=datetime(2026, 3, 10),
        created_at=datetime(2026, 3, 1),
        updated_at=datetime(2026, 3, 1),
        progress=40,
    )
    base.update(overrides)
    return Task(**base)


@pytest.fixture
def users():
    return FakeUsersRepo([1, 2, 3, 4])


@pytest.fixture
def tasks():
    return FakeTasksRepo()


@pytest.fixture
def svc(tasks, users, fixed_now):
    return TaskService(tasks, users, clock=lambda: fixed_now)


def _new_task_data(**overrides):
    data = {
        "title": "Write docs",
        "description": "API reference",
        "assigned_to": EMPLOYEE.user_id,
        "due_date": "2026-03-20T17:00:00Z",
        "priority": "high",
        "category": "documentation",
        "estimated_hours": 4,
        "tags": ["docs", "api", "docs"],
    }
    data.update(overrides)
    return data


def test_manager_creates_pending_task_and_links_assignee(svc, tasks, users, fixed_now):
    task = svc.create_task(HR, _new_task_data())

    assert task.status == TaskStatus.PENDING
    assert task.progress == 0
    assert task.assigned_by == HR.user_id
    assert task.tags == ("docs", "api")
    assert task.due_date == datetime(2026, 3, 20, 17, 0)
    assert task.created_at == fixed_now
    assert users.assigned[EMPLOYEE.user_id] == [task.task_id]


def test_employee_cannot_create(svc, tasks):
    with pytest.raises(AuthorizationError):
        svc.create_task(EMPLOYEE, _new_task_data())
    assert tasks.tasks == {}


def test_create_with_unknown_assignee_persists_nothing(svc, tasks, users):
    with pytest.raises(NotFoundError):
        svc.create_task(ADMIN, _new_task_data(assigned_to=999))

    assert tasks.tasks == {}
    assert all(not ids for ids in users.assigned.values())


@pytest.mark.parametrize(
    "overrides",
    [
        {"title": "  "},
        {"priority": "critical"},
        {"category": "sales"},
        {"due_date": "next week"},
        {"estimated_hours": -1},
        {"assigned_to": None},
    ],
)
def test_create_rejects_invalid_fields(svc, overrides):
    with pytest.raises(ValidationError):
        svc.create_task(ADMIN, _new_task_data(**overrides))


def test_tags_are_unique_ignoring_case(svc):
    task = svc.create_task(ADMIN, _new_task_data(tags=["API", "api", " Api ", "docs"]))

    assert task.tags == ("API", "docs")


@pytest.mark.parametrize(
    "overrides",
    [
        {"title": "x" * 201},
        {"tags": ["t" * 51]},
        {"is_recurring": True, "recurring_pattern": "p" * 101},
    ],
)
def test_create_rejects_values_longer_than_their_columns(svc, tasks, overrides):
    with pytest.raises(ValidationError):
        svc.create_task(ADMIN, _new_task_data(**overrides))
    assert tasks.tasks == {}


def test_update_rejects_overlong_title(svc, tasks):
    tasks.seed(_task())

    with pytest.raises(ValidationError):
        svc.update_task(ADMIN, 1, {"title": "x" * 201})
    assert tasks.tasks[1].title == "Fix login bug"


def test_create_rejects_missing_dependency(svc, tasks):
    tasks.seed(_task(5))

    with pytest.raises(ValidationError):
        svc.create_task(ADMIN, _new_task_data(dependencies=[5, 6]))

    task = svc.create_task(ADMIN, _new_task_data(dependencies=[5]))
    assert task.dependencies == (5,)


def test_employee_completing_task_drops_restricted_fields(svc, tasks, fixed_now):
    tasks.seed(_task(status=TaskStatus.PENDING))

    task = svc.update_task(EMPLOYEE, 1, {"status": "completed", "progress": 40, "priority": "urgent"})

    assert task.status == TaskStatus.COMPLETED
    assert task.progress == 100
    assert task.completed_at == fixed_now
    assert task.priority == TaskPriority.MEDIUM
    assert task.updated_at == fixed_now


def test_completing_ignores_supplied_progress_even_out_of_range(svc, tasks, fixed_now):
    tasks.seed(_task(status=TaskStatus.PENDING))

    task = svc.update_task(EMPLOYEE, 1, {"status": "completed", "progress": 400})

    assert task.progress == 100
    assert task.completed_at == fixed_now


def test_out_of_range_progress_still_rejected_without_completion(svc, tasks):
    tasks.seed(_task())

    with pytest.raises(ValidationError):
        svc.update_task(EMPLOYEE, 1, {"status": "in-progress", "progress": 400})
    with pytest.raises(ValidationError):
        svc.update_task(EMPLOYEE, 1, {"progress": float("inf")})
    assert tasks.tasks[1].progress == 40


def test_update_of_unrelated_task_is_forbidden(svc, tasks):
    tasks.seed(_task())

    with pytest.raises(AuthorizationError):
        svc.update_task(OTHER, 1, {"progress": 10})


def test_update_of_missing_task_is_not_found_even_for_strangers(svc):
    with pytest.raises(NotFoundError):
        svc.update_task(OTHER, 42, {"progress": 10})


def test_update_rejects_out_of_range_progress(svc, tasks):
    tasks.seed(_task())

    with pytest.raises(ValidationError):
        svc.update_task(EMPLOYEE, 1, {"progress": 101})
    assert tasks.tasks[1].progress == 40


def test_reassignment_moves_back_reference(svc, tasks, users):
    tasks.seed(_task())
    users.add_assigned_task(EMPLOYEE.user_id, 1)

    task = svc.update_task(ADMIN, 1, {"assigned_to": OTHER.user_id})

    assert task.assigned_to == OTHER.user_id
    assert users.assigned[EMPLOYEE.user_id] == []
    assert users.assigned[OTHER.user_id] == [1]


def test_task_cannot_depend_on_itself(svc, tasks):
    tasks.seed(_task())

    with pytest.raises(ValidationError):
        svc.update_task(ADMIN, 1, {"dependencies": [1]})


def test_employee_reads_only_own_tasks(svc, tasks):
    tasks.seed(_task())

    assert svc.get_task(EMPLOYEE, 1).task_id == 1
    assert svc.get_task(HR, 1).task_id == 1
    with pytest.raises(AuthorizationError):
        svc.get_task(OTHER, 1)
    with pytest.raises(NotFoundError):
        svc.get_task(OTHER, 2)


def test_time_entry_duration_and_date(svc, tasks):
    tasks.seed(_task())

    entries = svc.add_time_entry(
        EMPLOYEE,
        1,
        start_time="2026-03-02T09:00:00",
        end_time="2026-03-02T09:45:00",
        description="pairing",
    )

    assert len(entries) == 1
    assert entries[0].duration == 45
    assert entries[0].work_date == datetime(2026, 3, 2).date()
    assert entries[0].description == "pairing"


def test_time_entry_duration_rounds_half_up(svc, tasks):
    tasks.seed(_task())

    entries = svc.add_time_entry(
        EMPLOYEE, 1, start_time="2026-03-02T09:00:00", end_time="2026-03-02T09:00:30"
    )

    assert entries[0].duration == 1


def test_time_entry_must_end_after_start(svc, tasks):
    tasks.seed(_task())

    with pytest.raises(ValidationError):
        svc.add_time_entry(EMPLOYEE, 1, start_time="2026-03-02T10:00:00", end_time="2026-03-02T10:00:00")
    with pytest.raises(ValidationError):
        svc.add_time_entry(EMPLOYEE, 1, start_time="2026-03-02T10:00:00", end_time="2026-03-02T09:00:00")

    assert tasks.tasks[1].time_tracking == ()


def test_time_entry_is_assignee_only(svc, tasks):
    tasks.seed(_task())

    with pytest.raises(AuthorizationError):
        svc.add_time_entry(ADMIN, 1, start_time="2026-03-02T09:00:00", end_time="2026-03-02T10:00:00")


def test_comment_by_creator_and_stranger(svc, tasks, fixed_now):
    tasks.seed(_task(assigned_by=OTHER.user_id))

    comments = svc.add_comment(OTHER, 1, "  Looks good  ")

    assert [(c.user_id, c.text, c.created_at) for c in comments] == [(OTHER.user_id, "Looks good", fixed_now)]

    tasks.seed(_task(2))
    with pytest.raises(AuthorizationError):
        svc.add_comment(OTHER, 2, "hi")


def test_empty_comment_is_rejected(svc, tasks):
    tasks.seed(_task())

    with pytest.raises(ValidationError):
        svc.add_comment(EMPLOYEE, 1, "   ")


def test_only_admin_deletes(svc, tasks, users):
    tasks.seed(_task())
    users.add_assigned_task(EMPLOYEE.user_id, 1)

    with pytest.raises(AuthorizationError):
        svc.delete_task(HR, 1)
    assert 1 in tasks.tasks

    svc.delete_task(ADMIN, 1)

    assert 1 not in tasks.tasks
    assert users.assigned[EMPLOYEE.user_id] == []
    with pytest.raises(NotFoundError):
        svc.delete_task(ADMIN, 1)
