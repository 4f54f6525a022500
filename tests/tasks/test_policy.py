from __future__ import annotations

from datetime import datetime

from src.task_management.task_management.core.enums import Role, TaskCategory, TaskPriority, TaskStatus
from src.task_management.task_management.tasks import policy
from src.task_management.task_management.tasks.model import Task
from src.task_management.task_management.tasks.policy import Caller, Relation

ADMIN = Caller(user_id=1, role=Role.ADMIN)
HR = Caller(user_id=2, role=Role.HR)
OWNER = Caller(user_id=3, role=Role.EMPLOYEE)
OTHER = Caller(user_id=4, role=Role.EMPLOYEE)


def _task(**overrides) -> Task:
    base = dict(
        task_id=10,
        title="Write report",
        description="Quarterly numbers",
        assigned_to=OWNER.user_id,
        assigned_by=HR.user_id,
        status=TaskStatus.IN_PROGRESS,
        priority=TaskPriority.MEDIUM,
        category=TaskCategory.DOCUMENTATION,
        due_date=datetime(2026, 3, 10),
        created_at=datetime(2026, 3, 1),
        updated_at=datetime(2026, 3, 1),
        progress=40,
    )
    base.update(overrides)
    return Task(**base)


def test_relation_for_each_kind_of_caller():
    task = _task()

    assert policy.relation_to(ADMIN, task) == Relation.MANAGER
    assert policy.relation_to(HR, task) == Relation.MANAGER
    assert policy.relation_to(OWNER, task) == Relation.ASSIGNEE
    assert policy.relation_to(OTHER, task) == Relation.NONE


def test_assignee_updates_are_limited_to_progress_fields():
    requested = {"status": "completed", "priority": "urgent", "title": "x", "actual_hours": 2}

    kept = policy.permitted_updates(OWNER, _task(), requested)

    assert kept == {"status": "completed", "actual_hours": 2}


def test_manager_cannot_set_actual_hours():
    kept = policy.permitted_updates(ADMIN, _task(), {"actual_hours": 5, "priority": "high"})

    assert kept == {"priority": "high"}


def test_stranger_gets_nothing():
    assert policy.permitted_updates(OTHER, _task(), {"status": "completed"}) == {}
    assert not policy.can_update(OTHER, _task())
    assert not policy.can_read(OTHER, _task())


def test_completion_forces_progress_and_stamps_time(fixed_now):
    out = policy.apply_completion(_task(), {"status": TaskStatus.COMPLETED, "progress": 10}, now=fixed_now)

    assert out["progress"] == 100
    assert out["completed_at"] == fixed_now


def test_completion_keeps_existing_timestamp(fixed_now):
    done_at = datetime(2026, 2, 1, 9, 0)
    task = _task(status=TaskStatus.COMPLETED, progress=100, completed_at=done_at)

    out = policy.apply_completion(task, {"status": TaskStatus.COMPLETED}, now=fixed_now)

    assert out["progress"] == 100
    assert "completed_at" not in out


def test_other_statuses_leave_progress_alone(fixed_now):
    out = policy.apply_completion(_task(), {"status": TaskStatus.PENDING, "progress": 5}, now=fixed_now)

    assert out == {"status": TaskStatus.PENDING, "progress": 5}


def test_comment_rights_include_creator():
    task = _task(assigned_by=OTHER.user_id)

    assert policy.can_comment(OTHER, task)
    assert policy.can_comment(OWNER, task)
    assert policy.can_comment(HR, _task())
    assert not policy.can_comment(OTHER, _task())


def test_time_tracking_is_assignee_only():
    task = _task()

    assert policy.can_track_time(OWNER, task)
    assert not policy.can_track_time(ADMIN, task)
    assert not policy.can_track_time(HR, task)


def test_only_admin_deletes_and_managers_create():
    assert policy.can_delete(ADMIN)
    assert not policy.can_delete(HR)
    assert policy.can_create(HR)
    assert not policy.can_create(OWNER)
    assert policy.can_view_reports(ADMIN)
    assert not policy.can_view_reports(OWNER)
