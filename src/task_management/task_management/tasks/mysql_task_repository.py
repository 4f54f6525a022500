from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..core.enums import Role, TaskCategory, TaskPriority, TaskStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_placeholders, like_pattern, to_float
from .model import (
    DependencyRef,
    NewTask,
    Task,
    TaskComment,
    TaskFilter,
    TaskPage,
    TaskQuery,
    TaskReportRow,
    TimeEntry,
    UserRef,
)
from .repository import TaskRepository

SORT_COLUMNS = {
    "created_at": "t.created_at",
    "updated_at": "t.updated_at",
    "due_date": "t.due_date",
    "title": "t.title",
    "status": "t.status",
    "priority": "t.priority",
    "category": "t.category",
    "progress": "t.progress",
}

# Task attribute -> column for plain scalar updates.
SCALAR_COLUMNS = {
    "title": "title",
    "description": "description",
    "priority": "priority",
    "category": "category",
    "status": "status",
    "progress": "progress",
    "assigned_to": "assigned_to",
    "due_date": "due_date",
    "estimated_hours": "estimated_hours",
    "actual_hours": "actual_hours",
    "completion_reason": "completion_reason",
    "completed_at": "completed_at",
}

_SELECT_TASKS = """
    SELECT t.task_id, t.title, t.description, t.assigned_to, t.assigned_by,
           t.status, t.priority, t.category, t.progress, t.due_date,
           t.estimated_hours, t.actual_hours, t.is_recurring, t.recurring_pattern,
           t.completion_reason, t.completed_at, t.created_at, t.updated_at,
           a.name AS assignee_name, a.email AS assignee_email,
           a.role AS assignee_role, a.department AS assignee_department,
           c.name AS creator_name, c.email AS creator_email
    FROM tasks t
    {assignee_join} JOIN users a ON a.user_id = t.assigned_to
    LEFT JOIN users c ON c.user_id = t.assigned_by
"""


def _db_value(value: Any) -> Any:
    if isinstance(value, (TaskStatus, TaskPriority, TaskCategory)):
        return value.value
    return value


def _where(task_filter: TaskFilter) -> tuple[str, list[object]]:
    # Keep in step with TaskFilter.matches.
    clauses = ["1=1"]
    params: list[object] = []

    if task_filter.assigned_to is not None:
        clauses.append("t.assigned_to=%s")
        params.append(int(task_filter.assigned_to))
    if task_filter.statuses:
        clauses.append(f"t.status IN ({in_placeholders(task_filter.statuses)})")
        params.extend(s.value for s in task_filter.statuses)
    if task_filter.priority is not None:
        clauses.append("t.priority=%s")
        params.append(task_filter.priority.value)
    if task_filter.category is not None:
        clauses.append("t.category=%s")
        params.append(task_filter.category.value)
    if task_filter.created_from is not None and task_filter.created_to is not None:
        clauses.append("t.created_at BETWEEN %s AND %s")
        params.extend([task_filter.created_from, task_filter.created_to])
    if task_filter.search:
        pattern = like_pattern(task_filter.search)
        clauses.append(
            """(
                LOWER(t.title) LIKE %s
                OR LOWER(t.description) LIKE %s
                OR EXISTS (SELECT 1 FROM task_tags tg WHERE tg.task_id = t.task_id AND LOWER(tg.tag) LIKE %s)
            )"""
        )
        params.extend([pattern, pattern, pattern])

    return " AND ".join(clauses), params


def _row_to_task(r: dict) -> Task:
    assignee = None
    if r.get("assignee_name") is not None:
        assignee = UserRef(
            user_id=int(r["assigned_to"]),
            name=r["assignee_name"],
            email=r["assignee_email"],
            role=Role(r["assignee_role"]) if r.get("assignee_role") else None,
            department=r.get("assignee_department"),
        )
    creator = None
    if r.get("creator_name") is not None:
        creator = UserRef(user_id=int(r["assigned_by"]), name=r["creator_name"], email=r["creator_email"])

    return Task(
        task_id=int(r["task_id"]),
        title=r["title"],
        description=r["description"],
        assigned_to=int(r["assigned_to"]),
        assigned_by=int(r["assigned_by"]),
        status=TaskStatus(r["status"]),
        priority=TaskPriority(r["priority"]),
        category=TaskCategory(r["category"]),
        progress=int(r["progress"] or 0),
        due_date=r["due_date"],
        estimated_hours=to_float(r.get("estimated_hours")),
        actual_hours=to_float(r.get("actual_hours")) or 0.0,
        is_recurring=bool(r.get("is_recurring")),
        recurring_pattern=r.get("recurring_pattern"),
        completion_reason=r.get("completion_reason"),
        completed_at=r.get("completed_at"),
        created_at=r["created_at"],
        updated_at=r["updated_at"],
        assignee=assignee,
        creator=creator,
    )


class MySQLTaskRepository(TaskRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # -------- loading --------
    def _load(
        self,
        cur,
        *,
        where: str,
        params: Sequence[object],
        order_by: str = "t.created_at DESC, t.task_id DESC",
        limit: Optional[int] = None,
        offset: int = 0,
        detailed: bool = True,
        require_assignee: bool = False,
    ) -> list[Task]:
        sql = _SELECT_TASKS.format(assignee_join="INNER" if require_assignee else "LEFT")
        sql += f" WHERE {where} ORDER BY {order_by}"
        args = list(params)
        if limit is not None:
            sql += " LIMIT %s OFFSET %s"
            args.extend([int(limit), int(offset)])

        cur.execute(sql, tuple(args))
        tasks = [_row_to_task(r) for r in fetchall(cur)]
        if not tasks:
            return []

        ids = [t.task_id for t in tasks]
        marks = in_placeholders(ids)

        tags: dict[int, list[str]] = {}
        cur.execute(
            f"SELECT task_id, tag FROM task_tags WHERE task_id IN ({marks}) ORDER BY task_id, position",
            tuple(ids),
        )
        for r in fetchall(cur):
            tags.setdefault(int(r["task_id"]), []).append(r["tag"])

        deps: dict[int, list[DependencyRef]] = {}
        comments: dict[int, list[TaskComment]] = {}
        entries: dict[int, list[TimeEntry]] = {}

        if detailed:
            cur.execute(
                f"""
                SELECT d.task_id, d.depends_on_id, o.title, o.status, o.priority
                FROM task_dependencies d
                JOIN tasks o ON o.task_id = d.depends_on_id
                WHERE d.task_id IN ({marks})
                ORDER BY d.task_id, d.depends_on_id
                """,
                tuple(ids),
            )
            for r in fetchall(cur):
                deps.setdefault(int(r["task_id"]), []).append(
                    DependencyRef(
                        task_id=int(r["depends_on_id"]),
                        title=r["title"],
                        status=TaskStatus(r["status"]),
                        priority=TaskPriority(r["priority"]),
                    )
                )

            cur.execute(
                f"""
                SELECT cm.comment_id, cm.task_id, cm.user_id, cm.comment, cm.created_at,
                       u.name, u.email
                FROM task_comments cm
                LEFT JOIN users u ON u.user_id = cm.user_id
                WHERE cm.task_id IN ({marks})
                ORDER BY cm.comment_id ASC
                """,
                tuple(ids),
            )
            for r in fetchall(cur):
                author = UserRef(user_id=int(r["user_id"]), name=r["name"], email=r["email"]) if r.get("name") else None
                comments.setdefault(int(r["task_id"]), []).append(
                    TaskComment(
                        comment_id=int(r["comment_id"]),
                        user_id=int(r["user_id"]),
                        text=r["comment"],
                        created_at=r["created_at"],
                        author=author,
                    )
                )

            cur.execute(
                f"""
                SELECT entry_id, task_id, start_time, end_time, duration_minutes, work_date, description
                FROM task_time_entries
                WHERE task_id IN ({marks})
                ORDER BY entry_id ASC
                """,
                tuple(ids),
            )
            for r in fetchall(cur):
                entries.setdefault(int(r["task_id"]), []).append(
                    TimeEntry(
                        entry_id=int(r["entry_id"]),
                        start_time=r["start_time"],
                        end_time=r["end_time"],
                        duration=int(r["duration_minutes"]),
                        work_date=r["work_date"],
                        description=r.get("description"),
                    )
                )

        out: list[Task] = []
        for t in tasks:
            dep_refs = tuple(deps.get(t.task_id, []))
            out.append(
                replace(
                    t,
                    tags=tuple(tags.get(t.task_id, [])),
                    dependencies=tuple(d.task_id for d in dep_refs),
                    dependency_refs=dep_refs,
                    comments=tuple(comments.get(t.task_id, [])),
                    time_tracking=tuple(entries.get(t.task_id, [])),
                )
            )
        return out

    def find(self, query: TaskQuery) -> TaskPage:
        where, params = _where(query.filter)
        column = SORT_COLUMNS.get(query.sort_by, "t.created_at")
        direction = "DESC" if query.descending else "ASC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM tasks t WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {}).get("total") or 0)
            tasks = self._load(
                cur,
                where=where,
                params=params,
                order_by=f"{column} {direction}, t.task_id {direction}",
                limit=query.limit,
                offset=query.offset,
            )
        return TaskPage(tasks=tasks, total=total, page=query.page, limit=query.limit)

    def get_by_id(self, task_id: int) -> Optional[Task]:
        with db_cursor(self._conn_factory) as (_, cur):
            tasks = self._load(cur, where="t.task_id=%s", params=[int(task_id)])
        return tasks[0] if tasks else None

    def existing_ids(self, task_ids: Iterable[int]) -> set[int]:
        ids = [int(i) for i in task_ids]
        if not ids:
            return set()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT task_id FROM tasks WHERE task_id IN ({in_placeholders(ids)})", tuple(ids))
            return {int(r["task_id"]) for r in fetchall(cur)}

    def report_rows(self, task_filter: TaskFilter) -> Sequence[TaskReportRow]:
        where, params = _where(task_filter)
        with db_cursor(self._conn_factory) as (_, cur):
            tasks = self._load(
                cur,
                where=where,
                params=params,
                order_by="t.created_at DESC, t.task_id DESC",
                detailed=False,
                require_assignee=True,
            )
        return [TaskReportRow(task=t, employee=t.assignee) for t in tasks if t.assignee is not None]

    # -------- writes --------
    @staticmethod
    def _replace_tags(cur, task_id: int, tags: Sequence[str]) -> None:
        cur.execute("DELETE FROM task_tags WHERE task_id=%s", (task_id,))
        for position, tag in enumerate(tags):
            cur.execute(
                "INSERT INTO task_tags(task_id, tag, position) VALUES(%s,%s,%s)",
                (task_id, tag, position),
            )

    @staticmethod
    def _replace_dependencies(cur, task_id: int, dependencies: Sequence[int]) -> None:
        cur.execute("DELETE FROM task_dependencies WHERE task_id=%s", (task_id,))
        for dep_id in dependencies:
            cur.execute(
                "INSERT INTO task_dependencies(task_id, depends_on_id) VALUES(%s,%s)",
                (task_id, int(dep_id)),
            )

    def create(self, new_task: NewTask) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO tasks(
                    title, description, assigned_to, assigned_by, status, priority, category,
                    progress, due_date, estimated_hours, actual_hours, is_recurring, recurring_pattern,
                    created_at, updated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,0,%s,%s,0,%s,%s,%s,%s)
                """,
                (
                    new_task.title,
                    new_task.description,
                    int(new_task.assigned_to),
                    int(new_task.assigned_by),
                    TaskStatus.PENDING.value,
                    new_task.priority.value,
                    new_task.category.value,
                    new_task.due_date,
                    new_task.estimated_hours,
                    int(new_task.is_recurring),
                    new_task.recurring_pattern,
                    new_task.created_at,
                    new_task.created_at,
                ),
            )
            task_id = int(cur.lastrowid)
            self._replace_tags(cur, task_id, new_task.tags)
            self._replace_dependencies(cur, task_id, new_task.dependencies)
            return task_id

    def update(self, task_id: int, changes: Mapping[str, Any], *, updated_at: datetime) -> bool:
        assignments = ["updated_at=%s"]
        params: list[object] = [updated_at]
        for key, column in SCALAR_COLUMNS.items():
            if key in changes:
                assignments.append(f"{column}=%s")
                params.append(_db_value(changes[key]))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE tasks SET {', '.join(assignments)} WHERE task_id=%s",
                tuple(params + [int(task_id)]),
            )
            found = cur.rowcount > 0
            if found and "tags" in changes:
                self._replace_tags(cur, int(task_id), changes["tags"])
            if found and "dependencies" in changes:
                self._replace_dependencies(cur, int(task_id), changes["dependencies"])
            return found

    def add_comment(self, task_id: int, *, user_id: int, text: str, created_at: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO task_comments(task_id, user_id, comment, created_at) VALUES(%s,%s,%s,%s)",
                (int(task_id), int(user_id), text, created_at),
            )
            comment_id = int(cur.lastrowid)
            cur.execute("UPDATE tasks SET updated_at=%s WHERE task_id=%s", (created_at, int(task_id)))
            return comment_id

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO task_time_entries(task_id, start_time, end_time, duration_minutes, work_date, description)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (int(task_id), start_time, end_time, int(duration), work_date, description),
            )
            return int(cur.lastrowid)

    def delete(self, task_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM tasks WHERE task_id=%s", (int(task_id),))
            return cur.rowcount > 0
