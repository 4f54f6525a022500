from __future__ import annotations

from dataclasses import dataclass

from .database.connection import DBConfig, DatabaseConnection
from .reports.service import TaskReportService
from .tasks.mysql_task_repository import MySQLTaskRepository
from .tasks.service import TaskService
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    users_repo: MySQLUserRepository
    tasks_repo: MySQLTaskRepository

    auth_service: AuthService
    user_service: UserService
    task_service: TaskService
    report_service: TaskReportService


def build_container(*, db_config: dict) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    users_repo = MySQLUserRepository(conn)
    tasks_repo = MySQLTaskRepository(conn)

    return Container(
        conn=conn,
        users_repo=users_repo,
        tasks_repo=tasks_repo,
        auth_service=AuthService(users_repo),
        user_service=UserService(users_repo),
        task_service=TaskService(tasks_repo, users_repo),
        report_service=TaskReportService(tasks_repo),
    )
