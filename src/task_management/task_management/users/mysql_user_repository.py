from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import Role, UserStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import User
from .repository import UserRepository

_USER_COLUMNS = "user_id, name, email, password_hash, role, department, status, joined_date, last_login"


def _row_to_user(row: dict) -> User:
    return User(
        user_id=int(row["user_id"]),
        name=row["name"],
        email=row["email"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        department=row.get("department"),
        status=UserStatus(row.get("status") or UserStatus.ACTIVE.value),
        joined_date=row.get("joined_date"),
        last_login=row.get("last_login"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE user_id=%s", (int(user_id),))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE email=%s", (email,))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def create_user(
        self,
        *,
        name: str,
        email: str,
        password_hash: str,
        role: Role,
        department: Optional[str],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(name, email, password_hash, role, department, status)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (name, email, password_hash, role.value, department, UserStatus.ACTIVE.value),
            )
            return int(cur.lastrowid)

    def update_profile(self, user_id: int, *, name: str, email: str, department: Optional[str]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET name=%s, email=%s, department=%s WHERE user_id=%s",
                (name, email, department, int(user_id)),
            )

    def update_password_hash(self, user_id: int, password_hash: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET password_hash=%s WHERE user_id=%s", (password_hash, int(user_id)))
            return cur.rowcount > 0

    def touch_last_login(self, user_id: int, at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET last_login=%s WHERE user_id=%s", (at, int(user_id)))

    def list_directory(self) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users ORDER BY name ASC, user_id ASC")
            return [_row_to_user(r) for r in fetchall(cur)]

    def add_assigned_task(self, user_id: int, task_id: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT IGNORE INTO user_assigned_tasks(user_id, task_id) VALUES(%s,%s)",
                (int(user_id), int(task_id)),
            )

    def remove_assigned_task(self, user_id: int, task_id: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM user_assigned_tasks WHERE user_id=%s AND task_id=%s",
                (int(user_id), int(task_id)),
            )

    def list_assigned_task_ids(self, user_id: int) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT task_id FROM user_assigned_tasks WHERE user_id=%s ORDER BY task_id ASC",
                (int(user_id),),
            )
            return [int(r["task_id"]) for r in fetchall(cur)]
