from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import User


class UserRepository(Protocol):
    """Repository interface for User.

    Note (DIP): services depend on this interface, not on a concrete DB.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def create_user(
        self,
        *,
        name: str,
        email: str,
        password_hash: str,
        role: Role,
        department: Optional[str],
    ) -> int:
        raise NotImplementedError

    def update_profile(self, user_id: int, *, name: str, email: str, department: Optional[str]) -> None:
        raise NotImplementedError

    def update_password_hash(self, user_id: int, password_hash: str) -> bool:
        raise NotImplementedError

    def touch_last_login(self, user_id: int, at: datetime) -> None:
        raise NotImplementedError

    def list_directory(self) -> Sequence[User]:
        raise NotImplementedError

    # Back-references: the user's assigned-task list.
    def add_assigned_task(self, user_id: int, task_id: int) -> None:
        raise NotImplementedError

    def remove_assigned_task(self, user_id: int, task_id: int) -> None:
        raise NotImplementedError

    def list_assigned_task_ids(self, user_id: int) -> Sequence[int]:
        raise NotImplementedError
