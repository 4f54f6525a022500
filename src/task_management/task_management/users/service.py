from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.datetime_utils import now_utc
from ..common.validators import require_email, require_max_length, require_min_length, require_non_empty
from ..core.constants import MAX_NAME_LENGTH, MIN_PASSWORD_LENGTH
from ..core.enums import MANAGER_ROLES, Role
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from .model import User
from .repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: int
    name: str
    email: str
    role: Role
    department: Optional[str]


def _department(value: Optional[str]) -> Optional[str]:
    if value is not None and not isinstance(value, str):
        raise ValidationError("Department must be text")
    department = (value or "").strip() or None
    if department is not None:
        require_max_length(department, "Department", MAX_NAME_LENGTH)
    return department


def _to_session_user(user: User) -> SessionUser:
    return SessionUser(
        user_id=user.user_id,
        name=user.name,
        email=user.email,
        role=user.role,
        department=user.department,
    )


class AuthService:
    """Use cases: login and self-service signup."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, email: str, password: str) -> SessionUser:
        user = self._users.get_by_email((email or "").strip().lower())
        if not user or not user.is_active:
            raise AuthenticationError("Invalid email or password")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # e.g. placeholder hashes like 'CHANGE_ME' from seed.sql
            ok = False

        if not ok:
            raise AuthenticationError("Invalid email or password")

        self._users.touch_last_login(user.user_id, now_utc())
        logger.info("User %s logged in", user.user_id)
        return _to_session_user(user)

    def signup(self, *, name: str, email: str, password: str, department: Optional[str] = None) -> SessionUser:
        """Self-registration always yields an employee; elevated roles come from an admin."""
        name = require_max_length(require_non_empty(name, "Name"), "Name", MAX_NAME_LENGTH)
        email = require_email(email)
        require_min_length(password, "Password", MIN_PASSWORD_LENGTH)

        if self._users.get_by_email(email):
            raise ValidationError("User already exists with this email")

        user_id = self._users.create_user(
            name=name,
            email=email,
            password_hash=generate_password_hash(password),
            role=Role.EMPLOYEE,
            department=_department(department),
        )
        logger.info("User %s signed up", user_id)
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return _to_session_user(user)


class UserService:
    """Use cases: profile management and the admin account flow."""

    def __init__(self, users: UserRepository):
        self._users = users

    def get_profile(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found")
        return user

    def assigned_task_ids(self, user_id: int) -> list[int]:
        return list(self._users.list_assigned_task_ids(int(user_id)))

    def update_profile(self, *, user_id: int, name: str, email: str, department: Optional[str]) -> User:
        user = self.get_profile(user_id)
        name = require_max_length(require_non_empty(name, "Name"), "Name", MAX_NAME_LENGTH)
        email = require_email(email)

        other = self._users.get_by_email(email)
        if other and other.user_id != user.user_id:
            raise ValidationError("Email is already in use")

        self._users.update_profile(
            user.user_id,
            name=name,
            email=email,
            department=_department(department),
        )
        return self.get_profile(user.user_id)

    def change_password(self, *, user_id: int, current_password: str, new_password: str) -> None:
        user = self.get_profile(user_id)
        try:
            ok = check_password_hash(user.password_hash, current_password or "")
        except ValueError:
            ok = False
        if not ok:
            raise ValidationError("Current password is incorrect")

        require_min_length(new_password, "New password", MIN_PASSWORD_LENGTH)
        if not self._users.update_password_hash(user.user_id, generate_password_hash(new_password)):
            raise ValidationError("Password update failed")

    def create_account(
        self,
        *,
        current_role: Role,
        name: str,
        email: str,
        password: str,
        role: Role,
        department: Optional[str] = None,
    ) -> int:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Access denied")

        name = require_max_length(require_non_empty(name, "Name"), "Name", MAX_NAME_LENGTH)
        email = require_email(email)
        require_min_length(password, "Password", MIN_PASSWORD_LENGTH)

        if role == Role.ADMIN:
            raise ValidationError("Admin accounts cannot be created from this flow")
        if self._users.get_by_email(email):
            raise ValidationError("User already exists with this email")

        user_id = self._users.create_user(
            name=name,
            email=email,
            password_hash=generate_password_hash(password),
            role=role,
            department=_department(department),
        )
        logger.info("Account %s (%s) created", user_id, role.value)
        return user_id

    def list_directory(self, *, current_role: Role) -> Sequence[User]:
        if current_role not in MANAGER_ROLES:
            raise AuthorizationError("Access denied")
        return self._users.list_directory()
