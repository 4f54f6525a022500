from __future__ import annotations

import math
from enum import Enum
from typing import Any, Optional, Type, TypeVar

from ..core.constants import MAX_EMAIL_LENGTH
from ..core.exceptions import ValidationError

E = TypeVar("E", bound=Enum)


def require_non_empty(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_min_length(value: Optional[str], field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def require_max_length(value: str, field_name: str, max_len: int) -> str:
    if len(value) > max_len:
        raise ValidationError(f"{field_name} must be at most {max_len} characters")
    return value


def require_choice(value: Any, enum_cls: Type[E], field_name: str) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Valid {field_name} is required ({choices})")


def optional_choice(value: Any, enum_cls: Type[E]) -> Optional[E]:
    """Lenient enum lookup for query filters: unknown values mean "no filter"."""
    try:
        return enum_cls(value)
    except ValueError:
        return None


def require_email(value: Any) -> str:
    email = require_non_empty(value, "Email").lower()
    local, _, domain = email.partition("@")
    if not local or "." not in domain:
        raise ValidationError("Valid email is required")
    if len(email) > MAX_EMAIL_LENGTH:
        raise ValidationError(f"Email must be at most {MAX_EMAIL_LENGTH} characters")
    return email


def require_non_negative(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if not math.isfinite(number):
        raise ValidationError(f"{field_name} must be a number")
    if number < 0:
        raise ValidationError(f"{field_name} cannot be negative")
    return number


def require_progress(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError("Progress must be an integer between 0 and 100")
    try:
        progress = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("Progress must be an integer between 0 and 100")
    if progress != float(value) or not 0 <= progress <= 100:
        raise ValidationError("Progress must be an integer between 0 and 100")
    return progress


def require_id(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"Valid {field_name} ID is required")
    try:
        ident = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"Valid {field_name} ID is required")
    if ident <= 0:
        raise ValidationError(f"Valid {field_name} ID is required")
    return ident


def positive_int_or_default(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return default
    return number if number > 0 else default
