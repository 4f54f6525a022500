"""Shared pieces of the JSON controller layer."""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Optional

from flask import jsonify, request, session

from ..core.enums import MANAGER_ROLES, Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from ..tasks.policy import Caller

logger = logging.getLogger(__name__)

STATUS_CODES = {
    ValidationError: 400,
    AuthenticationError: 401,
    AuthorizationError: 403,
    NotFoundError: 404,
}


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def camelize(value: Any) -> Any:
    """Recursively rename snake_case dict keys to the API's camelCase."""
    if isinstance(value, dict):
        return {_camel(k) if isinstance(k, str) else k: camelize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [camelize(v) for v in value]
    return value


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def current_caller() -> Optional[Caller]:
    user_id = session.get("user_id")
    role = session.get("role")
    if user_id is None or role is None:
        return None
    try:
        return Caller(user_id=int(user_id), role=Role(role))
    except ValueError:
        return None


def error_response(exc: DomainError):
    status = STATUS_CODES.get(type(exc), 400)
    return jsonify({"success": False, "message": str(exc)}), status


def server_error(context: str):
    """Log the active exception and answer with a generic 500."""
    logger.exception("%s error", context)
    return jsonify({"success": False, "message": "Server error"}), 500


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if current_caller() is None:
            return jsonify({"success": False, "message": "Not authenticated"}), 401
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    allowed = frozenset(roles)

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            caller = current_caller()
            if caller is None:
                return jsonify({"success": False, "message": "Not authenticated"}), 401
            if caller.role not in allowed:
                return jsonify({"success": False, "message": "Access denied"}), 403
            return view(*args, **kwargs)

        return wrapper

    return decorator


def manager_required(view):
    return roles_required(*MANAGER_ROLES)(view)
