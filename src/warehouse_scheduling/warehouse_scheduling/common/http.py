"""Shared helpers for the JSON controllers."""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Optional

from flask import jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    UniqueConstraintError,
    ValidationError,
)
from ..users.service import SessionUser

logger = logging.getLogger(__name__)

_STATUS = (
    (ValidationError, 400),
    (UniqueConstraintError, 400),
    (NotFoundError, 404),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
)


def error_response(message: str, status: int, **extra: Any):
    return jsonify({"message": message, **extra}), status


def json_errors(view):
    """Translate service exceptions into JSON responses."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except (ValidationError, UniqueConstraintError, NotFoundError, AuthenticationError, AuthorizationError) as e:
            status = next(code for exc, code in _STATUS if isinstance(e, exc))
            return error_response(str(e), status)
        except Exception as e:
            logger.exception("Unhandled error in %s %s", request.method, request.path)
            return error_response("Internal server error", 500, error=str(e))

    return wrapper


def current_user() -> Optional[SessionUser]:
    if "user_id" not in session:
        return None
    try:
        role = Role(session.get("role"))
    except ValueError:
        return None
    return SessionUser(
        user_id=int(session["user_id"]),
        name=session.get("name") or "",
        role=role,
        employee_id=session.get("employee_id"),
        department=session.get("department"),
    )


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if current_user() is None:
            return error_response("Authentication required", 401)
        return view(*args, **kwargs)

    return wrapper


def role_required(*roles: Role):
    allowed = {Role(r) for r in roles}

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            user = current_user()
            if user is None:
                return error_response("Authentication required", 401)
            if user.role not in allowed:
                return error_response("You do not have permission to perform this action", 403)
            return view(*args, **kwargs)

        return wrapper

    return decorator


def json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def actor_name(body: dict, key: str) -> Optional[str]:
    """Explicit body value, falling back to the logged-in user's name."""

    if body.get(key):
        return str(body[key])
    user = current_user()
    return user.name if user else None
