from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from typing import Optional

from flask import jsonify, session

from ..core.enums import Role


@dataclass(frozen=True)
class Caller:
    user_id: int
    role: Role


def _session_role() -> Optional[Role]:
    try:
        return Role(session.get("role", Role.EMPLOYEE.value))
    except ValueError:
        return None


def _has_user_id() -> bool:
    try:
        int(session["user_id"])
    except (KeyError, TypeError, ValueError):
        return False
    return True


def current_caller() -> Caller:
    """Identity placed in the session by the external identity provider."""

    return Caller(user_id=int(session["user_id"]), role=Role(session.get("role", Role.EMPLOYEE.value)))


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not _has_user_id():
            return jsonify({"error": "Unauthorized"}), 401
        if _session_role() is None:
            return jsonify({"error": "Forbidden"}), 403
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    allowed = set(roles)

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if not _has_user_id():
                return jsonify({"error": "Unauthorized"}), 401
            if _session_role() not in allowed:
                return jsonify({"error": "Forbidden"}), 403
            return view(*args, **kwargs)

        return wrapper

    return decorator
