"""
mfg_erp/security.py

Access control helpers.

Key rules:
- The engine authorizes against an explicit ActingUser{id, role} argument,
  never against ambient session state.
- HTTP routes derive the ActingUser from Flask-Login's current_user and may
  additionally gate on role with @roles_required (UI is never trusted).

Roles:
- owner: full access, may skip batch stages, delete batches, transfer funds.
- incharge: procurement, manufacturing, transfer initiation.
- shopkeeper: confirms wholesale transfers, sells, records payments on own sales.

IMPORTANT:
- Decorators must preserve wrapped function metadata to avoid Flask endpoint collisions.
  We use functools.wraps everywhere.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Iterable

from flask import jsonify
from flask_login import current_user

from .errors import Unauthorized
from .models import Role


@dataclass(frozen=True)
class ActingUser:
    """The identity an operation runs as."""

    id: int
    role: Role

    def __post_init__(self):
        # Accept plain strings ("owner") from callers and tests
        object.__setattr__(self, "role", Role(self.role))

    @property
    def is_owner(self) -> bool:
        return self.role is Role.OWNER

    @classmethod
    def from_user(cls, user) -> "ActingUser":
        return cls(id=user.id, role=user.role)


def require_role(actor: ActingUser, roles: Iterable[Role | str], action: str = "perform this action") -> None:
    """Raise Unauthorized unless actor.role is one of roles."""
    allowed = {Role(r) for r in roles}
    if actor.role not in allowed:
        names = ", ".join(sorted(r.value for r in allowed))
        raise Unauthorized(f"Only {names} may {action}.")


def acting_user() -> ActingUser:
    """ActingUser for the logged-in user of the current request."""
    if not current_user.is_authenticated:
        raise Unauthorized("Authentication required.")
    return ActingUser.from_user(current_user)


def _forbidden(message: str = "Access denied."):
    """Consistent JSON 403."""
    return jsonify({"success": False, "error": Unauthorized.code, "message": message}), 403


def roles_required(*roles: Role | str) -> Callable[..., Any]:
    """
    Decorator factory: allow the view only for the given roles.

    Usage:
        @roles_required(Role.OWNER, Role.INCHARGE)
        def save_purchase(): ...
    """
    allowed = {Role(r) for r in roles}

    def decorator(view_func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(view_func)
        def wrapper(*args: Any, **kwargs: Any):
            if not current_user.is_authenticated:
                return _forbidden("Authentication required.")
            if current_user.role not in allowed:
                return _forbidden()
            return view_func(*args, **kwargs)

        return wrapper

    return decorator
