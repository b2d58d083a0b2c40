from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from functools import wraps
from typing import Any

from flask import abort, g, jsonify

from app.archreview.models import User


@dataclass(frozen=True)
class Actor:
    """
    Who is performing a lifecycle operation.

    Built once per request from the logged-in user and passed explicitly into
    every service call; services never read the identity from ambient state.
    """

    identity: str
    roles: frozenset[str] = field(default_factory=frozenset)
    user_id: int | None = None

    def has_role(self, role: Any) -> bool:
        key = getattr(role, "value", role)
        return key in self.roles


def actor_from_user(user: User) -> Actor:
    return Actor(
        identity=user.email,
        roles=user.role_keys(),
        user_id=user.id,
    )


def current_actor() -> Actor:
    u: User | None = getattr(g, "current_user", None)
    if not u:
        # require_permission should prevent this.
        raise RuntimeError("No current user")
    return actor_from_user(u)


def user_has_permission(user: User | None, permission_key: str) -> bool:
    if not user or not user.is_active:
        return False
    return permission_key in user.permission_keys()


def require_permission(permission_key: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            # Unauthenticated -> 401 (API clients log in via /auth/login).
            if not user or not user.is_active:
                return jsonify({"error": {"code": "UNAUTHENTICATED", "message": "Login required."}}), 401
            # Authenticated but unauthorized -> 403
            if not user_has_permission(user, permission_key):
                g.missing_permission = permission_key
                abort(403)
            return fn(*args, **kwargs)

        return wrapped

    return decorator
