from __future__ import annotations

import time
import uuid
from collections import defaultdict, deque

from flask import Blueprint, current_app, g, jsonify, request, session
from werkzeug.security import check_password_hash

from app.archreview.audit import record_event
from app.archreview.db import db_session
from app.archreview.models import User
from app.archreview.rbac import actor_from_user

bp = Blueprint("auth", __name__)


class LoginThrottle:
    """At most ``limit`` login attempts per client within ``window`` seconds."""

    def __init__(self, limit: int = 5, window: float = 300.0) -> None:
        self.limit = limit
        self.window = window
        self._hits: dict[str, deque[float]] = defaultdict(deque)

    def _prune(self, key: str, now: float) -> deque[float]:
        hits = self._hits[key]
        while hits and hits[0] <= now - self.window:
            hits.popleft()
        return hits

    def blocked(self, key: str) -> bool:
        return len(self._prune(key, time.monotonic())) >= self.limit

    def hit(self, key: str) -> None:
        self._hits[key].append(time.monotonic())

    def reset(self, key: str) -> None:
        self._hits.pop(key, None)


throttle = LoginThrottle()


def load_current_user() -> None:
    """
    Resolve g.current_user from the signed session cookie and tag the request
    with a request_id (taken from X-Request-ID when the proxy sends one).
    """
    g.request_id = getattr(g, "request_id", None) or request.headers.get("X-Request-ID") or uuid.uuid4().hex
    g.current_user = None

    user_id = session.get("user_id")
    if not user_id:
        return
    try:
        user = db_session().get(User, int(user_id))
    except Exception as e:
        current_app.logger.error("load_current_user DB error (clearing session): %s", e)
        user = None
    if user is None or not user.is_active:
        session.pop("user_id", None)
        return
    g.current_user = user


def _credentials() -> tuple[str, str]:
    data = (request.get_json(silent=True) or {}) if request.is_json else request.form
    return str(data.get("email") or "").strip().lower(), str(data.get("password") or "")


@bp.post("/login")
def login_post():
    email, password = _credentials()
    client = request.remote_addr or "unknown"

    if throttle.blocked(client):
        return jsonify({"error": {"code": "RATE_LIMITED", "message": "Too many login attempts. Please wait 5 minutes."}}), 429
    throttle.hit(client)

    s = db_session()
    user = s.query(User).filter(User.email == email).one_or_none()
    if user is None or not user.is_active or not check_password_hash(user.password_hash, password):
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=email,
            reason="Invalid credentials",
        )
        s.commit()
        current_app.logger.info("Login failed for %s (request_id=%s)", email, g.request_id)
        return jsonify({"error": {"code": "INVALID_CREDENTIALS", "message": "Invalid credentials."}}), 401

    session.clear()
    session["user_id"] = user.id
    throttle.reset(client)

    actor = actor_from_user(user)
    record_event(s, actor=actor, action="auth.login", entity_type="User", entity_id=str(user.id))
    s.commit()
    return jsonify({"email": actor.identity, "roles": sorted(actor.roles)})


@bp.get("/logout")
def logout():
    user = g.current_user
    if user is not None:
        s = db_session()
        record_event(s, actor=actor_from_user(user), action="auth.logout", entity_type="User", entity_id=str(user.id))
        s.commit()
    session.clear()
    return jsonify({"ok": True})
