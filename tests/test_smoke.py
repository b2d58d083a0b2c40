from werkzeug.security import generate_password_hash

from app.archreview.db import session_scope
from app.archreview.models import AuditEvent, Permission, Role, User


def _seed_admin(app):
    with session_scope(app) as s:
        p = Permission(key="reviews.view", name="Solution Reviews: view")
        r = Role(key="ADMIN", name="Administrator")
        r.permissions.append(p)
        u = User(email="admin@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        u.roles.append(r)
        s.add_all([p, r, u])


def test_health_ok(app):
    client = app.test_client()
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True
    assert client.get("/healthz").status_code == 200


def test_index_points_at_api(app):
    r = app.test_client().get("/")
    assert r.status_code == 200
    assert r.json["api"] == "/api/v1/solution-review"


def test_unknown_route_is_json_404(app):
    r = app.test_client().get("/nope")
    assert r.status_code == 404
    assert r.json["error"]["code"] == "NOT_FOUND"


def test_login_and_logout(app):
    _seed_admin(app)
    client = app.test_client()

    r = client.get("/api/v1/solution-review/system-view")
    assert r.status_code == 401
    assert r.json["error"]["code"] == "UNAUTHENTICATED"

    r = client.post("/auth/login", data={"email": "admin@example.com", "password": "pw"})
    assert r.status_code == 200
    assert r.json == {"email": "admin@example.com", "roles": ["ADMIN"]}

    r = client.get("/api/v1/solution-review/system-view")
    assert r.status_code == 200
    assert r.json == []

    assert client.get("/auth/logout").json == {"ok": True}
    assert client.get("/api/v1/solution-review/system-view").status_code == 401

    with session_scope(app) as s:
        events = s.query(AuditEvent).order_by(AuditEvent.id.asc()).all()
        actions = [e.action for e in events]
        client_ips = {e.client_ip for e in events}
    assert actions == ["auth.login", "auth.logout"]
    assert client_ips == {"127.0.0.1"}


def test_bad_password_is_rejected(app):
    _seed_admin(app)
    r = app.test_client().post("/auth/login", json={"email": "admin@example.com", "password": "wrong"})
    assert r.status_code == 401
    assert r.json["error"]["code"] == "INVALID_CREDENTIALS"
