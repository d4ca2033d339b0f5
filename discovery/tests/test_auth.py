from __future__ import annotations

from fastapi.testclient import TestClient

from discovery.app import app, get_db
from discovery.db.local_store import LocalStore

client = TestClient(app)


def _login_user(c):
    c.post("/auth/login", json={"username": "user", "password": "user123"})


def _login_admin(c):
    c.post("/auth/login", json={"username": "admin", "password": "admin123"})


# ── Login / Logout ───────────────────────────────────────────────────────


def test_login_success_user():
    resp = client.post("/auth/login", json={"username": "user", "password": "user123"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["user"]["username"] == "user"
    assert body["user"]["role"] == "user"
    assert body["user"]["id"]


def test_login_success_admin():
    resp = client.post("/auth/login", json={"username": "admin", "password": "admin123"})
    assert resp.status_code == 200
    assert resp.json()["user"]["role"] == "admin"


def test_login_wrong_password():
    resp = client.post("/auth/login", json={"username": "user", "password": "wrong"})
    assert resp.status_code == 401


def test_login_unknown_user():
    resp = client.post("/auth/login", json={"username": "nobody", "password": "x"})
    assert resp.status_code == 401


def test_login_rejects_empty_fields():
    resp = client.post("/auth/login", json={"username": "", "password": ""})
    assert resp.status_code == 422


def test_auth_me_when_logged_in():
    _login_user(client)
    resp = client.get("/auth/me")
    assert resp.status_code == 200
    assert resp.json()["username"] == "user"


def test_auth_me_not_logged_in():
    c = TestClient(app)  # fresh client, no session
    resp = c.get("/auth/me")
    assert resp.status_code == 401


def test_logout():
    _login_user(client)
    resp = client.post("/auth/logout")
    assert resp.status_code == 200
    assert resp.json()["status"] == "logged_out"
    # Session should be cleared
    resp = client.get("/auth/me")
    assert resp.status_code == 401


# ── Route protection ─────────────────────────────────────────────────────


def test_analytics_requires_login():
    c = TestClient(app)
    assert c.get("/analytics").status_code == 401


def test_analytics_requires_admin():
    _login_user(client)
    resp = client.get("/analytics")
    assert resp.status_code == 403


def test_analytics_allowed_for_admin():
    _login_admin(client)
    resp = client.get("/analytics")
    assert resp.status_code == 200


# ── Public endpoints stay public ─────────────────────────────────────────


def test_health_is_public():
    c = TestClient(app)
    assert c.get("/health").status_code == 200


def test_deal_breakers_is_public():
    c = TestClient(app)
    assert c.get("/deal-breakers").status_code == 200


def test_feeds_are_public():
    app.dependency_overrides[get_db] = lambda: LocalStore()
    try:
        c = TestClient(app)
        assert c.get("/businesses").status_code == 200
        assert c.get("/businesses", params={"feed_strategy": "mixed"}).status_code == 200
        assert c.get("/businesses/special", params={"type": "new"}).status_code == 200
    finally:
        app.dependency_overrides.pop(get_db, None)
