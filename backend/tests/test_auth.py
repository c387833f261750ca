"""Tests for registration, login, logout and role gating."""

from conftest import PASSWORD, auth
from elearning.config import settings
from elearning.models import Role
from elearning.routers.auth import login_limiter


class TestRegisterAndLogin:

    def test_register_creates_student(self, client):
        r = client.post("/api/auth/register", json={"email": "New@Example.com", "password": "pass1234", "name": "New"})
        assert r.status_code == 201
        body = r.json()
        assert body["success"] is True
        assert body["data"]["role"] == "STUDENT"
        assert body["data"]["email"] == "new@example.com"
        assert "password_hash" not in body["data"]

    def test_register_duplicate_email_conflicts(self, client, student):
        r = client.post("/api/auth/register", json={"email": student.email, "password": "pass1234", "name": "Dup"})
        assert r.status_code == 409
        assert r.json() == {"success": False, "error": "email already registered"}

    def test_register_rejects_bad_payload(self, client):
        r = client.post("/api/auth/register", json={"email": "not-an-email", "password": "x", "name": ""})
        assert r.status_code == 400
        body = r.json()
        assert body["success"] is False
        assert body["error"] == "validation error"
        fields = {d["loc"][-1] for d in body["details"]}
        assert {"email", "password", "name"} <= fields

    def test_login_returns_token_and_sets_cookie(self, client, student):
        r = client.post("/api/auth/login", json={"email": student.email, "password": PASSWORD})
        assert r.status_code == 200
        data = r.json()["data"]
        assert data["user"]["id"] == student.id
        assert data["access_token"]
        assert settings.AUTH_COOKIE_NAME in r.cookies
        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert me.json()["data"]["email"] == student.email

    def test_cookie_alone_authenticates(self, client, student):
        client.post("/api/auth/login", json={"email": student.email, "password": PASSWORD})
        r = client.get("/api/auth/me")
        assert r.status_code == 200
        assert r.json()["data"]["id"] == student.id

    def test_login_wrong_password(self, client, student):
        r = client.post("/api/auth/login", json={"email": student.email, "password": "wrong-password"})
        assert r.status_code == 401
        assert r.json()["error"] == "invalid credentials"

    def test_login_deactivated_account(self, client, make_user):
        u = make_user(Role.STUDENT, is_active=False)
        r = client.post("/api/auth/login", json={"email": u.email, "password": PASSWORD})
        assert r.status_code == 403

    def test_login_is_rate_limited(self, client, student, monkeypatch):
        monkeypatch.setattr(login_limiter, "max_requests", 2)
        for _ in range(2):
            client.post("/api/auth/login", json={"email": student.email, "password": "wrong-password"})
        r = client.post("/api/auth/login", json={"email": student.email, "password": PASSWORD})
        assert r.status_code == 429
        assert int(r.headers["Retry-After"]) >= 1


class TestSession:

    def test_logout_revokes_token(self, client, student):
        token = client.post("/api/auth/login", json={"email": student.email, "password": PASSWORD}).json()["data"]["access_token"]
        client.cookies.clear()
        h = {"Authorization": f"Bearer {token}"}
        assert client.post("/api/auth/logout", headers=h).status_code == 200
        r = client.get("/api/auth/me", headers=h)
        assert r.status_code == 401
        assert r.json()["error"] == "token revoked"

    def test_missing_and_garbage_tokens(self, client):
        assert client.get("/api/auth/me").status_code == 401
        r = client.get("/api/auth/me", headers={"Authorization": "Bearer nope"})
        assert r.status_code == 401
        assert r.json()["error"] == "invalid token"

    def test_deactivated_user_token_rejected(self, client, admin, student):
        h = auth(student)
        client.patch(f"/api/users/{student.id}/status", json={"is_active": False}, headers=auth(admin))
        assert client.get("/api/auth/me", headers=h).status_code == 401


class TestRoleGating:

    def test_student_cannot_reach_admin_routes(self, client, student):
        h = auth(student)
        assert client.get("/api/users", headers=h).status_code == 403
        assert client.post("/api/courses", json={"title": "X"}, headers=h).status_code == 403
        assert client.get("/api/analytics/admin", headers=h).status_code == 403

    def test_sub_admin_reads_but_does_not_write_users(self, client, sub_admin):
        h = auth(sub_admin)
        assert client.get("/api/users", headers=h).status_code == 200
        r = client.post("/api/users", json={"email": "x@example.com", "name": "X", "password": "pass1234"}, headers=h)
        assert r.status_code == 403

    def test_health_is_public(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["data"]["status"] == "ok"
        assert r.headers.get("X-Request-ID")

    def test_unknown_route_uses_envelope(self, client):
        r = client.get("/api/does-not-exist")
        assert r.status_code == 404
        assert r.json()["success"] is False
