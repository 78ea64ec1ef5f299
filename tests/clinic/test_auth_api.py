from dataclasses import replace

from fastapi import status
from httpx import ASGITransport, AsyncClient

from src.clinic.infra.db.bootstrap import build_inmemory
from src.clinic.infra.db.seed import DEMO_PASSWORD
from src.clinic.main import create_app


async def test_register_returns_user_and_working_token(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.post(
            "/api/auth/register",
            json={"name": "Nina Provider", "email": "nina@clinic.example.com", "password": "s3cret!", "role": "provider"},
        )
        assert resp.status_code == status.HTTP_201_CREATED
        body = resp.json()
        assert body["user"]["email"] == "nina@clinic.example.com"
        assert body["user"]["role"] == "provider"
        assert "passwordHash" not in body["user"]
        assert "password_hash" not in body["user"]

        me = await ac.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
        assert me.status_code == status.HTTP_200_OK
        assert me.json()["id"] == body["user"]["id"]


async def test_register_duplicate_email_is_conflict(app, users):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.post(
            "/api/auth/register",
            json={"name": "Alice Again", "email": users["provider"].email, "password": "pw", "role": "scribe"},
        )
    assert resp.status_code == status.HTTP_409_CONFLICT
    assert resp.json()["error"] == "conflict"
    assert resp.json()["field"] == "email"


async def test_register_missing_fields_is_validation_error(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.post("/api/auth/register", json={"name": "No Email"})
    assert resp.status_code == status.HTTP_400_BAD_REQUEST
    body = resp.json()
    assert body["error"] == "validation_error"
    assert {"email", "password", "role"} <= set(body["fields"])


async def test_register_with_closed_role_is_forbidden(settings):
    app = create_app(settings=replace(settings, registration_roles=frozenset({"provider"})), repositories=build_inmemory())
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.post(
            "/api/auth/register",
            json={"name": "Eve", "email": "eve@clinic.example.com", "password": "pw", "role": "admin"},
        )
    assert resp.status_code == status.HTTP_403_FORBIDDEN


async def test_login_with_demo_credentials(app, users):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        ok = await ac.post("/api/auth/login", json={"email": users["biller"].email, "password": DEMO_PASSWORD})
        assert ok.status_code == status.HTTP_200_OK
        assert ok.json()["user"]["role"] == "biller"
        assert ok.json()["token"]

        wrong = await ac.post("/api/auth/login", json={"email": users["biller"].email, "password": "nope"})
        assert wrong.status_code == status.HTTP_401_UNAUTHORIZED
        assert wrong.json()["detail"] == "invalid email or password"

        unknown = await ac.post("/api/auth/login", json={"email": "ghost@clinic.example.com", "password": "nope"})
        assert unknown.status_code == status.HTTP_401_UNAUTHORIZED


async def test_protected_routes_reject_missing_and_bad_tokens(app, demo):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        missing = await ac.get("/api/auth/me")
        assert missing.status_code == status.HTTP_401_UNAUTHORIZED
        assert missing.json()["error"] == "unauthenticated"
        assert missing.headers["www-authenticate"] == "Bearer"

        bad = await ac.get("/api/patients", headers={"Authorization": "Bearer not-a-token"})
        assert bad.status_code == status.HTTP_401_UNAUTHORIZED

        wrong_scheme = await ac.get("/api/patients", headers={"Authorization": "Basic abc"})
        assert wrong_scheme.status_code == status.HTTP_401_UNAUTHORIZED


async def test_logout_is_stateless(app, headers):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.post("/api/auth/logout", headers=headers["scribe"])
    assert resp.status_code == status.HTTP_200_OK
    assert "message" in resp.json()


async def test_admin_is_not_open_for_self_registration_by_default(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.post(
            "/api/auth/register",
            json={"name": "Mallory", "email": "mallory@clinic.example.com", "password": "pw", "role": "admin"},
        )
    assert resp.status_code == status.HTTP_403_FORBIDDEN
    assert resp.json()["detail"] == "forbidden: role not open for registration"


async def test_admin_registration_can_be_opened_explicitly(settings):
    roles = frozenset({"provider", "scribe", "biller", "admin"})
    app = create_app(settings=replace(settings, registration_roles=roles), repositories=build_inmemory())
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.post(
            "/api/auth/register",
            json={"name": "Root", "email": "root@clinic.example.com", "password": "pw", "role": "admin"},
        )
    assert resp.status_code == status.HTTP_201_CREATED
    assert resp.json()["user"]["role"] == "admin"
