"""Tests for session login and route protection."""

from tests.conftest import ADMIN_PASSWORD, WORKER_PASSWORD


async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["database"] == "connected"
    assert resp.json()["version"] == "1.0.0"


async def test_login_sets_session(client, admin_user):
    resp = await client.post("/api/auth/login", json={"email": "admin@example.com", "password": ADMIN_PASSWORD})

    assert resp.status_code == 200
    assert resp.json()["data"]["email"] == "admin@example.com"
    assert "passwordHash" not in resp.json()["data"]
    assert "po_session" in resp.cookies

    me = await client.get("/api/auth/user")
    assert me.status_code == 200
    assert me.json()["data"]["role"] == "admin"


async def test_login_wrong_password(client, admin_user):
    resp = await client.post("/api/auth/login", json={"email": "admin@example.com", "password": "nope"})

    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "UNAUTHORIZED"


async def test_login_unknown_user(client):
    resp = await client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "x"})
    assert resp.status_code == 401


async def test_login_with_damaged_stored_hash(client, session, admin_user):
    admin_user.password_hash = "pbkdf2_sha256$abc$s$h"
    await session.commit()

    resp = await client.post("/api/auth/login", json={"email": "admin@example.com", "password": ADMIN_PASSWORD})

    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "UNAUTHORIZED"


async def test_user_requires_login(client):
    resp = await client.get("/api/auth/user")
    assert resp.status_code == 401


async def test_logout_clears_session(auth_client):
    assert (await auth_client.post("/api/auth/logout")).status_code == 200
    assert (await auth_client.get("/api/auth/user")).status_code == 401


async def test_protected_routes_require_login(client):
    for method, url in [
        ("GET", "/api/po-template/db-status"),
        ("GET", "/api/po-template/history"),
        ("POST", "/api/po-template/reset-db"),
        ("GET", "/api/v1/orders"),
        ("GET", "/api/v1/dashboard"),
        ("GET", "/api/v1/attachments/any/download"),
    ]:
        resp = await client.request(method, url)
        assert resp.status_code == 401, url


async def test_reset_db_requires_admin(client, worker_user):
    await client.post("/api/auth/login", json={"email": worker_user.email, "password": WORKER_PASSWORD})

    resp = await client.post("/api/po-template/reset-db")
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "FORBIDDEN"


async def test_reset_db_as_admin(auth_client):
    resp = await auth_client.post("/api/po-template/reset-db")
    assert resp.status_code == 200
    assert resp.json()["data"]["purchaseOrders"] == 0
