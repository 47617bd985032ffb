"""Tests for authentication middleware and role-protected routes."""

import pytest
from httpx import AsyncClient

from call_session_api.config import settings
from call_session_api.time_utils import utc_now


@pytest.mark.asyncio
async def test_public_paths_bypass_auth(client: AsyncClient):
    """Test that public paths don't require authentication."""
    for path in ["/", "/health", "/docs", "/openapi.json"]:
        response = await client.get(path)
        assert response.status_code == 200, path


@pytest.mark.asyncio
async def test_health_reports_database(client: AsyncClient):
    response = await client.get("/health")

    data = response.json()
    assert data["status"] == "healthy"
    assert data["database_connected"] is True
    assert data["uptime"].startswith("Days: ")


@pytest.mark.asyncio
async def test_missing_authorization_header(client: AsyncClient):
    response = await client.get("/api/sessions")

    assert response.status_code == 401
    assert response.json() == {"detail": "authorization header is required"}


@pytest.mark.asyncio
@pytest.mark.parametrize("header", ["Token abc", "Bearer", "bearer abc", "Bearer a b"])
async def test_malformed_authorization_header(client: AsyncClient, header: str):
    response = await client.get("/api/sessions", headers={"Authorization": header})

    assert response.status_code == 401
    assert response.json()["detail"] == "invalid authorization header format"


@pytest.mark.asyncio
async def test_invalid_token(client: AsyncClient):
    response = await client.get("/api/profile", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["detail"] == "invalid token"


@pytest.mark.asyncio
async def test_token_for_deleted_user(client: AsyncClient, auth_headers, memory_db):
    memory_db.users.clear()

    response = await client.get("/api/profile", headers=auth_headers)

    assert response.status_code == 401
    assert response.json()["detail"] == "user not found"


@pytest.mark.asyncio
async def test_unauthorized_response_has_request_id(client: AsyncClient):
    response = await client.post("/api/sessions/start", json={"caller_id": "a", "callee_id": "b"})

    assert response.status_code == 401
    assert response.headers.get("X-Request-ID")


@pytest.mark.asyncio
async def test_profile(client: AsyncClient, auth_headers):
    response = await client.get("/api/profile", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["email"] == "agent@acme-calls.com"
    assert data["role"] == "user"
    assert "password" not in data


@pytest.mark.asyncio
async def test_register_and_login_flow(client: AsyncClient):
    response = await client.post(
        "/auth/register", json={"email": "new@acme-calls.com", "password": "pa55word"}
    )
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "User registered successfully"
    assert body["user"]["role"] == "user"
    assert set(body["user"]) == {"id", "email", "role", "created_at"}

    duplicate = await client.post(
        "/auth/register", json={"email": "new@acme-calls.com", "password": "pa55word"}
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"] == "user already exists"

    bad_login = await client.post(
        "/auth/login", json={"email": "new@acme-calls.com", "password": "wrong-one"}
    )
    assert bad_login.status_code == 401
    assert bad_login.json()["detail"] == "invalid credentials"

    login = await client.post(
        "/auth/login", json={"email": "new@acme-calls.com", "password": "pa55word"}
    )
    assert login.status_code == 200
    assert login.json()["token"]
    assert login.json()["user"]["email"] == "new@acme-calls.com"


@pytest.mark.asyncio
async def test_register_validation_is_400(client: AsyncClient):
    response = await client.post("/auth/register", json={"email": "nope", "password": "pa55word"})

    assert response.status_code == 400
    assert "email" in response.json()["detail"]


@pytest.mark.asyncio
async def test_register_rejects_password_over_72_bytes(client: AsyncClient):
    response = await client.post(
        "/auth/register", json={"email": "long@acme-calls.com", "password": "\u00e9" * 40}
    )

    assert response.status_code == 400
    assert "72 bytes" in response.json()["detail"]

    login = await client.post(
        "/auth/login", json={"email": "long@acme-calls.com", "password": "\u00e9" * 36 + "WRONG"}
    )
    assert login.status_code == 401


@pytest.mark.asyncio
async def test_admin_route_forbidden_for_user(client: AsyncClient, auth_headers):
    response = await client.get("/api/admin/users", headers=auth_headers)

    assert response.status_code == 403
    assert response.json()["detail"] == "insufficient permissions: required role admin"


@pytest.mark.asyncio
async def test_admin_route_allowed_for_admin(client: AsyncClient, auth_headers, admin_headers):
    response = await client.get("/api/admin/users", headers=admin_headers)

    assert response.status_code == 200
    emails = {user["email"] for user in response.json()["users"]}
    assert emails == {"agent@acme-calls.com", "supervisor@acme-calls.com"}


@pytest.mark.asyncio
async def test_admin_user_listing_follows_page_size_cap(client: AsyncClient, admin_headers):
    at_cap = await client.get(
        "/api/admin/users", params={"limit": settings.max_page_size}, headers=admin_headers
    )
    over_cap = await client.get(
        "/api/admin/users", params={"limit": settings.max_page_size + 1}, headers=admin_headers
    )

    assert at_cap.status_code == 200
    assert over_cap.status_code == 400


@pytest.mark.asyncio
async def test_admin_can_use_user_routes(client: AsyncClient, admin_headers):
    response = await client.get("/api/sessions", headers=admin_headers)

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_expired_token_rejected(client: AsyncClient, auth_headers, memory_db):
    from datetime import timedelta

    import jwt

    from call_session_api.config import settings

    user = next(iter(memory_db.users.values()))
    issued = utc_now() - timedelta(days=2)
    token = jwt.encode(
        {
            "user_id": str(user["id"]),
            "email": user["email"],
            "role": "user",
            "sub": str(user["id"]),
            "iss": settings.jwt_issuer,
            "iat": issued,
            "nbf": issued,
            "exp": issued + timedelta(hours=24),
        },
        settings.jwt_secret,
        algorithm="HS256",
    )

    response = await client.get("/api/profile", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "invalid token"
