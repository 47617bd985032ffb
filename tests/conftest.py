"""Pytest configuration and fixtures."""

import asyncio
import copy
import os
import uuid
from datetime import datetime
from typing import Any

# Set test environment variables BEFORE importing anything that loads settings
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "test-secret-key-for-call-sessions"
os.environ["JWT_ALGORITHM"] = "HS256"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

import call_session_api.config as config_module
from call_session_api.errors import (
    DuplicateUserError,
    EventTimeOutOfRangeError,
    SessionTimeOrderError,
)
from call_session_api.models import SessionFilter
from call_session_api.time_utils import one_year_before, utc_now

assert config_module.settings.bcrypt_rounds == 4, "Test setup failed: bcrypt_rounds should be 4"

# PostgreSQL sorts enum values by declaration order
_STATUS_ORDER = {"ongoing": 0, "completed": 1, "failed": 2}


class InMemoryDatabase:
    """Stand-in for ``Database`` with the same method contract.

    Each method yields to the event loop first so concurrent callers
    interleave the way they would on a real pool. The conditional end update
    is atomic (no await between check and write), and the check/unique
    constraints raise the same domain errors the asyncpg layer maps to.
    ``clock`` plays the role of the server clock for the event-time check.
    """

    def __init__(self, clock=utc_now):
        self.clock = clock
        self.sessions: dict[uuid.UUID, dict[str, Any]] = {}
        self.events: list[dict[str, Any]] = []
        self.users: dict[uuid.UUID, dict[str, Any]] = {}
        self.connected = True

    async def connect(self) -> None:
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False

    async def ping(self) -> bool:
        await asyncio.sleep(0)
        return self.connected

    # Sessions
    async def create_session(
        self,
        session_id: uuid.UUID,
        caller_id: str,
        callee_id: str,
        started_at: datetime,
        initial_metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        await asyncio.sleep(0)
        now = utc_now()
        row = {
            "id": session_id,
            "started_at": started_at,
            "ended_at": None,
            "caller_id": caller_id,
            "callee_id": callee_id,
            "status": "ongoing",
            "initial_metadata": copy.deepcopy(initial_metadata),
            "disposition": None,
            "created_at": now,
            "updated_at": now,
        }
        self.sessions[session_id] = row
        return dict(row)

    async def get_session(self, session_id: uuid.UUID) -> dict[str, Any] | None:
        await asyncio.sleep(0)
        row = self.sessions.get(session_id)
        return dict(row) if row else None

    async def end_session_if_ongoing(
        self,
        session_id: uuid.UUID,
        status: str,
        disposition: str,
        ended_at: datetime,
    ) -> dict[str, Any] | None:
        await asyncio.sleep(0)
        row = self.sessions.get(session_id)
        if row is None or row["status"] != "ongoing":
            return None
        if ended_at < row["started_at"]:
            raise SessionTimeOrderError()

        row.update(status=status, disposition=disposition, ended_at=ended_at, updated_at=utc_now())
        return dict(row)

    async def list_sessions(self, filters: SessionFilter) -> tuple[list[dict[str, Any]], int]:
        await asyncio.sleep(0)
        rows = [
            row
            for row in self.sessions.values()
            if (filters.start_date is None or row["started_at"] >= filters.start_date)
            and (filters.end_date is None or row["started_at"] <= filters.end_date)
            and (filters.status is None or row["status"] == filters.status)
            and (not filters.caller_id or row["caller_id"] == filters.caller_id)
            and (not filters.callee_id or row["callee_id"] == filters.callee_id)
        ]

        column = filters.sort_column

        def sort_key(row: dict[str, Any]) -> tuple:
            value = row[column]
            if column == "status":
                value = _STATUS_ORDER[value]
            # NULLs sort as the largest value, like PostgreSQL
            return (value is None, value if value is not None else 0, str(row["id"]))

        rows.sort(key=sort_key, reverse=filters.sort_order == "desc")
        page = rows[filters.offset : filters.offset + filters.limit]
        return [dict(row) for row in page], len(rows)

    # Events
    async def insert_event_if_ongoing(
        self,
        event_id: uuid.UUID,
        session_id: uuid.UUID,
        event_type: str,
        event_time: datetime,
        metadata: dict[str, Any] | None = None,
    ) -> tuple[str | None, dict[str, Any] | None]:
        await asyncio.sleep(0)
        session = self.sessions.get(session_id)
        if session is None or session["status"] != "ongoing":
            return (session["status"] if session else None), None
        if event_time < one_year_before(self.clock()):
            raise EventTimeOutOfRangeError()

        row = {
            "id": event_id,
            "session_id": session_id,
            "event_type": event_type,
            "event_time": event_time,
            "metadata": copy.deepcopy(metadata),
            "created_at": utc_now(),
        }
        self.events.append(row)
        return session["status"], dict(row)

    async def list_session_events(self, session_id: uuid.UUID) -> list[dict[str, Any]]:
        await asyncio.sleep(0)
        rows = [row for row in self.events if row["session_id"] == session_id]
        rows.sort(key=lambda row: (row["event_time"], row["created_at"]))
        return [dict(row) for row in rows]

    # Users
    async def user_exists(self, email: str) -> bool:
        await asyncio.sleep(0)
        return any(user["email"] == email for user in self.users.values())

    async def create_user(
        self,
        user_id: uuid.UUID,
        email: str,
        password_hash: str,
        role: str = "user",
    ) -> dict[str, Any]:
        await asyncio.sleep(0)
        if any(user["email"] == email for user in self.users.values()):
            raise DuplicateUserError()

        now = utc_now()
        self.users[user_id] = {
            "id": user_id,
            "email": email,
            "password": password_hash,
            "role": role,
            "created_at": now,
            "updated_at": now,
        }
        return self._public_user(self.users[user_id])

    async def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        await asyncio.sleep(0)
        for user in self.users.values():
            if user["email"] == email:
                return dict(user)
        return None

    async def get_user_by_id(self, user_id: uuid.UUID) -> dict[str, Any] | None:
        await asyncio.sleep(0)
        user = self.users.get(user_id)
        return self._public_user(user) if user else None

    async def list_users(self, limit: int = 50, offset: int = 0) -> list[dict[str, Any]]:
        await asyncio.sleep(0)
        users = sorted(self.users.values(), key=lambda u: u["created_at"], reverse=True)
        return [self._public_user(user) for user in users[offset : offset + limit]]

    def set_role(self, email: str, role: str) -> None:
        for user in self.users.values():
            if user["email"] == email:
                user["role"] = role

    @staticmethod
    def _public_user(user: dict[str, Any]) -> dict[str, Any]:
        return {key: value for key, value in user.items() if key != "password"}


@pytest.fixture
def memory_db() -> InMemoryDatabase:
    """Fresh in-memory database for each test."""
    return InMemoryDatabase()


@pytest_asyncio.fixture(scope="function")
async def client(memory_db):
    """Create test client backed by the in-memory database."""
    import call_session_api.storage.database as db_module
    from call_session_api.main import create_app
    from call_session_api.storage.database import get_db

    test_app = create_app()

    original_db = db_module._db
    # AuthMiddleware resolves the database through the global instance
    db_module._db = memory_db
    test_app.dependency_overrides[get_db] = lambda: memory_db

    try:
        async with AsyncClient(
            transport=ASGITransport(app=test_app),
            base_url="http://test",
            timeout=5.0,
        ) as test_client:
            yield test_client
    finally:
        test_app.dependency_overrides.clear()
        db_module._db = original_db


async def register_and_login(client: AsyncClient, email: str, password: str) -> dict[str, str]:
    """Register an account through the API and return bearer headers for it."""
    response = await client.post("/auth/register", json={"email": email, "password": password})
    assert response.status_code == 201, response.text

    response = await client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest_asyncio.fixture(scope="function")
async def auth_headers(client):
    """Bearer headers for a regular user."""
    return await register_and_login(client, "agent@acme-calls.com", "s3cret-pass")


@pytest_asyncio.fixture(scope="function")
async def admin_headers(client, memory_db):
    """Bearer headers for an admin user."""
    email = "supervisor@acme-calls.com"
    headers = await register_and_login(client, email, "admin-pass")
    memory_db.set_role(email, "admin")
    return headers
