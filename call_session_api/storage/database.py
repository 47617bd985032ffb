"""Database management with PostgreSQL via asyncpg."""

import json
import logging
from datetime import datetime
from typing import Any
from uuid import UUID

import asyncpg

from ..config import settings
from ..errors import DuplicateUserError, EventTimeOutOfRangeError, SessionTimeOrderError
from ..models import SessionFilter
from .schema import (
    EVENT_TIME_CONSTRAINT,
    SESSION_TIMES_CONSTRAINT,
    USERS_EMAIL_UNIQUE_CONSTRAINT,
)

logger = logging.getLogger(__name__)

SESSION_COLUMNS = (
    "id, started_at, ended_at, caller_id, callee_id, status, "
    "initial_metadata, disposition, created_at, updated_at"
)
EVENT_COLUMNS = "id, session_id, event_type, event_time, metadata, created_at"
USER_COLUMNS = "id, email, role, created_at, updated_at"


def _load_json(value: Any) -> Any:
    """Decode a JSONB column; asyncpg hands JSONB back as text without a codec."""
    return json.loads(value) if isinstance(value, str) else value


def _dump_json(value: Any) -> str | None:
    return json.dumps(value) if value is not None else None


def _session_from_row(row: asyncpg.Record) -> dict[str, Any]:
    return {
        "id": row["id"],
        "started_at": row["started_at"],
        "ended_at": row["ended_at"],
        "caller_id": row["caller_id"],
        "callee_id": row["callee_id"],
        "status": row["status"],
        "initial_metadata": _load_json(row["initial_metadata"]),
        "disposition": row["disposition"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def _event_from_row(row: asyncpg.Record) -> dict[str, Any]:
    return {
        "id": row["id"],
        "session_id": row["session_id"],
        "event_type": row["event_type"],
        "event_time": row["event_time"],
        "metadata": _load_json(row["metadata"]),
        "created_at": row["created_at"],
    }


def _raise_for_constraint(exc: asyncpg.PostgresError) -> None:
    """Re-raise known constraint violations as domain validation/conflict errors.

    Matches on the reported constraint name, falling back to the message text
    for servers or poolers that strip the field.
    """
    haystack = f"{getattr(exc, 'constraint_name', None) or ''} {exc}"
    if SESSION_TIMES_CONSTRAINT in haystack:
        raise SessionTimeOrderError() from exc
    if EVENT_TIME_CONSTRAINT in haystack:
        raise EventTimeOutOfRangeError() from exc
    if USERS_EMAIL_UNIQUE_CONSTRAINT in haystack:
        raise DuplicateUserError() from exc


class Database:
    """Async PostgreSQL database manager using asyncpg."""

    def __init__(self, db_url: str):
        """Initialize database with connection URL."""
        self.db_url = db_url
        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        """Establish database connection pool and initialize schema."""
        if self._pool is not None:
            return

        self._pool = await asyncpg.create_pool(
            self.db_url,
            min_size=settings.database_pool_min_size,
            max_size=settings.database_pool_max_size,
            command_timeout=60,
        )

        from .schema import INIT_SCHEMA

        async with self._pool.acquire() as conn:
            await conn.execute(INIT_SCHEMA)

        logger.info(f"Database connected: {self.db_url.split('@')[-1]}")  # Don't log password

    async def disconnect(self) -> None:
        """Close database connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("Database disconnected")

    @property
    def pool(self) -> asyncpg.Pool:
        if not self._pool:
            raise RuntimeError("Database not connected")
        return self._pool

    async def ping(self) -> bool:
        """Run a trivial query to check connectivity."""
        async with self.pool.acquire() as conn:
            return await conn.fetchval("SELECT 1") == 1

    # Session operations
    async def create_session(
        self,
        session_id: UUID,
        caller_id: str,
        callee_id: str,
        started_at: datetime,
        initial_metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Insert a new ongoing session and return the persisted row."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO sessions (id, started_at, caller_id, callee_id, status, initial_metadata)
                VALUES ($1, $2, $3, $4, 'ongoing', $5::jsonb)
                RETURNING {SESSION_COLUMNS}
                """,
                session_id,
                started_at,
                caller_id,
                callee_id,
                _dump_json(initial_metadata),
            )

        logger.debug(f"Created session: {session_id}")
        return _session_from_row(row)

    async def get_session(self, session_id: UUID) -> dict[str, Any] | None:
        """Get session by ID."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {SESSION_COLUMNS} FROM sessions WHERE id = $1", session_id
            )

        return _session_from_row(row) if row else None

    async def end_session_if_ongoing(
        self,
        session_id: UUID,
        status: str,
        disposition: str,
        ended_at: datetime,
    ) -> dict[str, Any] | None:
        """Atomically move an ongoing session to a terminal status.

        The update is guarded by ``status = 'ongoing'``, so among concurrent
        callers at most one gets a row back. ``None`` means no ongoing
        session with this id existed at the time of the update.

        Raises:
            SessionTimeOrderError: ended_at precedes started_at (valid_session_times).
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""
                    UPDATE sessions
                    SET status = $2, disposition = $3, ended_at = $4
                    WHERE id = $1 AND status = 'ongoing'
                    RETURNING {SESSION_COLUMNS}
                    """,
                    session_id,
                    status,
                    disposition,
                    ended_at,
                )
        except asyncpg.CheckViolationError as e:
            _raise_for_constraint(e)
            raise

        if row is None:
            return None

        logger.debug(f"Ended session {session_id} with status {status}")
        return _session_from_row(row)

    async def list_sessions(self, filters: SessionFilter) -> tuple[list[dict[str, Any]], int]:
        """List sessions matching ``filters``.

        Returns:
            The requested page and the total number of matching sessions.
        """
        where = ["1=1"]
        params: list[Any] = []

        if filters.start_date is not None:
            params.append(filters.start_date)
            where.append(f"started_at >= ${len(params)}")
        if filters.end_date is not None:
            params.append(filters.end_date)
            where.append(f"started_at <= ${len(params)}")
        if filters.status is not None:
            params.append(filters.status)
            where.append(f"status = ${len(params)}")
        if filters.caller_id:
            params.append(filters.caller_id)
            where.append(f"caller_id = ${len(params)}")
        if filters.callee_id:
            params.append(filters.callee_id)
            where.append(f"callee_id = ${len(params)}")

        where_sql = " AND ".join(where)
        # sort_column comes from the SORTABLE_COLUMNS allow-list, never from raw input
        direction = "ASC" if filters.sort_order == "asc" else "DESC"
        query = (
            f"SELECT {SESSION_COLUMNS} FROM sessions WHERE {where_sql} "
            f"ORDER BY {filters.sort_column} {direction}, id {direction} "
            f"LIMIT ${len(params) + 1} OFFSET ${len(params) + 2}"
        )

        async with self.pool.acquire() as conn:
            total = await conn.fetchval(f"SELECT COUNT(*) FROM sessions WHERE {where_sql}", *params)
            rows = await conn.fetch(query, *params, filters.limit, filters.offset)

        return [_session_from_row(row) for row in rows], total or 0

    # Session event operations
    async def insert_event_if_ongoing(
        self,
        event_id: UUID,
        session_id: UUID,
        event_type: str,
        event_time: datetime,
        metadata: dict[str, Any] | None = None,
    ) -> tuple[str | None, dict[str, Any] | None]:
        """Append an event while holding a share lock on the parent session.

        The lock makes a concurrent termination wait for this insert (or
        this insert observe the committed termination), so no event lands
        after the session left ``ongoing``.

        Returns:
            ``(status, event)``: status is ``None`` when the session does not
            exist; event is ``None`` unless status is ``ongoing``.

        Raises:
            EventTimeOutOfRangeError: event_time outside the window (valid_event_time).
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                status = await conn.fetchval(
                    "SELECT status FROM sessions WHERE id = $1 FOR SHARE", session_id
                )
                if status is None or status != "ongoing":
                    return status, None

                try:
                    row = await conn.fetchrow(
                        f"""
                        INSERT INTO session_events (id, session_id, event_type, event_time, metadata)
                        VALUES ($1, $2, $3, $4, $5::jsonb)
                        RETURNING {EVENT_COLUMNS}
                        """,
                        event_id,
                        session_id,
                        event_type,
                        event_time,
                        _dump_json(metadata),
                    )
                except asyncpg.CheckViolationError as e:
                    _raise_for_constraint(e)
                    raise

        logger.debug(f"Logged event {event_id} for session {session_id}")
        return status, _event_from_row(row)

    async def list_session_events(self, session_id: UUID) -> list[dict[str, Any]]:
        """Get all events for a session in replay (event_time) order."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {EVENT_COLUMNS}
                FROM session_events
                WHERE session_id = $1
                ORDER BY event_time ASC, created_at ASC
                """,
                session_id,
            )

        return [_event_from_row(row) for row in rows]

    # User operations
    async def user_exists(self, email: str) -> bool:
        async with self.pool.acquire() as conn:
            return bool(
                await conn.fetchval("SELECT EXISTS(SELECT 1 FROM users WHERE email = $1)", email)
            )

    async def create_user(
        self,
        user_id: UUID,
        email: str,
        password_hash: str,
        role: str = "user",
    ) -> dict[str, Any]:
        """Insert a user. The password hash is never returned.

        Raises:
            DuplicateUserError: email already registered (users_email_key).
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO users (id, email, password, role)
                    VALUES ($1, $2, $3, $4)
                    RETURNING {USER_COLUMNS}
                    """,
                    user_id,
                    email,
                    password_hash,
                    role,
                )
        except asyncpg.UniqueViolationError as e:
            _raise_for_constraint(e)
            raise

        logger.debug(f"Created user: {user_id}")
        return dict(row)

    async def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        """Get a user including the password hash, for credential checks."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {USER_COLUMNS}, password FROM users WHERE email = $1", email
            )

        return dict(row) if row else None

    async def get_user_by_id(self, user_id: UUID) -> dict[str, Any] | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(f"SELECT {USER_COLUMNS} FROM users WHERE id = $1", user_id)

        return dict(row) if row else None

    async def list_users(self, limit: int = 50, offset: int = 0) -> list[dict[str, Any]]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {USER_COLUMNS}
                FROM users
                ORDER BY created_at DESC
                LIMIT $1 OFFSET $2
                """,
                limit,
                offset,
            )

        return [dict(row) for row in rows]


# Global database instance
_db: Database | None = None


async def init_database() -> Database:
    """Initialize and return global database instance."""
    global _db
    if _db is None:
        db_url = settings.get_database_url()
        _db = Database(db_url)
        await _db.connect()

    return _db


async def get_db() -> Database:
    """Get database instance (dependency injection).

    Auto-initializes if not already initialized.
    """
    global _db
    if _db is None:
        _db = await init_database()
    return _db
