"""Session lifecycle engine: start, terminate, inspect and list call sessions."""

import logging
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import ValidationError

from ..config import settings
from ..errors import (
    InternalError,
    SessionAlreadyEndedError,
    SessionNotFoundError,
    SessionTimeOrderError,
    TerminationRaceLostError,
    ValidationFailedError,
)
from ..models import (
    Metadata,
    Session,
    SessionDetails,
    SessionEvent,
    SessionFilter,
    SessionListResponse,
    SessionStatus,
)
from ..storage import Database
from ..telemetry import TelemetryEvents, track_event
from ..time_utils import to_utc, utc_now

logger = logging.getLogger(__name__)

_STATUS_VALUES = {status.value for status in SessionStatus}


def build_session_filter(**params: Any) -> SessionFilter:
    """Validate raw listing parameters into a SessionFilter.

    ``None`` and empty-string values are treated as absent and fall back to
    the filter defaults.

    Raises:
        ValidationFailedError: unknown status, sort key or sort order, or a
            limit/offset outside its range.
    """
    values = {key: value for key, value in params.items() if value is not None and value != ""}

    status = values.get("status")
    if status is not None and status not in _STATUS_VALUES:
        raise ValidationFailedError("invalid status value")

    limit = values.get("limit")
    if limit is not None and not 1 <= limit <= settings.max_page_size:
        raise ValidationFailedError(f"limit must be between 1 and {settings.max_page_size}")

    try:
        return SessionFilter(**values)
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"])
        raise ValidationFailedError(f"invalid {field}: {error['msg']}") from e


class SessionManager:
    """Owns the ongoing -> completed | failed state machine.

    Termination is exactly-once: the storage layer's conditional update is
    the only arbiter, no in-process lock is taken.
    """

    def __init__(self, db: Database, clock: Callable[[], datetime] | None = None):
        self.db = db
        self._clock = clock or utc_now

    async def start_session(
        self,
        caller_id: str,
        callee_id: str,
        initial_metadata: Metadata | None = None,
    ) -> Session:
        """Create a new ongoing session.

        Concurrent sessions between the same caller and callee are allowed.
        """
        session_id = uuid.uuid4()
        try:
            row = await self.db.create_session(
                session_id=session_id,
                caller_id=caller_id,
                callee_id=callee_id,
                started_at=self._clock(),
                initial_metadata=initial_metadata,
            )
        except Exception as e:
            logger.error(f"Failed to create session: {e}", exc_info=True)
            raise InternalError("failed to create session") from e

        session = Session(**row)
        logger.info(f"Started session {session.id} ({caller_id} -> {callee_id})")
        track_event(
            TelemetryEvents.SESSION_STARTED,
            {"session_id": str(session.id), "caller_id": caller_id, "callee_id": callee_id},
        )
        return session

    async def end_session(
        self,
        session_id: UUID,
        status: SessionStatus | str,
        disposition: str,
        end_time: datetime,
    ) -> Session:
        """Move an ongoing session to a terminal status.

        Raises:
            ValidationFailedError: status is not terminal.
            SessionNotFoundError: no such session.
            SessionAlreadyEndedError: the session is already terminal.
            SessionTimeOrderError: end_time precedes started_at.
            TerminationRaceLostError: a concurrent request ended it first.
        """
        try:
            status = SessionStatus(status)
        except ValueError as e:
            raise ValidationFailedError("invalid status value") from e
        if not status.is_terminal:
            raise ValidationFailedError("status must be one of 'completed', 'failed'")
        end_time = to_utc(end_time)

        row = await self.db.get_session(session_id)
        if row is None:
            raise SessionNotFoundError()

        current = Session(**row)
        if current.status != SessionStatus.ONGOING.value:
            track_event(
                TelemetryEvents.SESSION_END_CONFLICT,
                {"session_id": str(session_id), "current_status": current.status},
            )
            raise SessionAlreadyEndedError(current.status)

        if end_time < current.started_at:
            raise SessionTimeOrderError()

        ended = await self.db.end_session_if_ongoing(
            session_id=session_id,
            status=status.value,
            disposition=disposition,
            ended_at=end_time,
        )
        if ended is None:
            logger.warning(f"Lost termination race for session {session_id}")
            track_event(
                TelemetryEvents.SESSION_END_CONFLICT,
                {"session_id": str(session_id), "reason": "race_lost"},
            )
            raise TerminationRaceLostError()

        session = Session(**ended)
        logger.info(f"Ended session {session_id} as {session.status}")
        track_event(
            TelemetryEvents.SESSION_ENDED,
            {
                "session_id": str(session_id),
                "status": session.status,
                "disposition": disposition,
            },
        )
        return session

    async def get_session(self, session_id: UUID) -> Session:
        row = await self.db.get_session(session_id)
        if row is None:
            raise SessionNotFoundError()
        return Session(**row)

    async def get_session_details(self, session_id: UUID) -> SessionDetails:
        """Return a session with its events ordered by event_time."""
        session = await self.get_session(session_id)
        rows = await self.db.list_session_events(session_id)
        return SessionDetails(session=session, events=[SessionEvent(**row) for row in rows])

    async def list_sessions(self, filters: SessionFilter) -> SessionListResponse:
        """List sessions. ``total`` counts every match regardless of pagination."""
        if filters.limit > settings.max_page_size:
            raise ValidationFailedError(f"limit must be between 1 and {settings.max_page_size}")

        rows, total = await self.db.list_sessions(filters)
        return SessionListResponse(
            total=total,
            limit=filters.limit,
            offset=filters.offset,
            sessions=[Session(**row) for row in rows],
        )
