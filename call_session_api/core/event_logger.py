"""Append-only event log for call sessions."""

import logging
import uuid
from collections.abc import Callable
from datetime import datetime
from uuid import UUID

from ..errors import EventTimeOutOfRangeError, SessionEndedError, SessionNotFoundError
from ..models import Metadata, SessionEvent, SessionStatus
from ..storage import Database
from ..telemetry import TelemetryEvents, track_event
from ..time_utils import one_year_before, to_utc, utc_now

logger = logging.getLogger(__name__)


class EventLogger:
    """Records timestamped events against ongoing sessions.

    Events are never updated or deleted here. The clock is injectable so the
    one-year acceptance window can be tested at its boundary.
    """

    def __init__(self, db: Database, clock: Callable[[], datetime] | None = None):
        self.db = db
        self._clock = clock or utc_now

    async def log_event(
        self,
        session_id: UUID,
        event_type: str,
        event_time: datetime,
        metadata: Metadata | None = None,
    ) -> SessionEvent:
        """Append an event to an ongoing session.

        Checks run in order: existence, ongoing status, then the time window.

        Raises:
            SessionNotFoundError: no such session.
            SessionEndedError: the session is terminal, including when it
                was terminated between the checks and the insert.
            EventTimeOutOfRangeError: event_time is older than one year.
        """
        event_time = to_utc(event_time)

        session = await self.db.get_session(session_id)
        if session is None:
            raise SessionNotFoundError()
        if session["status"] != SessionStatus.ONGOING.value:
            raise SessionEndedError()

        # Inclusive: exactly one year ago is still accepted
        if event_time < one_year_before(self._clock()):
            raise EventTimeOutOfRangeError()

        status, row = await self.db.insert_event_if_ongoing(
            event_id=uuid.uuid4(),
            session_id=session_id,
            event_type=event_type,
            event_time=event_time,
            metadata=metadata,
        )
        if status is None:
            raise SessionNotFoundError()
        if row is None:
            logger.info(f"Session {session_id} ended before event '{event_type}' was stored")
            raise SessionEndedError()

        event = SessionEvent(**row)
        logger.debug(f"Logged {event_type} event {event.id} for session {session_id}")
        track_event(
            TelemetryEvents.EVENT_LOGGED,
            {"session_id": str(session_id), "event_type": event_type},
        )
        return event
