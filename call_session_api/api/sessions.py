"""Call session API endpoints."""

import logging
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from ..core import EventLogger, SessionManager, build_session_filter
from ..errors import CallSessionError
from ..models import (
    EndSessionRequest,
    EventResponse,
    LogEventRequest,
    SessionDetails,
    SessionListResponse,
    SessionResponse,
    StartSessionRequest,
)
from ..storage import Database, get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


async def get_session_manager(db: Database = Depends(get_db)) -> SessionManager:
    """Dependency to get session manager."""
    return SessionManager(db)


async def get_event_logger(db: Database = Depends(get_db)) -> EventLogger:
    """Dependency to get event logger."""
    return EventLogger(db)


@router.get("", response_model=SessionListResponse)
async def list_sessions(
    start_date: datetime | None = Query(default=None, description="started_at lower bound"),
    end_date: datetime | None = Query(default=None, description="started_at upper bound"),
    status: str | None = Query(default=None, description="ongoing, completed or failed"),
    caller_id: str | None = None,
    callee_id: str | None = None,
    limit: int | None = Query(default=None, description="Page size (default 50)"),
    offset: int | None = Query(default=None, description="Rows to skip (default 0)"),
    sort_by: str | None = Query(default=None, description="Sort key (default started_at)"),
    sort_order: str | None = Query(default=None, description="asc or desc (default desc)"),
    manager: SessionManager = Depends(get_session_manager),
) -> SessionListResponse:
    """List sessions with filtering, sorting and pagination.

    ``total`` counts all matching sessions, independent of limit and offset.
    """
    try:
        filters = build_session_filter(
            start_date=start_date,
            end_date=end_date,
            status=status,
            caller_id=caller_id,
            callee_id=callee_id,
            limit=limit,
            offset=offset,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        return await manager.list_sessions(filters)
    except CallSessionError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Error listing sessions: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="failed to list sessions")


@router.post("/start", response_model=SessionResponse, status_code=201)
async def start_session(
    body: StartSessionRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    """Start a new ongoing session between a caller and a callee."""
    try:
        session = await manager.start_session(
            caller_id=body.caller_id,
            callee_id=body.callee_id,
            initial_metadata=body.initial_metadata,
        )
        return SessionResponse(message="Session started successfully", session=session)
    except CallSessionError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Error starting session: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="failed to start session")


@router.post("/{session_id}/events", response_model=EventResponse, status_code=201)
async def log_event(
    session_id: UUID,
    body: LogEventRequest,
    event_logger: EventLogger = Depends(get_event_logger),
) -> EventResponse:
    """Append an event to an ongoing session.

    Returns 409 once the session has ended.
    """
    try:
        event = await event_logger.log_event(
            session_id=session_id,
            event_type=body.event_type,
            event_time=body.event_time,
            metadata=body.metadata,
        )
        return EventResponse(message="Event logged successfully", event=event)
    except CallSessionError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Error logging event for session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="failed to log event")


@router.post("/{session_id}/end", response_model=SessionResponse)
async def end_session(
    session_id: UUID,
    body: EndSessionRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    """Terminate a session as completed or failed.

    Exactly one termination succeeds; every later or concurrent attempt gets 409.
    """
    try:
        session = await manager.end_session(
            session_id=session_id,
            status=body.status,
            disposition=body.disposition,
            end_time=body.end_time,
        )
        return SessionResponse(message="Session ended successfully", session=session)
    except CallSessionError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Error ending session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="failed to end session")


@router.get("/{session_id}", response_model=SessionDetails)
async def get_session_details(
    session_id: UUID,
    manager: SessionManager = Depends(get_session_manager),
) -> SessionDetails:
    """Get a session with its events in event_time order."""
    try:
        return await manager.get_session_details(session_id)
    except CallSessionError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Error getting session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="failed to get session")
