"""Response models for API endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from .session import Session, SessionEvent
from .user import User, UserRole


class SessionResponse(BaseModel):
    """Response for session start/end operations."""

    message: str
    session: Session


class EventResponse(BaseModel):
    """Response for event logging."""

    message: str
    event: SessionEvent


class SessionListResponse(BaseModel):
    """Paginated session listing. ``total`` ignores limit and offset."""

    total: int
    limit: int
    offset: int
    sessions: list[Session]


class UserSummary(BaseModel):
    id: UUID
    email: str
    role: UserRole
    created_at: datetime


class RegisterResponse(BaseModel):
    message: str
    user: UserSummary


class LoginResponse(BaseModel):
    token: str
    user: User


class UserListResponse(BaseModel):
    users: list[User]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    uptime: str
    database_connected: bool
