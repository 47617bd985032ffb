"""Data models for the call session service."""

from .requests import (
    EndSessionRequest,
    LogEventRequest,
    LoginRequest,
    RegisterRequest,
    StartSessionRequest,
)
from .responses import (
    EventResponse,
    HealthResponse,
    LoginResponse,
    RegisterResponse,
    SessionListResponse,
    SessionResponse,
    UserListResponse,
    UserSummary,
)
from .session import (
    SORTABLE_COLUMNS,
    Metadata,
    Session,
    SessionDetails,
    SessionEvent,
    SessionFilter,
    SessionStatus,
    SortOrder,
)
from .user import Principal, TokenClaims, User, UserRole

__all__ = [
    # Session models
    "Metadata",
    "Session",
    "SessionEvent",
    "SessionDetails",
    "SessionFilter",
    "SessionStatus",
    "SortOrder",
    "SORTABLE_COLUMNS",
    # User models
    "User",
    "UserRole",
    "Principal",
    "TokenClaims",
    # Request models
    "StartSessionRequest",
    "LogEventRequest",
    "EndSessionRequest",
    "RegisterRequest",
    "LoginRequest",
    # Response models
    "SessionResponse",
    "EventResponse",
    "SessionListResponse",
    "RegisterResponse",
    "LoginResponse",
    "UserSummary",
    "UserListResponse",
    "HealthResponse",
]
