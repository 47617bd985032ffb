"""Core business logic for call sessions and identity."""

from .auth_service import AuthService
from .event_logger import EventLogger
from .session_manager import SessionManager, build_session_filter

__all__ = ["AuthService", "EventLogger", "SessionManager", "build_session_filter"]
