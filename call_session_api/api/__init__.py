"""API endpoints for the call session service."""

from .admin import router as admin_router
from .auth import router as auth_router
from .health import router as health_router
from .profile import router as profile_router
from .sessions import router as sessions_router

__all__ = [
    "admin_router",
    "auth_router",
    "health_router",
    "profile_router",
    "sessions_router",
]
