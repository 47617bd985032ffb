"""HTTP middleware for the call session service."""

from .auth import AuthMiddleware, RoleChecker, get_current_principal, require_role

__all__ = ["AuthMiddleware", "RoleChecker", "get_current_principal", "require_role"]
