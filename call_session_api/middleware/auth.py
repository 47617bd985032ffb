"""Bearer token authentication and role checks."""

import logging
from collections.abc import Callable

from fastapi import HTTPException, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from ..core.auth_service import AuthService
from ..errors import ForbiddenError, UnauthorizedError
from ..models import Principal, UserRole
from ..telemetry import update_request_context

logger = logging.getLogger(__name__)


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware authenticating every request under ``/api``.

    Sets on request.state:
    - principal: the authenticated Principal
    - user_id: its id as a string
    """

    PROTECTED_PREFIX = "/api"

    def _is_protected(self, request: Request) -> bool:
        path = request.url.path
        if request.method == "OPTIONS":
            return False
        return path == self.PROTECTED_PREFIX or path.startswith(f"{self.PROTECTED_PREFIX}/")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request through authentication."""
        if not self._is_protected(request):
            return await call_next(request)

        try:
            token = self._extract_bearer_token(request)

            # Resolved per request so tests can swap the global instance
            from ..storage.database import get_db

            db = await get_db()
            principal = await AuthService(db).authenticate(token)
        except HTTPException as e:
            return JSONResponse(status_code=e.status_code, content={"detail": e.detail})
        except UnauthorizedError as e:
            return JSONResponse(status_code=e.status_code, content={"detail": str(e)})
        except Exception as e:
            logger.error(f"Authentication error: {e}", exc_info=True)
            return JSONResponse(status_code=500, content={"detail": "authentication failed"})

        request.state.principal = principal
        request.state.user_id = str(principal.id)
        update_request_context(user_id=str(principal.id))

        logger.debug(f"Authenticated request: user_id={principal.id}, role={principal.role.value}")
        return await call_next(request)

    @staticmethod
    def _extract_bearer_token(request: Request) -> str:
        """Return the token from ``Authorization: Bearer <token>``.

        Raises:
            HTTPException: header missing or not exactly two space-separated parts.
        """
        auth_header = request.headers.get("Authorization")
        if not auth_header:
            raise HTTPException(status_code=401, detail="authorization header is required")

        parts = auth_header.split(" ")
        if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
            raise HTTPException(status_code=401, detail="invalid authorization header format")

        return parts[1]


def get_current_principal(request: Request) -> Principal:
    """Dependency returning the principal set by AuthMiddleware."""
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise HTTPException(status_code=401, detail="user not found in context")
    return principal


class RoleChecker:
    """Dependency enforcing a minimum role on a route or router."""

    def __init__(self, required_role: UserRole):
        self.required_role = required_role

    def __call__(self, request: Request) -> Principal:
        principal = get_current_principal(request)
        try:
            AuthService.authorize(principal, self.required_role)
        except ForbiddenError as e:
            logger.warning(
                f"Access denied for user {principal.id}: "
                f"role {principal.role.value} lacks {self.required_role.value}"
            )
            raise HTTPException(status_code=e.status_code, detail=str(e)) from e
        return principal


def require_role(role: UserRole) -> RoleChecker:
    """Build a dependency that allows ``role`` (and admin)."""
    return RoleChecker(role)
