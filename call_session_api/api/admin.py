"""Admin-only endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from ..config import settings
from ..core import AuthService
from ..errors import CallSessionError
from ..middleware import require_role
from ..models import UserListResponse, UserRole
from .auth import get_auth_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_role(UserRole.ADMIN))],
)


@router.get("/users", response_model=UserListResponse)
async def list_users(
    limit: int = Query(default=50, ge=1, le=settings.max_page_size),
    offset: int = Query(default=0, ge=0),
    service: AuthService = Depends(get_auth_service),
) -> UserListResponse:
    """List registered users, newest first."""
    try:
        users = await service.list_users(limit=limit, offset=offset)
        return UserListResponse(users=users)
    except CallSessionError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Error listing users: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="failed to list users")
