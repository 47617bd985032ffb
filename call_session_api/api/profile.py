"""Profile of the authenticated user."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..core import AuthService
from ..errors import CallSessionError
from ..middleware import get_current_principal
from ..models import Principal, User
from .auth import get_auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["profile"])


@router.get("/profile", response_model=User)
async def get_profile(
    principal: Principal = Depends(get_current_principal),
    service: AuthService = Depends(get_auth_service),
) -> User:
    try:
        return await service.get_profile(principal.id)
    except CallSessionError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Error loading profile for {principal.id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="failed to load profile")
