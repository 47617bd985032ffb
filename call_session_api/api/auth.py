"""Registration and login endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..core import AuthService
from ..errors import CallSessionError
from ..models import LoginRequest, LoginResponse, RegisterRequest, RegisterResponse, UserSummary
from ..storage import Database, get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


async def get_auth_service(db: Database = Depends(get_db)) -> AuthService:
    """Dependency to get auth service."""
    return AuthService(db)


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    body: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    """Register a new account with the ``user`` role."""
    try:
        user = await service.register(email=body.email, password=body.password)
        return RegisterResponse(
            message="User registered successfully",
            user=UserSummary(id=user.id, email=user.email, role=user.role, created_at=user.created_at),
        )
    except CallSessionError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Error registering user: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="failed to register user")


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """Exchange credentials for a bearer token."""
    try:
        return await service.login(email=body.email, password=body.password)
    except CallSessionError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Error during login: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="failed to log in")
