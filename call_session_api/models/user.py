"""User and principal models for the identity layer."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    """Two-tier role model: admin satisfies every requirement."""

    USER = "user"
    ADMIN = "admin"

    def satisfies(self, required: "UserRole") -> bool:
        """Check whether this role is sufficient for ``required``."""
        if self is UserRole.ADMIN:
            return True
        return self is required


class User(BaseModel):
    """A registered account. The password hash is never part of this model."""

    model_config = {"use_enum_values": True}

    id: UUID
    email: str
    role: UserRole = UserRole.USER
    created_at: datetime
    updated_at: datetime


class Principal(BaseModel):
    """Authenticated identity attached to a request."""

    id: UUID
    email: str
    role: UserRole


class TokenClaims(BaseModel):
    """Claims carried by a bearer token."""

    user_id: UUID
    email: str
    role: UserRole
    sub: str
    iss: str
    iat: datetime
    nbf: datetime
    exp: datetime = Field(..., description="Expiration time")
