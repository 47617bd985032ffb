"""Request models for API endpoints."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from ..time_utils import to_utc
from .session import Metadata, SessionStatus


class StartSessionRequest(BaseModel):
    """Request to start a new call session."""

    caller_id: str = Field(..., min_length=1, description="Opaque caller identifier")
    callee_id: str = Field(..., min_length=1, description="Opaque callee identifier")
    initial_metadata: Metadata | None = Field(
        default=None,
        description="Arbitrary JSON document stored with the session",
        examples=[{"campaign": "spring", "tags": ["vip"], "attempt": 1}],
    )


class LogEventRequest(BaseModel):
    """Request to append an event to an ongoing session."""

    event_type: str = Field(..., min_length=1, description="Event category, e.g. 'ring'")
    event_time: datetime = Field(..., description="When the event happened (RFC 3339)")
    metadata: Metadata | None = Field(default=None, description="Arbitrary JSON document")

    @field_validator("event_time")
    @classmethod
    def _as_utc(cls, v: datetime) -> datetime:
        return to_utc(v)


class EndSessionRequest(BaseModel):
    """Request to terminate a session."""

    status: SessionStatus = Field(..., description="Terminal status: completed or failed")
    disposition: str = Field(..., min_length=1, description="Outcome reason")
    end_time: datetime = Field(..., description="When the call ended (RFC 3339)")

    @field_validator("status")
    @classmethod
    def validate_terminal(cls, v: SessionStatus) -> SessionStatus:
        """Only terminal statuses can be requested."""
        if not v.is_terminal:
            raise ValueError("status must be one of 'completed', 'failed'")
        return v

    @field_validator("end_time")
    @classmethod
    def _as_utc(cls, v: datetime) -> datetime:
        return to_utc(v)


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)

    @field_validator("password")
    @classmethod
    def validate_password_bytes(cls, v: str) -> str:
        # bcrypt only looks at the first 72 bytes
        if len(v.encode("utf-8")) > 72:
            raise ValueError("password must be at most 72 bytes")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
