"""Session and session event data models."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, JsonValue, field_validator

from ..time_utils import to_utc

# Open key-value document stored as JSONB.
Metadata = dict[str, JsonValue]


class SessionStatus(str, Enum):
    """Session status enumeration."""

    ONGOING = "ongoing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not SessionStatus.ONGOING


class Session(BaseModel):
    """A tracked call between a caller and a callee."""

    model_config = {"use_enum_values": True}

    id: UUID
    started_at: datetime
    ended_at: datetime | None = None
    caller_id: str
    callee_id: str
    status: SessionStatus = SessionStatus.ONGOING
    initial_metadata: Metadata = Field(default_factory=dict)
    disposition: str | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("initial_metadata", mode="before")
    @classmethod
    def _null_metadata_is_empty(cls, v: Any) -> Any:
        return {} if v is None else v


class SessionEvent(BaseModel):
    """An immutable, timestamped fact attached to a session."""

    id: UUID
    session_id: UUID
    event_type: str
    event_time: datetime
    metadata: Metadata = Field(default_factory=dict)
    created_at: datetime

    @field_validator("metadata", mode="before")
    @classmethod
    def _null_metadata_is_empty(cls, v: Any) -> Any:
        return {} if v is None else v


class SessionDetails(BaseModel):
    """A session together with its events in replay order."""

    session: Session
    events: list[SessionEvent] = Field(default_factory=list)


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


# Public sort key -> column name. Only these ever reach the ORDER BY clause.
SORTABLE_COLUMNS: dict[str, str] = {
    "started_at": "started_at",
    "ended_at": "ended_at",
    "created_at": "created_at",
    "updated_at": "updated_at",
    "caller_id": "caller_id",
    "callee_id": "callee_id",
    "status": "status",
}


class SessionFilter(BaseModel):
    """Validated filter, sort and pagination parameters for listing sessions."""

    model_config = {"use_enum_values": True}

    start_date: datetime | None = None
    end_date: datetime | None = None
    status: SessionStatus | None = None
    caller_id: str | None = None
    callee_id: str | None = None
    limit: int = Field(default=50, ge=1)
    offset: int = Field(default=0, ge=0)
    sort_by: str = "started_at"
    sort_order: SortOrder = SortOrder.DESC

    @field_validator("start_date", "end_date")
    @classmethod
    def _as_utc(cls, v: datetime | None) -> datetime | None:
        return to_utc(v) if v is not None else None

    @field_validator("sort_by")
    @classmethod
    def _known_sort_column(cls, v: str) -> str:
        if v not in SORTABLE_COLUMNS:
            raise ValueError(f"sort_by must be one of {sorted(SORTABLE_COLUMNS)}, got '{v}'")
        return v

    @field_validator("sort_order", mode="before")
    @classmethod
    def _lowercase_order(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v

    @property
    def sort_column(self) -> str:
        return SORTABLE_COLUMNS[self.sort_by]
