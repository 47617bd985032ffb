"""Domain errors raised by the session engine, event logger and identity layer.

Each error carries the HTTP status the API boundary maps it to. Routers
convert them with ``HTTPException(status_code=e.status_code, detail=str(e))``.
"""


class CallSessionError(Exception):
    """Base class for all domain failures."""

    status_code: int = 500
    default_message: str = "internal error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


class ValidationFailedError(CallSessionError):
    """Malformed or out-of-range input."""

    status_code = 400
    default_message = "validation failed"


class EventTimeOutOfRangeError(ValidationFailedError):
    """event_time is older than the trailing one-year window."""

    default_message = "event_time must be within the last year"


class SessionTimeOrderError(ValidationFailedError):
    """end_time precedes the session's started_at."""

    default_message = "end_time must be after or equal to started_at"


class NotFoundError(CallSessionError):
    status_code = 404
    default_message = "not found"


class SessionNotFoundError(NotFoundError):
    default_message = "session not found"


class UserNotFoundError(NotFoundError):
    default_message = "user not found"


class ConflictError(CallSessionError):
    status_code = 409
    default_message = "conflict"


class SessionAlreadyEndedError(ConflictError):
    """The session was already terminal when the end request was read."""

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"session is already ended with status: {status}")


class TerminationRaceLostError(ConflictError):
    """The conditional update matched no row: another request ended the session first."""

    default_message = "session could not be ended - it may have been ended by another request"


class SessionEndedError(ConflictError):
    """Events cannot be appended to a terminal session."""

    default_message = "cannot log events for ended session"


class DuplicateUserError(ConflictError):
    default_message = "user already exists"


class UnauthorizedError(CallSessionError):
    status_code = 401
    default_message = "unauthorized"


class InvalidCredentialsError(UnauthorizedError):
    default_message = "invalid credentials"


class InvalidTokenError(UnauthorizedError):
    default_message = "invalid token"


class ForbiddenError(CallSessionError):
    status_code = 403
    default_message = "forbidden"


class InternalError(CallSessionError):
    status_code = 500
    default_message = "internal error"
