"""
Request Context and Correlation IDs

Request-scoped context kept in a contextvar so every telemetry event emitted
while serving a request carries the same request_id and user_id.
"""

import uuid
from contextvars import ContextVar
from typing import Any

_request_context: ContextVar[dict[str, Any]] = ContextVar("request_context", default={})


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for request tracing."""
    return str(uuid.uuid4())


def set_request_context(request_id: str, user_id: str | None = None, **kwargs: Any) -> None:
    """
    Set the request context for the current async context.

    Args:
        request_id: Correlation ID for request tracing
        user_id: Authenticated user, "anonymous" until the auth middleware runs
        **kwargs: Additional context properties
    """
    _request_context.set(
        {
            "request_id": request_id,
            "user_id": user_id or "anonymous",
            **kwargs,
        }
    )


def update_request_context(**kwargs: Any) -> None:
    """Merge properties into the current context (e.g. user_id once authenticated)."""
    _request_context.set({**_request_context.get(), **kwargs})


def get_request_context() -> dict[str, Any]:
    return _request_context.get()


def clear_request_context() -> None:
    """Clear the request context for the current async context."""
    _request_context.set({})
