"""
Telemetry Middleware for FastAPI

Tracks every HTTP request with timing and status code, and injects a
correlation ID into the request context and the ``X-Request-ID`` header.
"""

import time
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .context import clear_request_context, generate_correlation_id, set_request_context
from .events import TelemetryEvents
from .tracker import track_event, track_exception


class TelemetryMiddleware(BaseHTTPMiddleware):
    """
    Request telemetry tracking.

    Captures request received/completed/failed events with duration and
    status code. The auth middleware runs inside this one and adds user_id
    to the context once the caller is known.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()

        request_id = request.headers.get("X-Request-ID") or generate_correlation_id()
        set_request_context(request_id=request_id)
        request.state.request_id = request_id

        endpoint = request.url.path
        try:
            track_event(
                TelemetryEvents.REQUEST_RECEIVED,
                {"endpoint": endpoint, "method": request.method},
            )

            response = await call_next(request)

            duration_ms = (time.perf_counter() - start_time) * 1000
            track_event(
                TelemetryEvents.REQUEST_COMPLETED,
                {
                    "endpoint": endpoint,
                    "method": request.method,
                    "status_code": response.status_code,
                    "duration_ms": round(duration_ms, 2),
                },
            )

            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            track_exception(e, {"endpoint": endpoint, "method": request.method})
            track_event(
                TelemetryEvents.REQUEST_FAILED,
                {
                    "endpoint": endpoint,
                    "method": request.method,
                    "duration_ms": round(duration_ms, 2),
                    "error_type": type(e).__name__,
                },
            )
            raise

        finally:
            clear_request_context()
