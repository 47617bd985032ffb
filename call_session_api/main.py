"""Main FastAPI application for the call session service."""

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api import admin_router, auth_router, health_router, profile_router, sessions_router
from .config import settings
from .middleware import AuthMiddleware
from .storage import init_database
from .telemetry import TelemetryEvents, TelemetryMiddleware, track_event

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan context manager for startup and shutdown."""
    logger.info("Starting call session service...")
    logger.info(f"Service version: {app.version}")
    logger.info(f"Host: {settings.service_host}:{settings.service_port}")

    # Connects the pool and bootstraps the schema
    db = await init_database()
    logger.info("Database initialized")

    track_event(TelemetryEvents.APP_STARTED, {"version": app.version})
    logger.info("Call session service started successfully")

    yield

    logger.info("Shutting down call session service...")
    track_event(TelemetryEvents.APP_STOPPED)

    await db.disconnect()
    logger.info("Call session service stopped")


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report request validation failures as 400 with a plain-text detail."""
    errors = exc.errors()
    if errors:
        error = errors[0]
        location = ".".join(str(part) for part in error.get("loc", ()))
        detail = f"{location}: {error.get('msg', 'invalid value')}"
    else:
        detail = "invalid request"

    logger.info(f"Rejected {request.method} {request.url.path}: {detail}")
    return JSONResponse(status_code=400, content={"detail": detail})


def create_app() -> FastAPI:
    """Build the application with middleware and routers."""
    app = FastAPI(
        title="Call Session Management API",
        description="""
Tracks call sessions between a caller and a callee, and the timestamped
events inside each session.

## Lifecycle

A session starts `ongoing` and is ended exactly once as `completed` or
`failed`. Events can be appended only while the session is ongoing.

## API Endpoints

- `POST /auth/register`, `POST /auth/login` - Accounts and bearer tokens
- `GET /api/profile` - Current user
- `GET /api/sessions` - List sessions (filters, sorting, pagination)
- `POST /api/sessions/start` - Start a session
- `POST /api/sessions/{id}/events` - Log an event
- `POST /api/sessions/{id}/end` - End a session
- `GET /api/sessions/{id}` - Session with its events
- `GET /api/admin/users` - List users (admin)
""",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Middleware added later wraps earlier ones: telemetry ends up outermost so
    # every response, 401s included, carries X-Request-ID.
    app.add_middleware(AuthMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.service_host != "0.0.0.0":
        app.add_middleware(
            TrustedHostMiddleware,
            allowed_hosts=[settings.service_host, "localhost", "127.0.0.1"],
        )

    app.add_middleware(TelemetryMiddleware)

    # Register routers
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(profile_router)
    app.include_router(sessions_router)
    app.include_router(admin_router)

    return app


app = create_app()


def main() -> None:
    """Main entry point for running the service."""
    import uvicorn

    uvicorn.run(
        "call_session_api.main:app",
        host=settings.service_host,
        port=settings.service_port,
        workers=settings.service_workers,
        log_level=settings.log_level,
        reload=False,
    )


if __name__ == "__main__":
    main()
