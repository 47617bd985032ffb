"""
Telemetry Module

Central export point for request tracing and domain event logging.
"""

from .config import TelemetryConfig, get_telemetry_config
from .context import (
    clear_request_context,
    generate_correlation_id,
    get_request_context,
    set_request_context,
    update_request_context,
)
from .events import TelemetryEvents
from .middleware import TelemetryMiddleware
from .tracker import TELEMETRY_LOGGER_NAME, track_event, track_exception

__all__ = [
    # Config
    "TelemetryConfig",
    "get_telemetry_config",
    # Context
    "get_request_context",
    "set_request_context",
    "update_request_context",
    "clear_request_context",
    "generate_correlation_id",
    # Events
    "TelemetryEvents",
    # Tracking
    "TELEMETRY_LOGGER_NAME",
    "track_event",
    "track_exception",
    # Middleware
    "TelemetryMiddleware",
]
