"""
Telemetry Tracker

Domain events are written as structured records on the
``call_session_telemetry`` logger; handlers configured for the process decide
where they end up.
"""

import logging
from typing import Any

from .config import get_telemetry_config
from .context import get_request_context

TELEMETRY_LOGGER_NAME = "call_session_telemetry"

_telemetry_logger = logging.getLogger(TELEMETRY_LOGGER_NAME)


def _merge(properties: dict[str, Any] | None) -> dict[str, Any]:
    config = get_telemetry_config()
    return {
        **get_request_context(),
        "app_id": config.app_id,
        "environment": config.environment,
        **(properties or {}),
    }


def track_event(name: str, properties: dict[str, Any] | None = None) -> None:
    """
    Track a custom event.

    Automatically includes request context (request_id, user_id) and app
    identity (app_id, environment).

    Args:
        name: Event name, one of TelemetryEvents
        properties: Additional event properties
    """
    if not get_telemetry_config().enabled:
        return

    merged_properties = _merge(properties)
    _telemetry_logger.info(
        f"{name} {merged_properties}",
        extra={"event_name": name, "custom_dimensions": merged_properties},
    )


def track_exception(exception: Exception, properties: dict[str, Any] | None = None) -> None:
    """
    Track an exception with its traceback.

    Args:
        exception: Exception instance
        properties: Additional error properties
    """
    if not get_telemetry_config().enabled:
        return

    merged_properties = _merge(
        {
            "error_type": type(exception).__name__,
            "error_message": str(exception),
            **(properties or {}),
        }
    )
    _telemetry_logger.error(
        f"Exception: {type(exception).__name__}",
        exc_info=exception,
        extra={"event_name": "exception", "custom_dimensions": merged_properties},
    )
