"""
Telemetry Event Names

Centralized event name constants, {entity}_{action}.
"""


class TelemetryEvents:
    """Centralized telemetry event names."""

    # Request lifecycle
    REQUEST_RECEIVED = "request_received"
    REQUEST_COMPLETED = "request_completed"
    REQUEST_FAILED = "request_failed"

    # Session lifecycle
    SESSION_STARTED = "session_started"
    SESSION_ENDED = "session_ended"
    SESSION_END_CONFLICT = "session_end_conflict"
    EVENT_LOGGED = "event_logged"

    # Identity
    USER_REGISTERED = "user_registered"
    USER_LOGGED_IN = "user_logged_in"
    ACCESS_DENIED = "access_denied"

    # Application lifecycle
    APP_STARTED = "app_started"
    APP_STOPPED = "app_stopped"
