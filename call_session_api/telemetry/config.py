"""
Telemetry Configuration

Identity and on/off switch for the domain event log.
"""

from pydantic_settings import BaseSettings


class TelemetryConfig(BaseSettings):
    """Telemetry configuration loaded from environment variables."""

    enabled: bool = True

    # Application identity, stamped on every event
    app_id: str = "call-session-api"
    environment: str = "development"  # dev/staging/production

    model_config = {
        "env_prefix": "TELEMETRY_",
        "env_file": ".env",
        "extra": "ignore",
    }


# Global instance (lazy loaded)
_config: TelemetryConfig | None = None


def get_telemetry_config() -> TelemetryConfig:
    """Get the global telemetry configuration instance."""
    global _config
    if _config is None:
        _config = TelemetryConfig()
    return _config
