"""Application settings loaded from environment variables."""

from __future__ import annotations

from datetime import tzinfo
from typing import Literal
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """VitalSync health access server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Default to loopback: the server exposes personal health data and has
    # no auth layer. Opt into `0.0.0.0` explicitly when you intend remote access.
    vitalsync_host: str = "127.0.0.1"
    vitalsync_port: int = 8001
    vitalsync_log_level: str = "info"
    vitalsync_allow_insecure_bind: bool = False

    # Health platform
    health_platform: Literal["mock", "apple_health"] = "mock"
    apple_health_export_path: str = ""
    # IANA zone for per-day bucketing; empty means the system local zone
    local_timezone: str = ""

    # Mock platform behaviour
    mock_health_available: bool = True
    mock_health_authorized: bool = False
    mock_grant_authorization: bool = True

    def resolve_timezone(self) -> tzinfo | None:
        """Return the configured zone, or None for the system local zone."""
        return ZoneInfo(self.local_timezone) if self.local_timezone else None


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
