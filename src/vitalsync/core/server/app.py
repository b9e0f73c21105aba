"""VitalSync Health Access MCP Server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from vitalsync.core.config.settings import Settings, get_settings
from vitalsync.domains.health.domain_logic.session import HealthAccessSession
from vitalsync.domains.health.platform import HealthPlatform
from vitalsync.domains.health.platform.apple_health import AppleHealthExportPlatform
from vitalsync.domains.health.platform.mock import MockHealthPlatform
from vitalsync.domains.health.tools.health_access_tools import (
    register_health_access_tools,
)

logger = logging.getLogger(__name__)

SERVER_VERSION = "0.1.0"


def create_platform(settings: Settings) -> HealthPlatform:
    """Build the configured health platform."""
    if settings.health_platform == "apple_health":
        if not settings.apple_health_export_path:
            logger.warning(
                "HEALTH_PLATFORM=apple_health but APPLE_HEALTH_EXPORT_PATH is empty; "
                "the health service will report unavailable"
            )
        return AppleHealthExportPlatform(
            settings.apple_health_export_path, tz=settings.resolve_timezone()
        )
    if settings.health_platform == "mock":
        return MockHealthPlatform(
            available=settings.mock_health_available,
            authorized=settings.mock_health_authorized,
            grant=settings.mock_grant_authorization,
        )
    raise ValueError(f"Unknown health platform: {settings.health_platform!r}")  # pragma: no cover


def create_app(
    *,
    platform_override: HealthPlatform | None = None,
    session_override: HealthAccessSession | None = None,
) -> FastMCP:
    """Create and configure the VitalSync Health Access MCP server.

    1. Creates the FastMCP server instance
    2. Builds the health platform (mock or Apple Health export)
    3. Creates the health access session that owns all metric state
    4. Registers all tools
    """
    settings = get_settings()

    # --- Server instance ---
    server = FastMCP(
        "VitalSync Health Access",
        instructions=(
            "Reads steps, distance, heart rate and calories from the device "
            "health service. Call request_health_access first, then read "
            "per-metric 7-day snapshots."
        ),
    )

    # --- Initialize health platform and session ---
    if session_override is not None:
        session = session_override
    else:
        if platform_override is not None:
            platform = platform_override
        else:
            platform = create_platform(settings)
            logger.info("Using %s health platform", platform.name)
        session = HealthAccessSession(platform, tz=settings.resolve_timezone())

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": "VitalSync Health Access",
            "version": SERVER_VERSION,
            "health_platform": session.platform_name,
            "authorization_state": session.state.value,
        }

    register_health_access_tools(server, session)
    logger.info("Health access tools registered")

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
