"""VitalSync server entry point: ``python -m vitalsync.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from vitalsync.core.config.settings import Settings, get_settings
from vitalsync.core.server.app import create_app

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class UnsafeBindError(RuntimeError):
    """The configured host would expose health data beyond this machine."""


def ensure_local_bind(settings: Settings) -> None:
    """Reject non-loopback hosts unless the operator opted in explicitly.

    Raises:
        UnsafeBindError: If the host is remote and the override is off.
    """
    host = settings.vitalsync_host
    if settings.vitalsync_allow_insecure_bind:
        logger.warning("Insecure bind allowed; serving health data on %s", host)
        return
    if host == "localhost":
        return
    try:
        loopback = ip_address(host).is_loopback
    except ValueError:
        loopback = False
    if not loopback:
        raise UnsafeBindError(
            f"Host {host!r} is not a loopback address and the server has no auth "
            "layer. Set VITALSYNC_ALLOW_INSECURE_BIND=true to serve it anyway."
        )


def run() -> None:
    """Serve the health access tools over streamable HTTP."""
    settings = get_settings()
    level = logging.getLevelName(settings.vitalsync_log_level.upper())
    logging.basicConfig(
        level=level if isinstance(level, int) else logging.INFO,
        format=_LOG_FORMAT,
    )
    ensure_local_bind(settings)

    logger.info(
        "VitalSync listening on %s:%d with the %s health platform",
        settings.vitalsync_host,
        settings.vitalsync_port,
        settings.health_platform,
    )
    create_app().run(
        transport="streamable-http",
        host=settings.vitalsync_host,
        port=settings.vitalsync_port,
    )


if __name__ == "__main__":
    run()
