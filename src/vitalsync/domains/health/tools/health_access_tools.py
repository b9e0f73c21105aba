"""MCP tools exposing the health access session.

These tools are the outer surface of the app: they trigger the
authorization flow and hand out read-only metric snapshots. Nothing here
mutates a snapshot directly.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from vitalsync.domains.health.domain_logic.metric_models import SUPPORTED_METRICS

if TYPE_CHECKING:
    from vitalsync.domains.health.domain_logic.session import HealthAccessSession

logger = logging.getLogger(__name__)


def register_health_access_tools(
    mcp: FastMCP,
    session: HealthAccessSession,
) -> None:
    """Register authorization and snapshot tools on the MCP server."""

    @mcp.tool
    async def request_health_access(ctx: Context) -> str:
        """Check the health service, obtain read permission, and load 7 days of data.

        Safe to call repeatedly: each call re-derives authorization from
        the platform and, when authorized, reloads steps, distance, heart
        rate and calories.
        """
        state = await session.on_platform_ready()
        notices = session.notices

        for notice in notices:
            if notice.level == "error":
                await ctx.warning(notice.message)
            else:
                await ctx.info(notice.message)

        return json.dumps({
            "status": "ok" if session.is_authorized else "error",
            "authorization_state": state.value,
            "is_authorized": session.is_authorized,
            "error": session.error,
            "notices": [n.to_dict() for n in notices],
        }, indent=2)

    @mcp.tool
    async def get_metric_snapshot(metric: str) -> str:
        """Return the 7-day total, per-day series and raw payload for one metric.

        Args:
            metric: One of steps, distance, heart_rate, calories.
        """
        try:
            view = session.snapshot(metric)
        except ValueError as exc:
            return json.dumps({"status": "error", "error": str(exc)})
        return json.dumps({"status": "ok", **view.to_dict()}, indent=2)

    @mcp.tool
    async def get_health_dashboard() -> str:
        """Return authorization status plus every metric snapshot."""
        snapshots = session.snapshots()
        return json.dumps({
            "is_authorized": session.is_authorized,
            "authorization_state": session.state.value,
            "error": session.error,
            "metrics": {
                m.value: snapshots[m].to_dict() for m in SUPPORTED_METRICS
            },
        }, indent=2)

    logger.debug("Health access tools registered")
