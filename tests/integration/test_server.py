"""Integration tests for the VitalSync Health Access MCP server."""

from __future__ import annotations

import asyncio
import json

import pytest
from fastmcp import Client

from vitalsync.core.server.app import create_app
from vitalsync.domains.health.domain_logic.metric_models import Metric
from vitalsync.domains.health.platform.mock import MockHealthPlatform


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


ALL_EXPECTED_TOOLS = [
    "health_check",
    "request_health_access",
    "get_metric_snapshot",
    "get_health_dashboard",
]


def _text(result) -> str:
    """Extract the first text block from a call_tool result."""
    content = getattr(result, "content", result)
    return content[0].text


@pytest.fixture
def client(session):
    """MCP client connected to a server backed by the mock-platform session."""
    mcp = create_app(session_override=session)
    return Client(mcp)


def test_server_starts_and_lists_tools(client):
    """Server should start and expose all registered tools."""
    async def _check():
        async with client:
            tools = await client.list_tools()
            tool_names = [t.name for t in tools]
            for expected in ALL_EXPECTED_TOOLS:
                assert expected in tool_names, f"Missing tool: {expected}"
    _run(_check())


def test_health_check_reports_platform(client):
    async def _check():
        async with client:
            result = await client.call_tool("health_check", {})
            text = str(result)
            assert "ok" in text
            assert "mock" in text
    _run(_check())


def test_request_access_then_dashboard(client):
    async def _check():
        async with client:
            access = json.loads(_text(await client.call_tool("request_health_access", {})))
            assert access["status"] == "ok"
            assert access["authorization_state"] == "authorized"
            assert access["notices"][0]["kind"] == "authorization_granted"

            dashboard = json.loads(_text(await client.call_tool("get_health_dashboard", {})))
            assert dashboard["is_authorized"] is True
            assert set(dashboard["metrics"]) == {m.value for m in Metric}
            steps = dashboard["metrics"]["steps"]
            assert steps["total"] == sum(d["value"] for d in steps["series"])
    _run(_check())


def test_metric_snapshot_before_access_is_empty(client):
    async def _check():
        async with client:
            snap = json.loads(_text(
                await client.call_tool("get_metric_snapshot", {"metric": "distance"})
            ))
            assert snap == {
                "status": "ok",
                "metric": "distance",
                "total": 0.0,
                "series": [],
                "raw_json": "",
            }
    _run(_check())


def test_unknown_metric_returns_error(client):
    async def _check():
        async with client:
            snap = json.loads(_text(
                await client.call_tool("get_metric_snapshot", {"metric": "sleep"})
            ))
            assert snap["status"] == "error"
            assert "Unsupported metric" in snap["error"]
    _run(_check())


def test_denied_access_reports_error(make_session):
    session = make_session(MockHealthPlatform(grant=False))
    client = Client(create_app(session_override=session))

    async def _check():
        async with client:
            access = json.loads(_text(await client.call_tool("request_health_access", {})))
            assert access["status"] == "error"
            assert access["authorization_state"] == "denied"
            assert access["error"] == "Authorization denied by user."
    _run(_check())


def test_default_app_uses_mock_platform():
    mcp = create_app()
    client = Client(mcp)

    async def _check():
        async with client:
            result = await client.call_tool("health_check", {})
            assert "mock" in str(result)
    _run(_check())
