"""Shared test fixtures for VitalSync tests."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HEALTH_PLATFORM", "mock")
    monkeypatch.setenv("APPLE_HEALTH_EXPORT_PATH", "")
    monkeypatch.setenv("LOCAL_TIMEZONE", "UTC")
    monkeypatch.setenv("MOCK_HEALTH_AVAILABLE", "true")
    monkeypatch.setenv("MOCK_HEALTH_AUTHORIZED", "false")
    monkeypatch.setenv("MOCK_GRANT_AUTHORIZATION", "true")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from vitalsync.domains.health.domain_logic.session import HealthAccessSession  # noqa: E402
from vitalsync.domains.health.platform.mock import MockHealthPlatform  # noqa: E402

# Noon UTC: the trailing 7-day window spans 2026-10-12 .. 2026-10-19
_FIXED_NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_now() -> datetime:
    return _FIXED_NOW


@pytest.fixture
def mock_platform() -> MockHealthPlatform:
    """Available, not yet authorized, grants on request."""
    return MockHealthPlatform()


@pytest.fixture
def make_session(fixed_now):
    """Build a HealthAccessSession pinned to ``fixed_now`` in UTC."""

    def _make(platform) -> HealthAccessSession:
        return HealthAccessSession(platform, tz=timezone.utc, clock=lambda: fixed_now)

    return _make


@pytest.fixture
def session(mock_platform, make_session) -> HealthAccessSession:
    return make_session(mock_platform)
