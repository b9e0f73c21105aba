"""Mock health platform for development and testing.

Daily values represent a median active adult: not sedentary, not an
athlete. The same calendar day always produces the same value so repeated
queries are stable.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta
from typing import Any

from vitalsync.domains.health.domain_logic.errors import PlatformCallError
from vitalsync.domains.health.domain_logic.metric_models import (
    AuthorizationScope,
    Metric,
)
from vitalsync.domains.health.platform import AggregatedQuery

logger = logging.getLogger(__name__)

_DAILY_PATTERNS: dict[Metric, tuple[list[float], str]] = {
    Metric.STEPS: ([8200, 10450, 6300, 9100, 12050, 7400, 8800, 5600], "count"),
    Metric.DISTANCE: ([6150, 7840, 4725, 6825, 9040, 5550, 6600, 4200], "m"),
    Metric.HEART_RATE: ([68, 71, 66, 74, 70, 69, 72, 67], "bpm"),
    Metric.CALORIES: ([2150, 2380, 1990, 2240, 2510, 2080, 2290, 1940], "kcal"),
}


def mock_daily_value(metric: Metric, day: Any) -> float:
    """Deterministic value for ``metric`` on calendar ``day``."""
    values, _ = _DAILY_PATTERNS[metric]
    return float(values[day.toordinal() % len(values)])


class MockHealthPlatform:
    """Scriptable HealthPlatform. Always deterministic.

    Every call is appended to ``calls`` as ``(operation, argument)`` so
    tests can assert on the exact sequence issued by the orchestrator.
    """

    def __init__(
        self,
        *,
        available: bool = True,
        authorized: bool = False,
        grant: bool = True,
        failing_metrics: set[Metric] | None = None,
        records: dict[Metric, list[Any]] | None = None,
        offer_remediation: bool = False,
        remediation_fails: bool = False,
    ) -> None:
        self.available = available
        self.authorized = authorized
        self.grant = grant
        self.failing_metrics = set(failing_metrics or ())
        self.records = dict(records or {})
        self.remediation_fails = remediation_fails
        self.calls: list[tuple[str, Any]] = []
        if offer_remediation:
            self.get_health_connect_from_store = self._open_store

    @property
    def name(self) -> str:
        return "mock"

    async def is_available(self) -> bool:
        self.calls.append(("is_available", None))
        return self.available

    async def is_authorized(self, scope: AuthorizationScope) -> bool:
        self.calls.append(("is_authorized", scope))
        return self.authorized

    async def request_authorization(self, scope: AuthorizationScope) -> bool:
        self.calls.append(("request_authorization", scope))
        if self.grant:
            self.authorized = True
        return self.grant

    async def query_aggregated(self, query: AggregatedQuery) -> list[Any]:
        self.calls.append(("query_aggregated", query))
        if query.data_type in self.failing_metrics:
            raise PlatformCallError(
                "queryAggregated", f"mock failure for {query.data_type.value}"
            )
        if query.data_type in self.records:
            return list(self.records[query.data_type])
        return _generate_buckets(query)

    async def _open_store(self) -> None:
        self.calls.append(("get_health_connect_from_store", None))
        if self.remediation_fails:
            raise PlatformCallError("getHealthConnectFromStore", "store unavailable")


def _generate_buckets(query: AggregatedQuery) -> list[dict[str, Any]]:
    """One record per calendar day touched by the query range."""
    _, unit = _DAILY_PATTERNS[query.data_type]
    tz = query.start_date.tzinfo
    buckets = []
    day = query.start_date.date()
    while day <= query.end_date.date():
        start = datetime.combine(day, time.min, tzinfo=tz)
        end = start + timedelta(days=1)
        buckets.append({
            "startDate": start.isoformat(),
            "endDate": end.isoformat(),
            "value": mock_daily_value(query.data_type, day),
            "unit": unit,
        })
        day += timedelta(days=1)
    logger.debug(
        "Generated %d mock %s buckets", len(buckets), query.data_type.value
    )
    return buckets
