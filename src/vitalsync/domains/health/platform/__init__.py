"""Health platform adapters: the device-side health data capability."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from vitalsync.domains.health.domain_logic.metric_models import (
    AuthorizationScope,
    Metric,
)


@dataclass(frozen=True)
class AggregatedQuery:
    """A daily-bucketed aggregate query for one metric."""

    start_date: datetime
    end_date: datetime
    data_type: Metric
    bucket: str = "day"

    def as_dict(self) -> dict[str, Any]:
        """Wire form used by callback-style plugins."""
        return {
            "startDate": self.start_date,
            "endDate": self.end_date,
            "dataType": self.data_type.value,
            "bucket": self.bucket,
        }


@runtime_checkable
class HealthPlatform(Protocol):
    """Abstract interface over the device's health data service.

    Every method either resolves with its result or raises
    ``PlatformCallError``. There are no retries or timeouts at this layer.
    A platform may additionally offer ``get_health_connect_from_store()``,
    an async remediation action that sends the user to install or enable
    the health service; see :func:`has_remediation`.
    """

    async def is_available(self) -> bool:
        """Whether the health data service exists on this device."""
        ...

    async def is_authorized(self, scope: AuthorizationScope) -> bool:
        """Whether read permission for ``scope`` has already been granted."""
        ...

    async def request_authorization(self, scope: AuthorizationScope) -> bool:
        """Prompt for permission; True if the user granted it."""
        ...

    async def query_aggregated(self, query: AggregatedQuery) -> list[Any]:
        """Return bucketed records, each shaped like ``{startDate, value}``."""
        ...

    @property
    def name(self) -> str:
        """Label for the platform: 'mock', 'apple_health', 'cordova', ..."""
        ...


def has_remediation(platform: Any) -> bool:
    """True if the platform exposes a callable remediation hook."""
    return callable(getattr(platform, "get_health_connect_from_store", None))
