"""Apple Health export platform: answers platform queries from export.xml.

Users export via iOS Health app → Share → Export Health Data. Pointing this
platform at the resulting file stands in for the device health service:
the service is "available" when the file exists, and supplying the file is
taken as consent, so the authorization request always succeeds.
"""

from __future__ import annotations

import logging
from datetime import tzinfo
from pathlib import Path
from typing import Any

from vitalsync.domains.health.domain_logic.errors import PlatformCallError
from vitalsync.domains.health.domain_logic.metric_models import AuthorizationScope
from vitalsync.domains.health.platform import AggregatedQuery
from vitalsync.domains.health.platform.apple_health_parser import (
    AppleHealthParseError,
    bucket_by_day,
    parse_metric_samples,
)

logger = logging.getLogger(__name__)


class AppleHealthExportPlatform:
    """HealthPlatform backed by an Apple Health XML export.

    Usage::

        platform = AppleHealthExportPlatform("/path/to/export.xml")
        session = HealthAccessSession(platform)
        await session.on_platform_ready()
    """

    def __init__(self, export_path: str, *, tz: tzinfo | None = None) -> None:
        self._export_path = export_path
        self._tz = tz
        self._authorized = False

    @property
    def name(self) -> str:
        return "apple_health"

    async def is_available(self) -> bool:
        return bool(self._export_path) and Path(self._export_path).exists()

    async def is_authorized(self, scope: AuthorizationScope) -> bool:
        return self._authorized

    async def request_authorization(self, scope: AuthorizationScope) -> bool:
        logger.info("Granting read access to Apple Health export %s", self._export_path)
        self._authorized = True
        return True

    async def query_aggregated(self, query: AggregatedQuery) -> list[Any]:
        try:
            samples = parse_metric_samples(
                self._export_path, query.data_type, query.start_date, query.end_date
            )
        except AppleHealthParseError as exc:
            raise PlatformCallError("queryAggregated", str(exc)) from exc
        return bucket_by_day(
            samples, query.data_type, query.start_date, query.end_date, self._tz
        )
