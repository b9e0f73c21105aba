"""Health access session: owns authorization state and metric snapshots."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, tzinfo
from typing import TYPE_CHECKING, Callable

from vitalsync.domains.health.domain_logic.aggregation import MetricAggregationService
from vitalsync.domains.health.domain_logic.authorization import (
    AuthorizationController,
    AuthorizationState,
)
from vitalsync.domains.health.domain_logic.errors import Notice
from vitalsync.domains.health.domain_logic.metric_models import (
    SUPPORTED_METRICS,
    Metric,
    MetricSnapshot,
    SnapshotView,
    parse_metric,
)

if TYPE_CHECKING:
    from vitalsync.domains.health.platform import HealthPlatform

logger = logging.getLogger(__name__)

NoticeListener = Callable[[Notice], None]


class HealthAccessSession:
    """Single owner of everything the presentation layer reads.

    Snapshots are mutated only by the aggregation service; callers get
    frozen ``SnapshotView`` copies. Every authorization success reloads all
    four metrics. Ready runs are serialized, and ``notices`` holds only the
    events of the latest run.

    Usage::

        session = HealthAccessSession(platform)
        session.add_listener(lambda notice: print(notice.message))
        await session.on_platform_ready()
        steps = session.snapshot("steps")
    """

    def __init__(
        self,
        platform: HealthPlatform,
        *,
        tz: tzinfo | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._platform = platform
        self._snapshots = {m: MetricSnapshot(metric=m) for m in SUPPORTED_METRICS}
        self._notices: list[Notice] = []
        self._listeners: list[NoticeListener] = []
        self._ready_lock = asyncio.Lock()
        self.aggregation = MetricAggregationService(
            platform, self._snapshots, notify=self._emit, tz=tz, clock=clock
        )
        self.controller = AuthorizationController(
            platform, on_authorized=self.aggregation.load_all, notify=self._emit
        )

    @property
    def platform_name(self) -> str:
        return self._platform.name

    async def on_platform_ready(self) -> AuthorizationState:
        """Re-derive authorization and, when granted, reload every metric."""
        async with self._ready_lock:
            self._notices.clear()
            logger.info("Platform ready; checking health data access via %s", self.platform_name)
            return await self.controller.run()

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> AuthorizationState:
        return self.controller.state

    @property
    def is_authorized(self) -> bool:
        return self.controller.is_authorized

    @property
    def error(self) -> str | None:
        return self.controller.error

    @property
    def notices(self) -> tuple[Notice, ...]:
        """Notices emitted by the most recent ready run."""
        return tuple(self._notices)

    def snapshot(self, metric: str | Metric) -> SnapshotView:
        return self._snapshots[parse_metric(metric)].view()

    def snapshots(self) -> dict[Metric, SnapshotView]:
        return {m: self._snapshots[m].view() for m in SUPPORTED_METRICS}

    # ------------------------------------------------------------------
    # Notices
    # ------------------------------------------------------------------

    def add_listener(self, listener: NoticeListener) -> None:
        self._listeners.append(listener)

    def _emit(self, notice: Notice) -> None:
        self._notices.append(notice)
        for listener in self._listeners:
            try:
                listener(notice)
            except Exception:
                logger.exception("Notice listener failed for %s", notice.kind.value)
