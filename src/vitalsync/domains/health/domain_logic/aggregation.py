"""Metric aggregation service: trailing 7-day daily series per metric.

Each fetch resets its metric's snapshot, issues one daily-bucketed query,
validates and normalizes the records, and only then swaps the new series,
total and raw payload in together. A failed fetch therefore leaves the
snapshot at its reset value (zero total, empty series, empty payload).

``load_all`` runs the four fetches strictly one after another, each inside
its own failure boundary, so one metric failing never stops the others.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime, timedelta, timezone, tzinfo
from typing import TYPE_CHECKING, Any, Callable

from vitalsync.domains.health.domain_logic.errors import (
    MalformedRecordError,
    MetricFetchError,
    Notice,
    NoticeKind,
    PlatformCallError,
)
from vitalsync.domains.health.domain_logic.metric_models import (
    BUCKET,
    SUPPORTED_METRICS,
    WINDOW_DAYS,
    DailyAggregate,
    Metric,
    MetricSnapshot,
)
from vitalsync.domains.health.platform import AggregatedQuery

if TYPE_CHECKING:
    from vitalsync.domains.health.platform import HealthPlatform

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Record validation
# ---------------------------------------------------------------------------

def _parse_timestamp(raw: Any) -> datetime:
    """Accept a datetime, an ISO-8601 string, or epoch milliseconds."""
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text)
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return datetime.fromtimestamp(raw / 1000, tz=timezone.utc)
    raise TypeError(f"unsupported timestamp type {type(raw).__name__}")


def _parse_value(raw: Any) -> float:
    if isinstance(raw, bool):
        raise TypeError("boolean is not a measurement")
    if isinstance(raw, (int, float, str)):
        value = float(raw)
        if math.isfinite(value):
            return value
        raise ValueError(f"non-finite measurement {raw!r}")
    raise TypeError(f"unsupported value type {type(raw).__name__}")


def to_daily_aggregate(
    record: Any, metric: Metric, tz: tzinfo | None = None
) -> DailyAggregate:
    """Convert one platform record into a DailyAggregate.

    The date is the local calendar day of the record's ``startDate`` in
    ``tz`` (system local zone when None).

    Raises:
        MalformedRecordError: If the record lacks a usable timestamp or value.
    """
    if not isinstance(record, dict):
        raise MalformedRecordError(
            metric, f"Expected a record object, got {type(record).__name__}"
        )
    if "startDate" not in record or "value" not in record:
        raise MalformedRecordError(
            metric, f"Record missing startDate or value: {sorted(record)}"
        )
    try:
        start = _parse_timestamp(record["startDate"])
        value = _parse_value(record["value"])
        day = start.astimezone(tz).date()
    except (TypeError, ValueError, OverflowError, OSError) as exc:
        raise MalformedRecordError(
            metric, f"Invalid {metric.value} record: {exc}"
        ) from exc
    return DailyAggregate(date=day, value=value)


def _json_default(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return obj.isoformat()
    return str(obj)


def _describe(exc: BaseException) -> str:
    if isinstance(exc, PlatformCallError):
        return str(exc.detail)
    return str(exc)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class MetricAggregationService:
    """Fetches and normalizes daily aggregates into per-metric snapshots.

    The caller must only invoke this after authorization has succeeded;
    the service does not check.
    """

    def __init__(
        self,
        platform: HealthPlatform,
        snapshots: dict[Metric, MetricSnapshot],
        *,
        notify: Callable[[Notice], None],
        tz: tzinfo | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._platform = platform
        self._snapshots = snapshots
        self._notify = notify
        self._tz = tz
        self._clock = clock or (lambda: datetime.now(timezone.utc).astimezone(tz))

    def build_query(self, metric: Metric) -> AggregatedQuery:
        end = self._clock()
        return AggregatedQuery(
            start_date=end - timedelta(days=WINDOW_DAYS),
            end_date=end,
            data_type=metric,
            bucket=BUCKET,
        )

    async def fetch(self, metric: Metric) -> MetricSnapshot:
        """Refresh one metric's snapshot from the platform.

        Raises:
            MetricFetchError: If the query fails or returns malformed records.
                The snapshot is left at its reset value.
        """
        snapshot = self._snapshots[metric]
        snapshot.reset()
        query = self.build_query(metric)

        try:
            records = await self._platform.query_aggregated(query)
        except Exception as exc:
            raise MetricFetchError(
                metric, f"Failed to load {metric.label} data: {_describe(exc)}"
            ) from exc

        if not isinstance(records, list):
            raise MalformedRecordError(
                metric, f"Expected a list of records, got {type(records).__name__}"
            )

        series = [to_daily_aggregate(r, metric, self._tz) for r in records]
        try:
            raw_payload = json.dumps(records, indent=2, default=_json_default)
        except (TypeError, ValueError) as exc:
            raise MalformedRecordError(
                metric, f"Unserializable {metric.value} response: {exc}"
            ) from exc
        snapshot.replace(series, raw_payload)

        logger.info(
            "Loaded %s: %d days, total %s", metric.value, len(series), snapshot.total
        )
        return snapshot

    async def load_all(self) -> list[Metric]:
        """Fetch every supported metric in order; return the ones that failed."""
        failed: list[Metric] = []
        for metric in SUPPORTED_METRICS:
            try:
                await self.fetch(metric)
            except Exception as exc:
                logger.exception("%s loading failed", metric.label.capitalize())
                failed.append(metric)
                self._notify(Notice(
                    kind=NoticeKind.METRIC_FETCH_FAILED,
                    message=f"Failed to load {metric.label} data.",
                    metric=metric,
                    detail=str(exc),
                ))
        return failed
