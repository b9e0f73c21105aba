"""Metric identifiers, authorization scope, and per-metric snapshot models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

class Metric(str, Enum):
    """The four health data types this app reads."""

    STEPS = "steps"
    DISTANCE = "distance"
    HEART_RATE = "heart_rate"
    CALORIES = "calories"

    @property
    def label(self) -> str:
        """Human-readable name used in notices."""
        return _LABELS[self]


_LABELS = {
    Metric.STEPS: "steps",
    Metric.DISTANCE: "distance",
    Metric.HEART_RATE: "heart rate",
    Metric.CALORIES: "calories",
}

# Load order for the aggregation pass
SUPPORTED_METRICS: tuple[Metric, ...] = (
    Metric.STEPS,
    Metric.DISTANCE,
    Metric.HEART_RATE,
    Metric.CALORIES,
)

WINDOW_DAYS = 7
BUCKET = "day"


def parse_metric(value: str | Metric) -> Metric:
    """Coerce a metric id string to a Metric, raising ValueError if unsupported."""
    try:
        return Metric(value)
    except ValueError:
        supported = ", ".join(m.value for m in SUPPORTED_METRICS)
        raise ValueError(
            f"Unsupported metric {value!r}; expected one of: {supported}"
        ) from None


@dataclass(frozen=True)
class AuthorizationScope:
    """Read/write permission sets requested from the platform."""

    read: frozenset[Metric]
    write: frozenset[Metric] = frozenset()

    def as_dict(self) -> dict[str, list[str]]:
        """Wire form: ``{"read": [...], "write": [...]}`` in canonical order."""
        return {
            "read": [m.value for m in SUPPORTED_METRICS if m in self.read],
            "write": [m.value for m in SUPPORTED_METRICS if m in self.write],
        }


READ_SCOPE = AuthorizationScope(read=frozenset(SUPPORTED_METRICS))


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DailyAggregate:
    """One day's aggregated value for a metric."""

    date: date
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date.isoformat(), "value": self.value}


@dataclass
class MetricSnapshot:
    """Normalized total, per-day series and raw payload for one metric.

    Owned by the session; only the aggregation service writes to it.
    """

    metric: Metric
    total: float = 0.0
    series: list[DailyAggregate] = field(default_factory=list)
    raw_payload: str = ""

    def reset(self) -> None:
        self.total = 0.0
        self.series = []
        self.raw_payload = ""

    def replace(
        self, series: list[DailyAggregate], raw_payload: str
    ) -> None:
        """Swap in a freshly fetched series; total is derived from it."""
        self.series = list(series)
        self.total = sum(d.value for d in self.series)
        self.raw_payload = raw_payload

    def view(self) -> SnapshotView:
        return SnapshotView(
            metric=self.metric,
            total=self.total,
            series=tuple(self.series),
            raw_payload=self.raw_payload,
        )


@dataclass(frozen=True)
class SnapshotView:
    """Read-only copy of a MetricSnapshot handed to the presentation layer."""

    metric: Metric
    total: float
    series: tuple[DailyAggregate, ...]
    raw_payload: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric.value,
            "total": self.total,
            "series": [d.to_dict() for d in self.series],
            "raw_json": self.raw_payload,
        }
