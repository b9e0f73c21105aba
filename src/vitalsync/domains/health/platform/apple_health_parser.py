"""Apple Health XML export parser for daily metric buckets.

Parses the ``export.xml`` file produced by Apple Health (iOS → Share → Export
Health Data) with iterparse, keeping only the quantity records that feed the
four supported metrics.

HealthKit type mappings:
- HKQuantityTypeIdentifierStepCount → steps (count, summed)
- HKQuantityTypeIdentifierDistanceWalkingRunning → distance (m, summed)
- HKQuantityTypeIdentifierHeartRate → heart_rate (bpm, averaged)
- HKQuantityTypeIdentifierActiveEnergyBurned
  + HKQuantityTypeIdentifierBasalEnergyBurned → calories (kcal, summed)
"""

from __future__ import annotations

import logging
import statistics
import xml.etree.ElementTree as ET
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from pathlib import Path
from typing import Any

from vitalsync.domains.health.domain_logic.metric_models import Metric

logger = logging.getLogger(__name__)

_STEPS = "HKQuantityTypeIdentifierStepCount"
_DISTANCE = "HKQuantityTypeIdentifierDistanceWalkingRunning"
_HR = "HKQuantityTypeIdentifierHeartRate"
_ACTIVE_ENERGY = "HKQuantityTypeIdentifierActiveEnergyBurned"
_BASAL_ENERGY = "HKQuantityTypeIdentifierBasalEnergyBurned"

METRIC_TYPES: dict[Metric, frozenset[str]] = {
    Metric.STEPS: frozenset({_STEPS}),
    Metric.DISTANCE: frozenset({_DISTANCE}),
    Metric.HEART_RATE: frozenset({_HR}),
    Metric.CALORIES: frozenset({_ACTIVE_ENERGY, _BASAL_ENERGY}),
}

METRIC_UNITS = {
    Metric.STEPS: "count",
    Metric.DISTANCE: "m",
    Metric.HEART_RATE: "bpm",
    Metric.CALORIES: "kcal",
}

# Multipliers into the canonical unit of each metric
_UNIT_FACTORS = {
    "m": 1.0,
    "km": 1000.0,
    "mi": 1609.344,
    "ft": 0.3048,
    "kcal": 1.0,
    "Cal": 1.0,
    "kJ": 1 / 4.184,
}


class AppleHealthParseError(Exception):
    """Raised when parsing Apple Health export XML fails."""


@dataclass(frozen=True)
class QuantitySample:
    start: datetime
    value: float


def _parse_date(date_str: str) -> datetime:
    """Parse Apple Health date format: '2025-12-01 08:30:00 -0500'."""
    try:
        return datetime.strptime(date_str, "%Y-%m-%d %H:%M:%S %z")
    except ValueError:
        # Fallback for ISO format; offset-less stamps cannot be placed in the window
        dt = datetime.fromisoformat(date_str)
        if dt.tzinfo is None:
            raise ValueError(f"Date without UTC offset: {date_str!r}") from None
        return dt


def parse_metric_samples(
    export_path: str | Path,
    metric: Metric,
    start: datetime,
    end: datetime,
) -> list[QuantitySample]:
    """Return the samples for ``metric`` whose start falls in ``[start, end)``.

    Values are converted to the metric's canonical unit. Records with an
    unparseable date or value are skipped.

    Raises:
        AppleHealthParseError: If the file is missing or not valid XML.
    """
    path = Path(export_path)
    if not path.exists():
        raise AppleHealthParseError(f"Export file not found: {path}")

    wanted = METRIC_TYPES[metric]
    samples: list[QuantitySample] = []
    skipped = 0

    try:
        for _event, elem in ET.iterparse(str(path), events=("end",)):
            if elem.tag != "Record":
                continue
            if elem.get("type", "") in wanted:
                try:
                    dt = _parse_date(elem.get("startDate", ""))
                    value = float(elem.get("value", ""))
                except (ValueError, TypeError):
                    skipped += 1
                else:
                    if start <= dt < end:
                        factor = _UNIT_FACTORS.get(elem.get("unit", ""), 1.0)
                        samples.append(QuantitySample(start=dt, value=value * factor))
            elem.clear()
    except ET.ParseError as exc:
        raise AppleHealthParseError(f"Invalid XML: {exc}") from exc

    logger.info(
        "Parsed Apple Health export for %s: %d samples (%d skipped)",
        metric.value, len(samples), skipped,
    )
    return samples


def bucket_by_day(
    samples: list[QuantitySample],
    metric: Metric,
    start: datetime,
    end: datetime,
    tz: tzinfo | None = None,
) -> list[dict[str, Any]]:
    """Group samples into local calendar-day buckets, oldest first.

    Summed metrics get a bucket for every day in range, zero when empty.
    Heart rate is averaged, so days without samples are omitted.
    """
    grouped: dict[date, list[float]] = defaultdict(list)
    for sample in samples:
        grouped[sample.start.astimezone(tz).date()].append(sample.value)

    local_start = start.astimezone(tz)
    zone = local_start.tzinfo
    day = local_start.date()
    last = end.astimezone(tz).date()
    buckets: list[dict[str, Any]] = []
    while day <= last:
        values = grouped.get(day, [])
        if metric is Metric.HEART_RATE:
            value = round(statistics.mean(values), 1) if values else None
        else:
            value = round(sum(values), 2)
        if value is not None:
            bucket_start = datetime.combine(day, time.min, tzinfo=zone)
            buckets.append({
                "startDate": bucket_start.isoformat(),
                "endDate": (bucket_start + timedelta(days=1)).isoformat(),
                "value": value,
                "unit": METRIC_UNITS[metric],
            })
        day += timedelta(days=1)
    return buckets
