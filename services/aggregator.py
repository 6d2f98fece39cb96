"""Aggregation logic for sensor readings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Dict, Iterable, List

from app.schemas import Timeframe
from datastore.readings import ReadingStore
from models.records import Reading, TimeBucket

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Resolution(str, Enum):
    fine = "fine"
    medium = "medium"
    coarse = "coarse"


@dataclass(frozen=True)
class ResolutionSpec:
    lookback: timedelta
    bucket_width: timedelta
    label_format: str


RESOLUTIONS: Dict[Resolution, ResolutionSpec] = {
    Resolution.fine: ResolutionSpec(
        lookback=timedelta(hours=24),
        bucket_width=timedelta(minutes=30),
        label_format="%H:%M",
    ),
    Resolution.medium: ResolutionSpec(
        lookback=timedelta(days=7),
        bucket_width=timedelta(hours=6),
        label_format="%Y-%m-%d %H:00",
    ),
    Resolution.coarse: ResolutionSpec(
        lookback=timedelta(days=30),
        bucket_width=timedelta(days=1),
        label_format="%Y-%m-%d",
    ),
}

TIMEFRAME_RESOLUTIONS: Dict[Timeframe, Resolution] = {
    Timeframe.last_24h: Resolution.fine,
    Timeframe.last_7d: Resolution.medium,
    Timeframe.last_30d: Resolution.coarse,
}


@dataclass
class ReadingSummary:
    """Computed statistics for a batch of readings."""

    count: int = 0
    min_temperature: float | None = None
    max_temperature: float | None = None
    mean_temperature: float | None = None
    min_humidity: float | None = None
    max_humidity: float | None = None
    mean_humidity: float | None = None


def summarize(readings: Iterable[Reading]) -> ReadingSummary:
    summary = ReadingSummary()
    temperature_total = 0.0
    humidity_total = 0.0

    for reading in readings:
        summary.count += 1
        temperature = reading.temperature
        humidity = reading.humidity
        temperature_total += temperature
        humidity_total += humidity

        if summary.min_temperature is None or temperature < summary.min_temperature:
            summary.min_temperature = temperature
        if summary.max_temperature is None or temperature > summary.max_temperature:
            summary.max_temperature = temperature
        if summary.min_humidity is None or humidity < summary.min_humidity:
            summary.min_humidity = humidity
        if summary.max_humidity is None or humidity > summary.max_humidity:
            summary.max_humidity = humidity

    if summary.count:
        summary.mean_temperature = temperature_total / summary.count
        summary.mean_humidity = humidity_total / summary.count

    return summary


def bucket_start(timestamp: datetime, width: timedelta) -> datetime:
    """Truncate ``timestamp`` to the start of its fixed-width UTC bucket."""
    index = (timestamp.astimezone(timezone.utc) - EPOCH) // width
    return EPOCH + index * width


def bucket_readings(readings: Iterable[Reading], spec: ResolutionSpec) -> List[TimeBucket]:
    """Average readings per bucket; empty buckets are omitted."""

    members: Dict[datetime, List[Reading]] = {}
    for reading in readings:
        members.setdefault(bucket_start(reading.timestamp, spec.bucket_width), []).append(reading)

    buckets: List[TimeBucket] = []
    for start, group in members.items():
        summary = summarize(group)
        buckets.append(
            TimeBucket(
                label=start.strftime(spec.label_format),
                avg_temperature=summary.mean_temperature,  # type: ignore[arg-type]
                avg_humidity=summary.mean_humidity,  # type: ignore[arg-type]
                timestamp=min(reading.timestamp for reading in group),
                count=summary.count,
            )
        )

    buckets.sort(key=lambda bucket: bucket.timestamp)
    return buckets


class HistoryAggregator:
    """Produces time-bucketed averages over a trailing window of the store."""

    def __init__(self, store: ReadingStore, clock: Callable[[], datetime]) -> None:
        self.store = store
        self._clock = clock

    def aggregate(self, resolution: Resolution) -> List[TimeBucket]:
        spec = RESOLUTIONS[resolution]
        now = self._clock()
        readings = self.store.range(now - spec.lookback, now)
        return bucket_readings(readings, spec)

    def aggregate_timeframe(self, timeframe: Timeframe) -> List[TimeBucket]:
        return self.aggregate(TIMEFRAME_RESOLUTIONS[timeframe])
