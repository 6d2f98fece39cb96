"""Unit tests for the aggregation logic."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from app.schemas import Timeframe
from datastore.readings import FileReadingStore
from models.records import Reading
from services.aggregator import (
    RESOLUTIONS,
    HistoryAggregator,
    Resolution,
    bucket_readings,
    bucket_start,
    summarize,
)

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


def _reading(timestamp: datetime, temperature: float, humidity: float = 50.0) -> Reading:
    return Reading(
        device_id="node-1",
        temperature=temperature,
        humidity=humidity,
        timestamp=timestamp,
    )


def _aggregator(readings: List[Reading], now: datetime = NOW) -> HistoryAggregator:
    store = FileReadingStore()
    for reading in readings:
        store.append(reading)
    return HistoryAggregator(store, clock=lambda: now)


def test_summarize_empty_iterable_returns_default_summary() -> None:
    summary = summarize([])

    assert summary.count == 0
    assert summary.min_temperature is None
    assert summary.mean_temperature is None
    assert summary.mean_humidity is None


def test_summarize_computes_statistics() -> None:
    readings = [
        _reading(NOW, 10.0, 30.0),
        _reading(NOW, 30.0, 50.0),
        _reading(NOW, 20.0, 70.0),
    ]

    summary = summarize(readings)

    assert summary.count == 3
    assert summary.min_temperature == 10.0
    assert summary.max_temperature == 30.0
    assert summary.mean_temperature == 20.0
    assert summary.min_humidity == 30.0
    assert summary.max_humidity == 70.0
    assert summary.mean_humidity == 50.0


def test_bucket_start_truncates_to_fixed_width() -> None:
    width = timedelta(minutes=30)

    assert bucket_start(datetime(2024, 1, 1, 10, 44, 59, tzinfo=timezone.utc), width) == datetime(
        2024, 1, 1, 10, 30, tzinfo=timezone.utc
    )
    assert bucket_start(datetime(2024, 1, 1, 5, 0, tzinfo=timezone.utc), timedelta(hours=6)) == datetime(
        2024, 1, 1, 0, 0, tzinfo=timezone.utc
    )


def test_bucket_start_normalises_other_timezones() -> None:
    plus_two = timezone(timedelta(hours=2))
    local = datetime(2024, 1, 2, 1, 30, tzinfo=plus_two)

    assert bucket_start(local, timedelta(days=1)) == datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_empty_window_yields_no_buckets() -> None:
    assert _aggregator([]).aggregate(Resolution.fine) == []


def test_fine_resolution_only_includes_last_24_hours() -> None:
    readings = [
        _reading(NOW - timedelta(hours=30), 99.0),
        _reading(NOW - timedelta(hours=24, seconds=1), 98.0),
        _reading(NOW - timedelta(hours=2), 20.0),
        _reading(NOW, 22.0),
    ]

    buckets = _aggregator(readings).aggregate(Resolution.fine)

    assert [bucket.avg_temperature for bucket in buckets] == [20.0, 22.0]


def test_readings_one_hour_apart_form_two_fine_buckets() -> None:
    t0 = NOW - timedelta(hours=3)
    readings = [
        _reading(t0, 20.0, 40.0),
        _reading(t0 + timedelta(hours=1), 22.0, 42.0),
    ]

    buckets = _aggregator(readings).aggregate(Resolution.fine)

    assert len(buckets) == 2
    assert (buckets[0].avg_temperature, buckets[0].avg_humidity) == (20.0, 40.0)
    assert (buckets[1].avg_temperature, buckets[1].avg_humidity) == (22.0, 42.0)
    assert buckets[0].timestamp == t0
    assert buckets[0].label == "09:00"


def test_readings_in_same_bucket_are_averaged() -> None:
    start = datetime(2024, 3, 10, 9, 0, tzinfo=timezone.utc)
    readings = [
        _reading(start + timedelta(minutes=5), 20.0, 40.0),
        _reading(start + timedelta(minutes=25), 22.0, 42.0),
    ]

    buckets = _aggregator(readings).aggregate(Resolution.fine)

    assert len(buckets) == 1
    assert buckets[0].avg_temperature == pytest.approx(21.0)
    assert buckets[0].avg_humidity == pytest.approx(41.0)
    assert buckets[0].timestamp == start + timedelta(minutes=5)
    assert buckets[0].count == 2


def test_medium_and_coarse_labels() -> None:
    readings = [_reading(datetime(2024, 3, 9, 14, 10, tzinfo=timezone.utc), 20.0)]
    aggregator = _aggregator(readings)

    assert aggregator.aggregate(Resolution.medium)[0].label == "2024-03-09 12:00"
    assert aggregator.aggregate(Resolution.coarse)[0].label == "2024-03-09"


def test_timeframes_map_to_resolutions() -> None:
    readings = [_reading(NOW - timedelta(days=20), 15.0), _reading(NOW - timedelta(days=3), 25.0)]
    aggregator = _aggregator(readings)

    assert [b.avg_temperature for b in aggregator.aggregate_timeframe(Timeframe.last_24h)] == []
    assert [b.avg_temperature for b in aggregator.aggregate_timeframe(Timeframe.last_7d)] == [25.0]
    assert [b.avg_temperature for b in aggregator.aggregate_timeframe(Timeframe.last_30d)] == [
        15.0,
        25.0,
    ]


_offsets = st.integers(min_value=0, max_value=int(timedelta(days=30).total_seconds()))
_values = st.floats(min_value=-40.0, max_value=120.0, allow_nan=False, allow_infinity=False)


@settings(max_examples=75, deadline=None)
@given(
    resolution=st.sampled_from(list(Resolution)),
    samples=st.lists(st.tuples(_offsets, _values, _values), max_size=60),
)
def test_buckets_are_ordered_and_average_their_members(resolution, samples) -> None:
    spec = RESOLUTIONS[resolution]
    readings = [
        _reading(NOW - timedelta(seconds=offset), temperature, humidity)
        for offset, temperature, humidity in samples
    ]

    buckets = bucket_readings(readings, spec)

    stamps = [bucket.timestamp for bucket in buckets]
    assert stamps == sorted(stamps)
    assert len(set(stamps)) == len(stamps)
    assert sum(bucket.count for bucket in buckets) == len(readings)

    for bucket in buckets:
        key = bucket_start(bucket.timestamp, spec.bucket_width)
        members = [r for r in readings if bucket_start(r.timestamp, spec.bucket_width) == key]
        assert len(members) == bucket.count
        assert bucket.timestamp == min(r.timestamp for r in members)
        assert bucket.avg_temperature == pytest.approx(
            sum(r.temperature for r in members) / len(members)
        )
        assert bucket.avg_humidity == pytest.approx(
            sum(r.humidity for r in members) / len(members)
        )
