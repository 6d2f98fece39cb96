"""Unit tests for the append-only reading store."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from datastore.readings import FileReadingStore, StoreError
from models.records import Reading

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _reading(minutes: int, temperature: float = 20.0, device_id: str = "node-1") -> Reading:
    return Reading(
        device_id=device_id,
        temperature=temperature,
        humidity=50.0,
        timestamp=T0 + timedelta(minutes=minutes),
    )


def test_empty_store_has_no_latest_and_empty_range() -> None:
    store = FileReadingStore()

    assert store.latest() is None
    assert store.range(T0, T0 + timedelta(days=1)) == []


def test_latest_returns_most_recently_appended() -> None:
    store = FileReadingStore()
    store.append(_reading(0, 20.0))
    store.append(_reading(5, 21.0))

    latest = store.latest()
    assert latest is not None
    assert latest.temperature == 21.0


def test_range_is_inclusive_and_ascending() -> None:
    store = FileReadingStore()
    for minutes in (0, 10, 20, 30):
        store.append(_reading(minutes, temperature=float(minutes)))

    result = store.range(T0 + timedelta(minutes=10), T0 + timedelta(minutes=20))

    assert [reading.temperature for reading in result] == [10.0, 20.0]


def test_range_with_start_after_end_is_empty() -> None:
    store = FileReadingStore()
    store.append(_reading(0))

    assert store.range(T0 + timedelta(minutes=1), T0) == []


def test_out_of_order_append_keeps_range_sorted() -> None:
    store = FileReadingStore()
    store.append(_reading(10, 10.0))
    store.append(_reading(0, 0.0))

    result = store.range(T0, T0 + timedelta(hours=1))

    assert [reading.temperature for reading in result] == [0.0, 10.0]
    assert store.latest() == _reading(0, 0.0)


def test_duplicate_readings_are_both_kept() -> None:
    store = FileReadingStore()
    store.append(_reading(0))
    store.append(_reading(0))

    assert store.count() == 2


def test_append_persists_json_lines_and_reloads(tmp_path: Path) -> None:
    path = tmp_path / "readings.jsonl"
    store = FileReadingStore(persistence_path=path)
    store.append(_reading(0, 19.5))
    store.append(_reading(30, 21.5))
    store.close()

    lines = path.read_text().splitlines()
    assert len(lines) == 2
    assert json.loads(lines[0])["temperature"] == 19.5

    reloaded = FileReadingStore(persistence_path=path)
    assert reloaded.count() == 2
    assert reloaded.latest() == _reading(30, 21.5)
    reloaded.close()


def test_reload_skips_corrupt_lines(tmp_path: Path, caplog) -> None:
    path = tmp_path / "readings.jsonl"
    good = json.dumps(_reading(0).to_record())
    path.write_text(f"{good}\nnot json\n{{\"device_id\": \"x\"}}\n")

    store = FileReadingStore(persistence_path=path)

    assert store.count() == 1
    assert any("Skipping unreadable" in record.getMessage() for record in caplog.records)
    store.close()


def test_append_after_truncated_tail_survives_reload(tmp_path: Path) -> None:
    path = tmp_path / "readings.jsonl"
    path.write_text('{"device_id": "node-1", "humidity": 40.0, "temper')

    store = FileReadingStore(persistence_path=path)
    reading = _reading(5, 21.0, device_id="node-2")
    store.append(reading)
    store.close()

    reloaded = FileReadingStore(persistence_path=path)
    assert reloaded.count() == 1
    assert reloaded.latest() == reading
    reloaded.close()


def test_closed_store_raises_store_error() -> None:
    store = FileReadingStore()
    store.close()

    with pytest.raises(StoreError):
        store.append(_reading(0))
    with pytest.raises(StoreError):
        store.latest()
    with pytest.raises(StoreError):
        store.range(T0, T0)


def test_unwritable_location_raises_store_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("")

    with pytest.raises(StoreError):
        FileReadingStore(persistence_path=blocker / "readings.jsonl")
