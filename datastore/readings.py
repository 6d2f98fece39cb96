from __future__ import annotations

import bisect
import json
import logging
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import List, Optional, Protocol, TextIO

from models.records import Reading
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Raised when the underlying reading storage cannot be used."""


class ReadingStore(Protocol):
    """Append-only, time-ordered collection of readings."""

    def append(self, reading: Reading) -> None: ...

    def latest(self) -> Optional[Reading]: ...

    def range(self, start: datetime, end: datetime) -> List[Reading]: ...


def _timestamp_key(reading: Reading) -> datetime:
    return reading.timestamp


class FileReadingStore:
    """Reading store backed by an in-memory index and an optional JSON lines file.

    Each appended reading is written as one line and flushed before ``append``
    returns. Existing lines are never rewritten.
    """

    def __init__(self, persistence_path: Optional[Path] = None) -> None:
        self.persistence_path = persistence_path
        self._readings: List[Reading] = []
        self._latest: Optional[Reading] = None
        self._lock = Lock()
        self._handle: Optional[TextIO] = None
        self._closed = False
        if persistence_path:
            try:
                persistence_path.parent.mkdir(parents=True, exist_ok=True)
                partial_tail = self._load_from_disk()
                self._handle = persistence_path.open("a", encoding="utf-8")
                if partial_tail:
                    # Terminate the interrupted line so the next record starts cleanly.
                    self._handle.write("\n")
                    self._handle.flush()
            except OSError as exc:
                raise StoreError(f"Cannot open reading store at {persistence_path}: {exc}") from exc

    def append(self, reading: Reading) -> None:
        with self._lock:
            self._ensure_open()
            if self._handle is not None:
                try:
                    self._handle.write(json.dumps(reading.to_record(), sort_keys=True) + "\n")
                    self._handle.flush()
                except OSError as exc:
                    raise StoreError(f"Failed to persist reading: {exc}") from exc
            bisect.insort_right(self._readings, reading, key=_timestamp_key)
            self._latest = reading

    def latest(self) -> Optional[Reading]:
        with self._lock:
            self._ensure_open()
            return self._latest

    def range(self, start: datetime, end: datetime) -> List[Reading]:
        """Return readings with ``start <= timestamp <= end`` in ascending order."""

        with self._lock:
            self._ensure_open()
            if start > end:
                return []
            low = bisect.bisect_left(self._readings, start, key=_timestamp_key)
            high = bisect.bisect_right(self._readings, end, key=_timestamp_key)
            return self._readings[low:high]

    def count(self) -> int:
        with self._lock:
            return len(self._readings)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            if self._handle is not None:
                self._handle.close()
                self._handle = None

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreError("Reading store is closed.")

    def _load_from_disk(self) -> bool:
        """Load stored readings; return True when the file ends mid-line."""
        if not self.persistence_path or not self.persistence_path.exists():
            return False

        partial_tail = False

        with self.persistence_path.open("r", encoding="utf-8") as handle:
            for line_number, line in enumerate(handle, start=1):
                partial_tail = not line.endswith("\n")
                if not line.strip():
                    continue
                try:
                    reading = Reading.from_record(json.loads(line))
                except (ValueError, KeyError, TypeError):
                    logger.warning(
                        "Skipping unreadable stored reading on line %d",
                        line_number,
                        extra={"object_key": str(self.persistence_path)},
                    )
                    continue
                bisect.insort_right(self._readings, reading, key=_timestamp_key)
                self._latest = reading

        logger.info(
            "Loaded stored readings",
            extra={
                "object_key": str(self.persistence_path),
                "reading_count": len(self._readings),
            },
        )
        return partial_tail


def build_default_store(settings: Optional[Settings] = None) -> FileReadingStore:
    settings = settings or get_settings()
    persistence = Path(settings.store_path) if settings.store_path else None
    return FileReadingStore(persistence_path=persistence)
