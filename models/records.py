"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict


@dataclass(frozen=True, slots=True)
class Reading:
    """A single temperature/humidity observation, stamped at ingestion time."""

    device_id: str
    temperature: float
    humidity: float
    timestamp: datetime

    def to_record(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "temperature": self.temperature,
            "humidity": self.humidity,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Reading":
        timestamp = datetime.fromisoformat(record["timestamp"])
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return cls(
            device_id=str(record["device_id"]),
            temperature=float(record["temperature"]),
            humidity=float(record["humidity"]),
            timestamp=timestamp.astimezone(timezone.utc),
        )


@dataclass(frozen=True, slots=True)
class TimeBucket:
    """Averaged readings for one fixed-duration slice of time."""

    label: str
    avg_temperature: float
    avg_humidity: float
    timestamp: datetime
    count: int = 1
