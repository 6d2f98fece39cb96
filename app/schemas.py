"""Pydantic schemas for the bus payload and the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.records import Reading, TimeBucket


class ReportType(str, Enum):
    """Report periods accepted by the report generator."""

    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    yearly = "yearly"


class Timeframe(str, Enum):
    """Historical chart windows exposed via the API."""

    last_24h = "24h"
    last_7d = "7d"
    last_30d = "30d"


class SensorPayload(BaseModel):
    """Message published by a sensor node on the readings topic.

    Any other keys in the message (for example a sensor-side timestamp) are
    ignored.
    """

    model_config = ConfigDict(extra="ignore")

    device_id: str = Field(..., min_length=1)
    temperature: float = Field(..., allow_inf_nan=False)
    humidity: float = Field(..., allow_inf_nan=False)

    @field_validator("device_id", mode="before")
    @classmethod
    def _strip_device_id(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("temperature", "humidity", mode="before")
    @classmethod
    def _require_number(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("must be a number")
        return value


class ReadingOut(BaseModel):
    """Reading as pushed to live viewers and returned by the latest query."""

    model_config = ConfigDict(populate_by_name=True)

    device_id: str = Field(..., alias="deviceId")
    temperature: float
    humidity: float
    timestamp: datetime

    @classmethod
    def from_reading(cls, reading: Reading) -> "ReadingOut":
        return cls(
            device_id=reading.device_id,
            temperature=reading.temperature,
            humidity=reading.humidity,
            timestamp=reading.timestamp,
        )


class HistoryPoint(BaseModel):
    """One averaged bucket of the historical chart."""

    timestamp: datetime
    temperature: float
    humidity: float
    label: str

    @classmethod
    def from_bucket(cls, bucket: TimeBucket) -> "HistoryPoint":
        return cls(
            timestamp=bucket.timestamp,
            temperature=bucket.avg_temperature,
            humidity=bucket.avg_humidity,
            label=bucket.label,
        )


class ReportRequestIn(BaseModel):
    """Body of a report generation request."""

    model_config = ConfigDict(populate_by_name=True)

    type: ReportType
    start_date: Optional[datetime] = Field(default=None, alias="startDate")
    end_date: Optional[datetime] = Field(default=None, alias="endDate")
