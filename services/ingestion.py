"""Validation and persistence of sensor messages arriving from the bus."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Optional, Union

from pydantic import ValidationError

from app.schemas import SensorPayload
from datastore.readings import ReadingStore
from models.records import Reading
from services.hub import LiveHub

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class IngestionStats:
    received: int = 0
    stored: int = 0
    dropped: int = 0
    failed: int = 0


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "payload"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


class IngestionGateway:
    """Turns raw bus payloads into stored readings and live events.

    A message is processed as parse, then persist, then broadcast. Malformed
    messages are logged and dropped. Store failures propagate to the caller
    and nothing is broadcast for that message.
    """

    def __init__(
        self,
        store: ReadingStore,
        hub: LiveHub,
        clock: Clock = utcnow,
    ) -> None:
        self.store = store
        self.hub = hub
        self._clock = clock
        self._stats = IngestionStats()
        self._stats_lock = Lock()

    def handle_message(
        self, payload: Union[bytes, str], topic: Optional[str] = None
    ) -> Optional[Reading]:
        self._count("received")
        try:
            message = SensorPayload.model_validate_json(payload)
        except ValidationError as exc:
            self._count("dropped")
            logger.warning(
                "Dropping malformed sensor message",
                extra={"topic": topic, "reason": _describe(exc)},
            )
            return None

        reading = Reading(
            device_id=message.device_id,
            temperature=message.temperature,
            humidity=message.humidity,
            timestamp=self._clock(),
        )

        try:
            self.store.append(reading)
        except Exception:
            self._count("failed")
            raise
        self._count("stored")

        logger.debug(
            "Stored sensor reading",
            extra={"device_id": reading.device_id, "topic": topic},
        )
        self.hub.broadcast(reading)
        return reading

    def stats(self) -> IngestionStats:
        with self._stats_lock:
            return IngestionStats(**vars(self._stats))

    def _count(self, name: str) -> None:
        with self._stats_lock:
            setattr(self._stats, name, getattr(self._stats, name) + 1)
