"""In-process fan-out of newly ingested readings to live subscribers."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Callable, Dict, List

from app.schemas import ReadingOut
from models.records import Reading

logger = logging.getLogger(__name__)

NEW_READING_EVENT = "new-reading"

Deliver = Callable[[Dict[str, Any]], None]


@dataclass(frozen=True)
class Subscription:
    """Handle returned by :meth:`LiveHub.subscribe`."""

    subscription_id: int
    deliver: Deliver = field(compare=False, repr=False)


def build_event(reading: Reading) -> Dict[str, Any]:
    return {
        "event": NEW_READING_EVENT,
        "data": ReadingOut.from_reading(reading).model_dump(mode="json", by_alias=True),
    }


class LiveHub:
    """Holds the currently connected subscribers and broadcasts to each of them.

    There is no history: a subscriber only sees readings broadcast while it is
    subscribed. A subscriber whose ``deliver`` callable raises is dropped without
    affecting delivery to the others.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[int, Subscription] = {}
        self._ids = itertools.count(1)
        self._lock = Lock()

    def subscribe(self, deliver: Deliver) -> Subscription:
        with self._lock:
            subscription = Subscription(subscription_id=next(self._ids), deliver=deliver)
            self._subscribers[subscription.subscription_id] = subscription
        logger.debug(
            "Live subscriber connected",
            extra={"subscription_id": subscription.subscription_id},
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            removed = self._subscribers.pop(subscription.subscription_id, None)
        if removed is not None:
            logger.debug(
                "Live subscriber disconnected",
                extra={"subscription_id": subscription.subscription_id},
            )

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def broadcast(self, reading: Reading) -> int:
        """Deliver ``reading`` to every current subscriber; return the success count."""

        event = build_event(reading)
        with self._lock:
            targets: List[Subscription] = list(self._subscribers.values())

        delivered = 0
        for subscription in targets:
            try:
                subscription.deliver(event)
            except Exception as exc:  # noqa: BLE001 - one subscriber must not affect others
                logger.warning(
                    "Dropping live subscriber after delivery failure",
                    extra={"subscription_id": subscription.subscription_id, "reason": str(exc)},
                )
                self.unsubscribe(subscription)
                continue
            delivered += 1
        return delivered

    def close(self) -> None:
        with self._lock:
            self._subscribers.clear()
