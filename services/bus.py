"""MQTT subscription and the single consumer that feeds the ingestion gateway.

Flow:
  sensor node -> MQTT topic -> MqttBridge.on_message
  -> IngestionConsumer queue -> worker thread -> IngestionGateway
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, Optional, Union

import paho.mqtt.client as mqtt

from datastore.readings import StoreError
from services.ingestion import IngestionGateway
from settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BusMessage:
    topic: Optional[str]
    payload: Union[bytes, str]


_STOP = object()


class IngestionConsumer:
    """Processes bus messages one at a time, strictly in arrival order.

    ``submit`` blocks once ``max_pending`` messages are waiting, which stalls
    the bus client's network loop instead of growing memory.
    """

    def __init__(self, gateway: IngestionGateway, max_pending: int = 1000) -> None:
        self.gateway = gateway
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=max_pending)
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._thread = threading.Thread(
                target=self._run, name="ingestion-consumer", daemon=True
            )
            self._thread.start()
        logger.info("Ingestion consumer started")

    def submit(self, topic: Optional[str], payload: Union[bytes, str]) -> None:
        self._queue.put(BusMessage(topic=topic, payload=payload))

    def join(self) -> None:
        """Block until every submitted message has been processed."""
        self._queue.join()

    def stop(self, timeout: float = 5.0) -> None:
        with self._lock:
            thread = self._thread
            self._thread = None
        if thread is None:
            return
        self._queue.put(_STOP)
        thread.join(timeout=timeout)
        stats = self.gateway.stats()
        logger.info(
            "Ingestion consumer stopped: received=%d stored=%d dropped=%d failed=%d",
            stats.received,
            stats.stored,
            stats.dropped,
            stats.failed,
        )

    def process(self, message: BusMessage) -> None:
        try:
            self.gateway.handle_message(message.payload, topic=message.topic)
        except StoreError as exc:
            logger.error(
                "Failed to persist sensor reading",
                extra={"topic": message.topic, "reason": str(exc)},
            )
        except Exception:  # noqa: BLE001 - the consumer loop must survive any message
            logger.exception(
                "Unexpected error while ingesting sensor message",
                extra={"topic": message.topic},
            )

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self.process(item)
            finally:
                self._queue.task_done()


class MqttBridge:
    """Subscribes to the readings topic and hands every message to the consumer."""

    def __init__(self, settings: Settings, consumer: IngestionConsumer) -> None:
        if settings.mqtt_host is None:
            raise ValueError("MQTT_HOST must be configured to start the bus bridge.")
        self.host = settings.mqtt_host
        self.port = settings.mqtt_port
        self.topic = settings.mqtt_topic
        self.client_id = settings.mqtt_client_id
        self.username = settings.mqtt_username
        self.password = settings.mqtt_password
        self.reconnect_seconds = settings.mqtt_reconnect_seconds
        self.consumer = consumer
        self._client: Optional[mqtt.Client] = None
        self.connected = threading.Event()

    def start(self) -> None:
        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
            protocol=mqtt.MQTTv311,
        )
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        if self.username:
            client.username_pw_set(self.username, self.password)
        client.reconnect_delay_set(
            min_delay=self.reconnect_seconds, max_delay=self.reconnect_seconds
        )

        logger.info("Connecting to MQTT broker at %s:%d", self.host, self.port)
        client.connect_async(self.host, self.port, keepalive=60)
        client.loop_start()
        self._client = client

    def stop(self) -> None:
        client = self._client
        self._client = None
        if client is None:
            return
        client.disconnect()
        client.loop_stop()
        self.connected.clear()
        logger.info("MQTT bridge stopped")

    def _on_connect(self, client, userdata, flags, reason_code, properties=None) -> None:
        if reason_code.is_failure:
            logger.error("MQTT connection refused", extra={"reason": str(reason_code)})
            return
        client.subscribe(self.topic, qos=1)
        self.connected.set()
        logger.info("Subscribed to sensor topic", extra={"topic": self.topic})

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None) -> None:
        self.connected.clear()
        logger.warning("Disconnected from MQTT broker", extra={"reason": str(reason_code)})

    def _on_message(self, client, userdata, message) -> None:
        self.consumer.submit(message.topic, message.payload)
