from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_MQTT_HOST_ENV = "MQTT_HOST"
_MQTT_PORT_ENV = "MQTT_PORT"
_MQTT_USERNAME_ENV = "MQTT_USERNAME"
_MQTT_PASSWORD_ENV = "MQTT_PASSWORD"
_MQTT_TOPIC_ENV = "MQTT_TOPIC"
_MQTT_CLIENT_ID_ENV = "MQTT_CLIENT_ID"
_MQTT_RECONNECT_ENV = "MQTT_RECONNECT_SECONDS"
_STORE_PATH_ENV = "READINGS_STORE_PATH"
_REPORTS_ROOT_ENV = "REPORTS_ROOT_PATH"
_INGEST_QUEUE_ENV = "INGEST_QUEUE_SIZE"
_LIVE_QUEUE_ENV = "LIVE_QUEUE_SIZE"
_IDENTITY_HEADER_ENV = "IDENTITY_HEADER"
_REPORT_HEADER_ENV = "REPORT_HEADER"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    mqtt_host: Optional[str]
    mqtt_port: int
    mqtt_username: Optional[str]
    mqtt_password: Optional[str]
    mqtt_topic: str
    mqtt_client_id: str
    mqtt_reconnect_seconds: int
    store_path: Optional[str]
    reports_root_path: Optional[str]
    ingest_queue_size: int
    live_queue_size: int
    identity_header: str
    report_header: str
    log_level: str

    @property
    def bus_enabled(self) -> bool:
        return self.mqtt_host is not None


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        mqtt_host=_read_optional_env(_MQTT_HOST_ENV, None),
        mqtt_port=_read_positive_int(_MQTT_PORT_ENV, 1883),
        mqtt_username=_read_optional_env(_MQTT_USERNAME_ENV, None),
        mqtt_password=_read_optional_env(_MQTT_PASSWORD_ENV, None),
        mqtt_topic=_read_str_env(_MQTT_TOPIC_ENV, "sensors/dht22/readings"),
        mqtt_client_id=_read_str_env(_MQTT_CLIENT_ID_ENV, "telemetry-hub"),
        mqtt_reconnect_seconds=_read_positive_int(_MQTT_RECONNECT_ENV, 5),
        store_path=_read_optional_env(_STORE_PATH_ENV, "./tmp/readings.jsonl"),
        reports_root_path=_read_optional_env(_REPORTS_ROOT_ENV, "./tmp/reports"),
        ingest_queue_size=_read_positive_int(_INGEST_QUEUE_ENV, 1000),
        live_queue_size=_read_positive_int(_LIVE_QUEUE_ENV, 100),
        identity_header=_read_str_env(_IDENTITY_HEADER_ENV, "X-Authenticated-User"),
        report_header=_read_str_env(_REPORT_HEADER_ENV, "Telemetry Hub"),
        log_level=_read_log_level("INFO"),
    )
