"""Wiring of the ingestion and query components for one process."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from datastore.readings import FileReadingStore, build_default_store
from services.aggregator import HistoryAggregator
from services.bus import IngestionConsumer, MqttBridge
from services.hub import LiveHub
from services.ingestion import Clock, IngestionGateway, utcnow
from services.reports import ReportService
from settings import Settings, get_settings
from storage.report_archive import ReportArchive, build_default_archive

logger = logging.getLogger(__name__)


@dataclass
class TelemetryRuntime:
    """Owns the store, hub and services for the lifetime of the application."""

    settings: Settings
    store: FileReadingStore
    archive: ReportArchive
    hub: LiveHub
    gateway: IngestionGateway
    consumer: IngestionConsumer
    history: HistoryAggregator
    reports: ReportService
    bridge: Optional[MqttBridge] = None

    def start(self) -> None:
        self.consumer.start()
        if self.bridge is not None:
            self.bridge.start()
        else:
            logger.info("MQTT_HOST not set; bus ingestion disabled")

    def shutdown(self) -> None:
        if self.bridge is not None:
            self.bridge.stop()
        self.consumer.stop()
        self.hub.close()
        self.store.close()


def build_runtime(
    settings: Optional[Settings] = None,
    store: Optional[FileReadingStore] = None,
    archive: Optional[ReportArchive] = None,
    clock: Clock = utcnow,
) -> TelemetryRuntime:
    """Factory that wires the runtime from settings, allowing overrides for tests."""
    settings = settings or get_settings()
    store = store if store is not None else build_default_store(settings)
    archive = archive if archive is not None else build_default_archive(settings)
    hub = LiveHub()
    gateway = IngestionGateway(store=store, hub=hub, clock=clock)
    consumer = IngestionConsumer(gateway, max_pending=settings.ingest_queue_size)
    bridge = MqttBridge(settings, consumer) if settings.bus_enabled else None
    return TelemetryRuntime(
        settings=settings,
        store=store,
        archive=archive,
        hub=hub,
        gateway=gateway,
        consumer=consumer,
        history=HistoryAggregator(store, clock=clock),
        reports=ReportService(store, archive, clock=clock, header=settings.report_header),
        bridge=bridge,
    )
