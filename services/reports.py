"""Textual statistical reports over arbitrary date ranges."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, time, timezone
from typing import Callable, List, Optional, Tuple

from app.schemas import ReportType
from datastore.readings import ReadingStore
from models.records import Reading
from services.aggregator import ReadingSummary, summarize
from storage.report_archive import ReportArchive

logger = logging.getLogger(__name__)

NO_DATA_MARKER = "No readings found for the selected period."

_DATE_FORMAT = "%Y-%m-%d"
_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class ReportValidationError(ValueError):
    """Raised when a report request is rejected before any query is issued."""


@dataclass(frozen=True)
class ReportRequest:
    type: ReportType
    start: Optional[datetime] = None
    end: Optional[datetime] = None


@dataclass(frozen=True)
class ReportDocument:
    header: str
    title: str
    filename: str
    generated_at: datetime
    period_start: datetime
    period_end: datetime
    requester: str
    summary: Optional[ReadingSummary]
    readings: Tuple[Reading, ...] = field(default_factory=tuple)

    def render(self) -> str:
        lines = [
            f"{self.header} - {self.title}",
            f"Generated on: {_format_instant(self.generated_at)}",
            (
                f"Report period: {_format_instant(self.period_start)} "
                f"to {_format_instant(self.period_end)}"
            ),
            f"Generated by: {self.requester}",
            "",
        ]

        if self.summary is None or not self.readings:
            lines.append(NO_DATA_MARKER)
            return "\n".join(lines) + "\n"

        summary = self.summary
        lines += [
            "SUMMARY STATISTICS",
            "------------------",
            "Temperature (°C):",
            f"  Minimum: {summary.min_temperature:.1f}",
            f"  Maximum: {summary.max_temperature:.1f}",
            f"  Average: {summary.mean_temperature:.1f}",
            "",
            "Humidity (%):",
            f"  Minimum: {summary.min_humidity:.1f}",
            f"  Maximum: {summary.max_humidity:.1f}",
            f"  Average: {summary.mean_humidity:.1f}",
            "",
            "DETAILED READINGS",
            "------------------",
            "Timestamp            | Temperature (°C) | Humidity (%)",
            "---------------------|------------------|-------------",
        ]
        for reading in self.readings:
            lines.append(
                f"{_format_instant(reading.timestamp):<20} | "
                f"{reading.temperature:<16.1f} | {reading.humidity:.1f}"
            )
        return "\n".join(lines) + "\n"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _format_instant(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime(_DATETIME_FORMAT)


def end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.max, tzinfo=timezone.utc)


def _title_and_filename(
    report_type: ReportType, start: datetime, end: datetime
) -> Tuple[str, str]:
    start_day = start.strftime(_DATE_FORMAT)
    end_day = end.strftime(_DATE_FORMAT)
    if report_type is ReportType.daily:
        return f"Daily Report - {start_day}", f"daily_report_{start_day}.txt"
    if report_type is ReportType.yearly:
        return f"Yearly Report - {start.year}", f"yearly_report_{start.year}.txt"
    label = report_type.value.capitalize()
    return (
        f"{label} Report - {start_day} to {end_day}",
        f"{report_type.value}_report_{start_day}.txt",
    )


class ReportService:
    """Validates report requests, computes statistics and archives the result."""

    def __init__(
        self,
        store: ReadingStore,
        archive: ReportArchive,
        clock: Callable[[], datetime],
        header: str = "Telemetry Hub",
    ) -> None:
        self.store = store
        self.archive = archive
        self._clock = clock
        self.header = header

    def resolve_period(self, request: ReportRequest) -> Tuple[datetime, datetime]:
        """Validate ``request`` and return its UTC ``(start, end)`` period."""
        if request.start is None:
            raise ReportValidationError("startDate is required")
        if request.type is not ReportType.daily and request.end is None:
            raise ReportValidationError(f"endDate is required for {request.type.value} reports")

        start = _as_utc(request.start)
        if request.end is not None:
            end = _as_utc(request.end)
        elif request.type is ReportType.daily:
            end = end_of_day(start)
        else:
            end = self._clock()

        if end < start:
            raise ReportValidationError("endDate must not be earlier than startDate")
        return start, end

    def generate(self, request: ReportRequest, requester: str) -> ReportDocument:
        start, end = self.resolve_period(request)
        readings: List[Reading] = self.store.range(start, end)
        title, filename = _title_and_filename(request.type, start, end)

        document = ReportDocument(
            header=self.header,
            title=title,
            filename=filename,
            generated_at=self._clock(),
            period_start=start,
            period_end=end,
            requester=requester,
            summary=summarize(readings) if readings else None,
            readings=tuple(readings),
        )
        logger.info(
            "Generated report",
            extra={
                "report_type": request.type.value,
                "requester": requester,
                "reading_count": len(readings),
            },
        )
        self._archive(document)
        return document

    def _archive(self, document: ReportDocument) -> None:
        try:
            self.archive.put_object(document.filename, document.render().encode("utf-8"))
        except OSError:
            logger.exception(
                "Failed to archive report",
                extra={"object_key": document.filename},
            )
