"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse

from app.schemas import HistoryPoint, ReadingOut, ReportRequestIn, Timeframe
from datastore.readings import StoreError
from services.reports import ReportRequest, ReportValidationError
from services.runtime import TelemetryRuntime

router = APIRouter()


def get_runtime(request: Request) -> TelemetryRuntime:
    return request.app.state.runtime


def require_requester(
    request: Request,
    runtime: TelemetryRuntime = Depends(get_runtime),
) -> str:
    """Identity established by the upstream authentication layer."""
    requester = (request.headers.get(runtime.settings.identity_header) or "").strip()
    if not requester:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return requester


def _store_unavailable(exc: StoreError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Reading store unavailable: {exc}",
    )


@router.get(
    "/api/readings/latest",
    response_model=Optional[ReadingOut],
    summary="Most recently ingested reading, or null when none exist.",
)
def latest_reading(
    _requester: str = Depends(require_requester),
    runtime: TelemetryRuntime = Depends(get_runtime),
) -> Optional[ReadingOut]:
    try:
        reading = runtime.store.latest()
    except StoreError as exc:
        raise _store_unavailable(exc) from exc
    if reading is None:
        return None
    return ReadingOut.from_reading(reading)


@router.get(
    "/api/readings/history",
    response_model=List[HistoryPoint],
    summary="Time-bucketed averages for charting.",
)
def reading_history(
    timeframe: Timeframe = Query(Timeframe.last_24h, description="One of 24h, 7d or 30d."),
    _requester: str = Depends(require_requester),
    runtime: TelemetryRuntime = Depends(get_runtime),
) -> List[HistoryPoint]:
    try:
        buckets = runtime.history.aggregate_timeframe(timeframe)
    except StoreError as exc:
        raise _store_unavailable(exc) from exc
    return [HistoryPoint.from_bucket(bucket) for bucket in buckets]


@router.post(
    "/api/reports/generate",
    response_class=PlainTextResponse,
    summary="Generate a plain-text statistical report for a date range.",
)
def generate_report(
    body: ReportRequestIn,
    requester: str = Depends(require_requester),
    runtime: TelemetryRuntime = Depends(get_runtime),
) -> PlainTextResponse:
    request = ReportRequest(type=body.type, start=body.start_date, end=body.end_date)
    try:
        document = runtime.reports.generate(request, requester=requester)
    except ReportValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except StoreError as exc:
        raise _store_unavailable(exc) from exc
    return PlainTextResponse(document.render())


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
