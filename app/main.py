from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from fastapi import FastAPI

from app.api import router
from app.live import router as live_router
from logging_config import configure_logging
from services.runtime import TelemetryRuntime, build_runtime


def create_app(
    runtime_factory: Optional[Callable[[], TelemetryRuntime]] = None,
) -> FastAPI:
    configure_logging()
    factory = runtime_factory or build_runtime

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        runtime = factory()
        runtime.start()
        app.state.runtime = runtime
        try:
            yield
        finally:
            runtime.shutdown()

    app = FastAPI(
        title="Telemetry Hub",
        description="Sensor telemetry ingestion with live fan-out, history and reports.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    app.include_router(live_router)
    return app


app = create_app()
