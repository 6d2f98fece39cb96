"""WebSocket endpoint pushing new readings to connected viewers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

from fastapi import APIRouter, WebSocket, status

from services.runtime import TelemetryRuntime

logger = logging.getLogger(__name__)

router = APIRouter()


def _offer(queue: "asyncio.Queue[Dict[str, Any]]", event: Dict[str, Any]) -> None:
    if queue.full():
        logger.debug("Live viewer is behind; dropping event")
        return
    queue.put_nowait(event)


async def _forward_events(websocket: WebSocket, queue: "asyncio.Queue[Dict[str, Any]]") -> None:
    while True:
        event = await queue.get()
        await websocket.send_json(event)


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return
        if message.get("text") is None:
            await websocket.close(
                code=status.WS_1003_UNSUPPORTED_DATA, reason="Only text frames are accepted"
            )
            return


@router.websocket("/ws/readings")
async def live_readings(websocket: WebSocket) -> None:
    """Stream ``new-reading`` events until the viewer disconnects.

    No backlog is sent on connect; viewers fetch ``/api/readings/latest`` for
    the current state.
    """
    runtime: TelemetryRuntime = websocket.app.state.runtime
    requester = (
        websocket.headers.get(runtime.settings.identity_header)
        or websocket.query_params.get("user")
        or ""
    ).strip()
    if not requester:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Authentication required")
        return

    loop = asyncio.get_running_loop()
    queue: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue(maxsize=runtime.settings.live_queue_size)

    def deliver(event: Dict[str, Any]) -> None:
        loop.call_soon_threadsafe(_offer, queue, event)

    subscription = runtime.hub.subscribe(deliver)
    try:
        await websocket.accept()
        logger.info(
            "Live viewer connected",
            extra={"subscription_id": subscription.subscription_id, "requester": requester},
        )
        sender = asyncio.create_task(_forward_events(websocket, queue))
        receiver = asyncio.create_task(_wait_for_disconnect(websocket))
        done, pending = await asyncio.wait(
            {sender, receiver}, return_when=asyncio.FIRST_COMPLETED
        )
        for task in pending:
            task.cancel()
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                logger.info(
                    "Live viewer connection ended",
                    extra={
                        "subscription_id": subscription.subscription_id,
                        "reason": str(task.exception()),
                    },
                )
    finally:
        runtime.hub.unsubscribe(subscription)
