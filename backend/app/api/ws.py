"""WebSocket endpoint for the live session."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, Dict, TypeVar

from fastapi import APIRouter, Depends, WebSocket
from fastapi.websockets import WebSocketDisconnect, WebSocketState

from app.config import get_settings
from joinlive.live import LiveSession, safe_send_text

router = APIRouter(prefix="/ws", tags=["ws"])

settings = get_settings()

logger = logging.getLogger(__name__)

live_session = LiveSession.from_settings(settings)

T = TypeVar("T")

PONG_FRAME = json.dumps({"type": "pong"})


def get_live_session() -> LiveSession:
    return live_session


async def receive_frame(websocket: WebSocket) -> str | bytes | None:
    """Return the next text or binary frame, raising on disconnect."""

    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
    if message.get("text") is not None:
        return message["text"]
    return message.get("bytes")


async def iter_keepalive_messages(
    websocket: WebSocket,
    receiver: Callable[[], Awaitable[T]],
    *,
    timeout_seconds: float | int | None,
    ping_interval_seconds: float | int | None,
    ping_payload: Dict[str, Any] | None = None,
) -> AsyncIterator[T]:
    """Yield messages from *receiver* while sending keepalive pings when idle."""

    ping_frame = json.dumps(ping_payload or {"type": "ping"})
    timeout = float(timeout_seconds) if timeout_seconds else 0.0
    interval = float(ping_interval_seconds) if ping_interval_seconds else 0.0
    last_activity = time.monotonic()
    last_ping_sent: float | None = None

    while True:
        try:
            if timeout > 0:
                message = await asyncio.wait_for(receiver(), timeout=timeout)
            else:
                message = await receiver()
        except asyncio.TimeoutError:
            if websocket.application_state != WebSocketState.CONNECTED:
                break

            now = time.monotonic()
            should_ping = interval <= 0 or (
                now - last_activity >= interval
                and (last_ping_sent is None or now - last_ping_sent >= interval)
            )
            if should_ping:
                if not await safe_send_text(websocket, ping_frame):
                    break
                last_ping_sent = now
            continue
        except asyncio.CancelledError:  # pragma: no cover - cooperative cancellation
            raise
        except (RuntimeError, WebSocketDisconnect):
            break
        else:
            last_activity = time.monotonic()
            last_ping_sent = None
            yield message


@router.websocket("/live")
async def websocket_live_session(
    websocket: WebSocket,
    session: LiveSession = Depends(get_live_session),
) -> None:
    """Coordinate editors and participants of the live production."""

    await websocket.accept()
    await session.connect(websocket)
    try:
        async for raw_message in iter_keepalive_messages(
            websocket,
            lambda: receive_frame(websocket),
            timeout_seconds=settings.websocket_keepalive_timeout_seconds,
            ping_interval_seconds=settings.websocket_keepalive_ping_interval_seconds,
        ):
            if not raw_message:
                continue
            if isinstance(raw_message, str) and raw_message.strip().lower() == "ping":
                await safe_send_text(websocket, PONG_FRAME)
                continue
            await session.handle_raw(websocket, raw_message)
    finally:
        await session.disconnect(websocket)
