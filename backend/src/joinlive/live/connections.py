"""Connection registry and best-effort fan-out for live session clients."""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Iterator

from fastapi.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from app.monitoring.metrics import live_connections, live_events_total


logger = logging.getLogger(__name__)


async def safe_send_text(websocket: WebSocket, data: str) -> bool:
    """Send a text frame, handling disconnections gracefully.

    Returns True if the frame was handed to the transport, False otherwise.
    """
    if websocket.application_state != WebSocketState.CONNECTED:
        return False
    try:
        await websocket.send_text(data)
        return True
    except (WebSocketDisconnect, RuntimeError) as e:
        logger.debug("Failed to send websocket message: %s", e)
        return False


class ConnectionRegistry:
    """Track connected websocket clients.

    Editors and participants are not distinguished here; the registry only knows
    membership and delivers events to whoever is currently open.
    """

    def __init__(self) -> None:
        self._connections: set[WebSocket] = set()

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, websocket: object) -> bool:
        return websocket in self._connections

    def __iter__(self) -> Iterator[WebSocket]:
        return iter(self._connections.copy())

    def register(self, websocket: WebSocket) -> None:
        if websocket in self._connections:
            return
        self._connections.add(websocket)
        live_connections.inc()
        logger.info("Live client connected (total: %d)", len(self._connections))

    def unregister(self, websocket: WebSocket) -> None:
        if websocket not in self._connections:
            return
        self._connections.discard(websocket)
        live_connections.dec()
        logger.info("Live client disconnected (remaining: %d)", len(self._connections))

    async def send(self, websocket: WebSocket, event: dict[str, Any]) -> bool:
        delivered = await safe_send_text(websocket, json.dumps(event))
        if delivered:
            live_events_total.labels("out", event.get("type", "unknown")).inc()
        return delivered

    async def broadcast(
        self,
        event: dict[str, Any],
        *,
        exclude: Iterable[WebSocket] | None = None,
    ) -> int:
        """Send *event* to every open client and return how many received it.

        Closed or failing clients are skipped; nothing is retried or queued.
        """
        encoded = json.dumps(event)
        exclude_set = set(exclude or [])
        delivered = 0
        for connection in self._connections.copy():
            if connection in exclude_set:
                continue
            if await safe_send_text(connection, encoded):
                delivered += 1
        live_events_total.labels("out", event.get("type", "unknown")).inc()
        return delivered
