"""Shared pytest fixtures for backend tests."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Iterator

import pytest
from fastapi.testclient import TestClient
from fastapi.websockets import WebSocketState

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.api.ws import get_live_session
from app.main import app
from joinlive.live import LiveSession


class DummyWebSocket:
    """Records every frame the server sends, decoded from JSON."""

    def __init__(self, name: str = "client") -> None:
        self.name = name
        self.application_state = WebSocketState.CONNECTED
        self.sent: list[dict[str, Any]] = []

    async def send_text(self, data: str) -> None:
        self.sent.append(json.loads(data))

    def types(self) -> list[str]:
        return [event["type"] for event in self.sent]

    def of_type(self, event_type: str) -> list[dict[str, Any]]:
        return [event for event in self.sent if event["type"] == event_type]

    def clear(self) -> None:
        self.sent.clear()

    def __repr__(self) -> str:
        return f"DummyWebSocket({self.name!r})"



@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def live_session() -> LiveSession:
    """A fresh session with a fast countdown clock."""

    return LiveSession(countdown_tick_seconds=0.01, published_history_limit=200)


@pytest.fixture()
def client(live_session: LiveSession) -> Iterator[TestClient]:
    """Yield a FastAPI TestClient wired to a fresh live session."""

    app.dependency_overrides[get_live_session] = lambda: live_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def make_websocket():
    return DummyWebSocket
