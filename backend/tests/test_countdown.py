from __future__ import annotations

import asyncio

import pytest

from app.monitoring.metrics import live_countdowns_total
from joinlive.client import EditorClient
from joinlive.live import CountdownCoordinator, LiveSession, SelectionState


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


@pytest.mark.anyio
async def test_coordinator_ticks_then_completes() -> None:
    lock = asyncio.Lock()
    ticks: list[int] = []
    completed: list[SelectionState] = []

    async def on_tick(session) -> None:
        ticks.append(session.seconds_remaining)

    async def on_complete(session) -> None:
        completed.append(session.target)

    coordinator = CountdownCoordinator(lock, on_tick=on_tick, on_complete=on_complete, tick_seconds=0.01)
    async with lock:
        coordinator.start(SelectionState.single("a"), 3)

    await _wait_for(lambda: completed)
    assert ticks == [2, 1]
    assert completed == [SelectionState.single("a")]
    assert not coordinator.active


@pytest.mark.anyio
async def test_cancelled_coordinator_never_fires() -> None:
    lock = asyncio.Lock()
    fired: list[str] = []

    async def on_tick(session) -> None:
        fired.append("tick")

    async def on_complete(session) -> None:
        fired.append("complete")

    coordinator = CountdownCoordinator(lock, on_tick=on_tick, on_complete=on_complete, tick_seconds=0.01)
    async with lock:
        coordinator.start(SelectionState.single("a"), 1)
        cancelled = coordinator.cancel()

    await asyncio.sleep(0.05)
    assert cancelled is not None and cancelled.target == SelectionState.single("a")
    assert fired == []
    assert coordinator.cancel() is None


@pytest.mark.anyio
async def test_countdown_broadcasts_and_applies_target(live_session: LiveSession, make_websocket) -> None:
    editor = make_websocket("editor")
    await live_session.connect(editor)
    completed_before = live_countdowns_total.value("completed")

    await live_session.start_countdown(SelectionState.single("cam-1"), 3)
    await _wait_for(lambda: not live_session.selection.is_empty)

    assert editor.sent == [
        {"type": "countdownStart", "channelId": "cam-1", "seconds": 3},
        {"type": "countdownUpdate", "channelId": "cam-1", "seconds": 2},
        {"type": "countdownUpdate", "channelId": "cam-1", "seconds": 1},
        {"type": "channelSelected", "channelId": "cam-1"},
    ]
    assert live_session.countdown is None
    assert live_countdowns_total.value("completed") == completed_before + 1


@pytest.mark.anyio
async def test_multi_countdown_selects_all_targets(live_session: LiveSession, make_websocket) -> None:
    viewer = make_websocket()
    await live_session.connect(viewer)

    await live_session.start_countdown(SelectionState.multi(["a", "b"]), 1)
    await _wait_for(lambda: not live_session.selection.is_empty)

    assert viewer.sent[0] == {"type": "countdownStart", "channelIds": ["a", "b"], "seconds": 1}
    assert viewer.sent[-1] == {"type": "multipleChannelsSelected", "channelIds": ["a", "b"]}


@pytest.mark.anyio
async def test_new_countdown_replaces_running_one(live_session: LiveSession, make_websocket) -> None:
    viewer = make_websocket()
    await live_session.connect(viewer)

    await live_session.start_countdown(SelectionState.single("a"), 50)
    await live_session.start_countdown(SelectionState.single("b"), 2)
    await _wait_for(lambda: not live_session.selection.is_empty)

    assert viewer.sent[:3] == [
        {"type": "countdownStart", "channelId": "a", "seconds": 50},
        {"type": "countdownCancelled", "channelId": "a"},
        {"type": "countdownStart", "channelId": "b", "seconds": 2},
    ]
    assert live_session.selection == SelectionState.single("b")
    assert all(event.get("channelId") != "a" for event in viewer.sent[3:])


@pytest.mark.anyio
async def test_explicit_cancel_stops_countdown(live_session: LiveSession, make_websocket) -> None:
    viewer = make_websocket()
    await live_session.connect(viewer)

    await live_session.start_countdown(SelectionState.single("a"), 2)
    assert await live_session.cancel_countdown()
    assert not await live_session.cancel_countdown()
    await asyncio.sleep(0.05)

    assert viewer.types() == ["countdownStart", "countdownCancelled"]
    assert live_session.selection.is_empty


@pytest.mark.anyio
async def test_cancel_keeps_the_previous_selection_on_air(live_session: LiveSession, make_websocket) -> None:
    viewer = make_websocket()
    await live_session.connect(viewer)
    await live_session.select_channel("x")
    viewer.clear()

    await live_session.start_countdown(SelectionState.single("y"), 2)
    assert await live_session.cancel_countdown()
    await asyncio.sleep(0.05)

    assert viewer.types() == ["countdownStart", "countdownCancelled"]
    assert live_session.selection == SelectionState.single("x")


@pytest.mark.anyio
async def test_direct_selection_cancels_pending_countdown(live_session: LiveSession, make_websocket) -> None:
    viewer = make_websocket()
    await live_session.connect(viewer)

    await live_session.start_countdown(SelectionState.single("a"), 2)
    await live_session.select_channel("b")
    await asyncio.sleep(0.05)

    assert viewer.types() == ["countdownStart", "countdownCancelled", "channelSelected"]
    assert live_session.selection == SelectionState.single("b")


@pytest.mark.anyio
async def test_countdown_seconds_are_clamped(live_session: LiveSession, make_websocket) -> None:
    viewer = make_websocket()
    await live_session.connect(viewer)

    await live_session.start_countdown(SelectionState.single("a"), 600)
    assert viewer.sent[-1]["seconds"] == 60
    await live_session.start_countdown(SelectionState.single("a"))
    assert viewer.sent[-1] == {"type": "countdownStart", "channelId": "a", "seconds": 5}
    await live_session.cancel_countdown()


@pytest.mark.anyio
async def test_aclose_stops_ticking_silently(live_session: LiveSession, make_websocket) -> None:
    viewer = make_websocket()
    await live_session.connect(viewer)

    await live_session.start_countdown(SelectionState.single("a"), 2)
    await live_session.aclose()
    await asyncio.sleep(0.05)

    assert viewer.types() == ["countdownStart"]
    assert live_session.countdown is None


class SessionConnection:
    """Client connection that delivers every frame straight to a session."""

    def __init__(self, session: LiveSession, websocket) -> None:
        self.session = session
        self.websocket = websocket

    async def send(self, data: str) -> None:
        await self.session.handle_raw(self.websocket, data)

    async def close(self) -> None:
        return None


@pytest.mark.anyio
async def test_editor_toggle_off_cancels_without_changing_selection(
    live_session: LiveSession, make_websocket
) -> None:
    editor_socket = make_websocket()
    await live_session.connect(editor_socket)
    editor = EditorClient("ws://studio.example/ws/live", countdown_seconds=2)
    editor._websocket = SessionConnection(live_session, editor_socket)

    await editor.take("x")
    assert await editor.toggle_countdown()
    await editor.take("y")
    assert not await editor.toggle_countdown()
    await asyncio.sleep(0.05)

    for event in editor_socket.sent:
        editor.apply_event(event)

    assert editor_socket.types() == ["channelSelected", "countdownStart", "countdownCancelled"]
    assert live_session.selection == SelectionState.single("x")
    assert editor.selection == SelectionState.single("x")
