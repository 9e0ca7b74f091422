"""Reconnecting websocket clients for participants and editors."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable

import websockets
from websockets.exceptions import WebSocketException

from .live import events
from .live.protocol import ProtocolError, require_target, selection_from_event
from .live.selection import SelectionState
from .media import FeedDirectory, MediaIngest, MediaPlayback


logger = logging.getLogger(__name__)

EventCallback = Callable[[dict[str, Any]], Awaitable[None] | None]


class LiveSessionClient:
    """Keep one websocket to the live session open.

    The server holds all shared state, so a dropped connection is simply
    re-opened after a fixed delay and :meth:`on_connected` runs again to
    resynchronise. Received events are applied in order through
    :meth:`apply_event`.
    """

    def __init__(
        self,
        url: str,
        *,
        reconnect_delay: float = 3.0,
        open_timeout: float = 10.0,
        on_event: EventCallback | None = None,
        connect: Callable[..., Any] | None = None,
    ) -> None:
        self.url = url
        self.reconnect_delay = reconnect_delay
        self._open_timeout = open_timeout
        self._on_event = on_event
        self._connect = connect or websockets.connect
        self._websocket: Any | None = None
        self._stop_event = asyncio.Event()
        self.connect_count = 0

    @property
    def connected(self) -> bool:
        return self._websocket is not None

    async def run(self) -> None:
        self._stop_event.clear()
        while not self._stop_event.is_set():
            try:
                async with self._connect(self.url, open_timeout=self._open_timeout) as websocket:
                    self._websocket = websocket
                    self.connect_count += 1
                    logger.info("Connected to live session at %s", self.url)
                    await self.on_connected()
                    async for raw in websocket:
                        await self._receive(raw)
                        if self._stop_event.is_set():
                            break
            except asyncio.CancelledError:
                raise
            except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
                logger.warning("Live session connection lost: %s", exc)
            finally:
                self._websocket = None

            if self._stop_event.is_set():
                break
            logger.info("Reconnecting to live session in %.1fs", self.reconnect_delay)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.reconnect_delay)
            except asyncio.TimeoutError:
                pass

    async def stop(self) -> None:
        self._stop_event.set()
        websocket = self._websocket
        if websocket is not None:
            await websocket.close()

    async def send(self, payload: dict[str, Any]) -> bool:
        websocket = self._websocket
        if websocket is None:
            logger.warning("Live session not connected, message not sent: %s", payload.get("type"))
            return False
        try:
            await websocket.send(json.dumps(payload))
        except WebSocketException as exc:
            logger.warning("Failed to send %s: %s", payload.get("type"), exc)
            return False
        return True

    async def on_connected(self) -> None:
        """Hook run after every (re)connect."""

    def apply_event(self, event: dict[str, Any]) -> None:
        """Update local state from a server event."""

    async def _receive(self, raw: str | bytes) -> None:
        try:
            event = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Discarded malformed live event")
            return
        if not isinstance(event, dict):
            return
        if event.get("type") == events.PING:
            await self.send({"type": events.PONG})
            return
        self.apply_event(event)
        if self._on_event is not None:
            result = self._on_event(event)
            if asyncio.iscoroutine(result):
                await result


def _countdown_target(event: dict[str, Any]) -> SelectionState | None:
    try:
        return require_target(event)
    except ProtocolError:
        return None


class ParticipantClient(LiveSessionClient):
    """Participant view: am I on air, is a countdown running for me, who am I paired with."""

    def __init__(self, url: str, **kwargs: Any) -> None:
        super().__init__(url, **kwargs)
        self.channel_id: str | None = None
        self.selection = SelectionState.none()
        self.countdown_seconds: int | None = None
        self.partner_id: str | None = None
        self.published: list[dict[str, Any]] = []
        self.last_submission: dict[str, Any] | None = None
        self._ingest: MediaIngest | None = None

    @property
    def is_on_air(self) -> bool:
        return self.selection.contains(self.channel_id)

    @property
    def display_feed(self) -> str | None:
        """Feed shown locally: the partner's while paired, otherwise our own camera."""

        return self.partner_id or self.channel_id

    async def go_live(self, ingest: MediaIngest) -> str | None:
        await ingest.start()
        self._ingest = ingest
        self.channel_id = await ingest.resolve_channel_id()
        if self.channel_id is None:
            logger.warning("Ingest started but no channel id could be resolved")
            return None
        await self.send({"type": events.PARTICIPANT_JOIN, "channelId": self.channel_id})
        return self.channel_id

    async def stop_live(self) -> None:
        if self.channel_id is not None:
            await self.send({"type": events.PARTICIPANT_LEAVE, "channelId": self.channel_id})
        ingest, self._ingest = self._ingest, None
        if ingest is not None:
            await ingest.stop()
        self.channel_id = None
        self.countdown_seconds = None
        self.partner_id = None

    async def submit_message(self, name: str, text: str) -> bool:
        return await self.send({"type": events.SUBMIT_MESSAGE, "name": name, "message": text})

    async def on_connected(self) -> None:
        if self.channel_id is not None:
            await self.send({"type": events.PARTICIPANT_JOIN, "channelId": self.channel_id})

    def apply_event(self, event: dict[str, Any]) -> None:
        message_type = event.get("type")
        selection = selection_from_event(event)
        if selection is not None:
            self.selection = selection
            self.countdown_seconds = None
        elif message_type in (events.COUNTDOWN_START, events.COUNTDOWN_UPDATE):
            target = _countdown_target(event)
            seconds = event.get("seconds")
            if target is not None and target.contains(self.channel_id) and isinstance(seconds, int):
                self.countdown_seconds = seconds
            else:
                self.countdown_seconds = None
        elif message_type == events.COUNTDOWN_CANCELLED:
            self.countdown_seconds = None
        elif message_type == events.PARTICIPANT_PAIRED:
            partner = _partner(event, self.channel_id)
            if partner is not None:
                self.partner_id = partner
        elif message_type == events.PARTICIPANT_UNPAIRED:
            if _partner(event, self.channel_id) is not None:
                self.partner_id = None
        elif message_type in (events.MESSAGE_APPROVED, events.EDITOR_MESSAGE_RECEIVED):
            message = event.get("message")
            if isinstance(message, dict):
                self.published.insert(0, message)
        elif message_type == events.MESSAGE_SUBMITTED:
            self.last_submission = event


def _partner(event: dict[str, Any], channel_id: str | None) -> str | None:
    if channel_id is None:
        return None
    a, b = event.get("participantA"), event.get("participantB")
    if channel_id == a:
        return b
    if channel_id == b:
        return a
    return None


class EditorClient(LiveSessionClient):
    """Editor view: take feeds on air, run countdowns and moderate messages."""

    def __init__(self, url: str, *, countdown_seconds: int = 5, **kwargs: Any) -> None:
        super().__init__(url, **kwargs)
        self.countdown_enabled = False
        self.countdown_seconds = countdown_seconds
        self.selection = SelectionState.none()
        self.participants: list[str] = []
        self.pairing: tuple[str, str] | None = None
        self.pending: list[dict[str, Any]] = []
        self.published: list[dict[str, Any]] = []
        self.available_feeds: list[str] = []

    async def on_connected(self) -> None:
        await self.request_messages()

    async def toggle_countdown(self) -> bool:
        self.countdown_enabled = not self.countdown_enabled
        if not self.countdown_enabled:
            await self.send({"type": events.CANCEL_COUNTDOWN})
        logger.info("Countdown mode %s", "enabled" if self.countdown_enabled else "disabled")
        return self.countdown_enabled

    async def take(self, channel_id: str) -> None:
        """Put *channel_id* on air, or take it off air if it already is."""

        if self.selection.channel_id == channel_id:
            self.selection = SelectionState.none()
            await self.send({"type": events.DESELECT_CHANNEL})
            return
        if self.countdown_enabled:
            await self.send(
                {"type": events.START_COUNTDOWN, "channelId": channel_id, "seconds": self.countdown_seconds}
            )
            return
        self.selection = SelectionState.single(channel_id)
        await self.send({"type": events.SELECT_CHANNEL, "channelId": channel_id})

    async def take_multiple(self, channel_ids: list[str]) -> None:
        if self.countdown_enabled:
            await self.send(
                {"type": events.START_COUNTDOWN, "channelIds": list(channel_ids), "seconds": self.countdown_seconds}
            )
            return
        self.selection = SelectionState.multi(channel_ids)
        await self.send({"type": events.SELECT_MULTIPLE_CHANNELS, "channelIds": list(channel_ids)})

    async def approve(self, message_id: int) -> bool:
        return await self.send({"type": events.APPROVE_MESSAGE, "messageId": message_id})

    async def reject(self, message_id: int) -> bool:
        return await self.send({"type": events.REJECT_MESSAGE, "messageId": message_id})

    async def send_editor_message(self, text: str) -> bool:
        return await self.send({"type": events.EDITOR_MESSAGE, "message": text})

    async def request_messages(self) -> bool:
        return await self.send({"type": events.GET_MESSAGES})

    async def pair(self, participant_a: str, participant_b: str) -> bool:
        return await self.send(
            {"type": events.PAIR_PARTICIPANTS, "participantA": participant_a, "participantB": participant_b}
        )

    async def unpair(self) -> bool:
        return await self.send({"type": events.UNPAIR_PARTICIPANTS})

    async def preview(self, channel_id: str, playback: MediaPlayback) -> None:
        await playback.start(channel_id)

    async def refresh_feeds(self, directory: FeedDirectory) -> list[str]:
        """Reload the feeds published to the gateway, live on this session or not."""

        self.available_feeds = await directory.list_feeds()
        logger.info("Gateway lists %d feed(s)", len(self.available_feeds))
        return self.available_feeds

    def apply_event(self, event: dict[str, Any]) -> None:
        message_type = event.get("type")
        selection = selection_from_event(event)
        if selection is not None:
            self.selection = selection
        elif message_type == events.PARTICIPANT_JOINED:
            channel_id = event.get("channelId")
            if isinstance(channel_id, str) and channel_id not in self.participants:
                self.participants.append(channel_id)
        elif message_type == events.PARTICIPANT_LEFT:
            channel_id = event.get("channelId")
            if channel_id in self.participants:
                self.participants.remove(channel_id)
        elif message_type == events.PARTICIPANT_PAIRED:
            self.pairing = (event.get("participantA"), event.get("participantB"))
        elif message_type == events.PARTICIPANT_UNPAIRED:
            self.pairing = None
        elif message_type == events.NEW_MESSAGE_IN_QUEUE:
            message = event.get("message")
            if isinstance(message, dict):
                self.pending.append(message)
        elif message_type == events.MESSAGE_APPROVED:
            message = event.get("message")
            if isinstance(message, dict):
                self._drop_pending(message.get("id"))
                self.published.insert(0, message)
        elif message_type == events.MESSAGE_REJECTED:
            self._drop_pending(event.get("messageId"))
        elif message_type == events.MESSAGES_DATA:
            self.pending = list(event.get("queue") or [])
            self.published = list(event.get("published") or [])

    def _drop_pending(self, message_id: Any) -> None:
        self.pending = [message for message in self.pending if message.get("id") != message_id]
