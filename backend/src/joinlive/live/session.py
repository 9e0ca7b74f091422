"""Server-held live session state and the websocket message handlers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable

from fastapi.websockets import WebSocket

from app.monitoring.metrics import (
    live_countdowns_total,
    live_dropped_messages_total,
    live_events_total,
    live_moderation_total,
)

from . import events, protocol
from .connections import ConnectionRegistry
from .countdown import CountdownCoordinator, CountdownSession
from .messages import LiveMessage, MessageQueue, MessageValidationError
from .participants import Pairing, ParticipantRegistry
from .protocol import ProtocolError
from .selection import SelectionState


logger = logging.getLogger(__name__)

Handler = Callable[[WebSocket, dict[str, Any]], Awaitable[None]]


class LiveSession:
    """Shared state of one live production and the only writer to it.

    Each inbound message and each countdown tick runs to completion under a
    single lock, so the broadcasts caused by one event are never interleaved
    with another event's mutations. Public coroutines take the lock; the
    underscore variants assume it is held.
    """

    def __init__(
        self,
        *,
        countdown_default_seconds: int = 5,
        countdown_max_seconds: int = 60,
        countdown_tick_seconds: float = 1.0,
        message_name_max_length: int = 64,
        message_max_length: int = 500,
        published_history_limit: int = 0,
    ) -> None:
        self._lock = asyncio.Lock()
        self._connections = ConnectionRegistry()
        self._selection = SelectionState.none()
        self._countdown_default = countdown_default_seconds
        self._countdown_max = max(countdown_max_seconds, 1)
        self._countdown = CountdownCoordinator(
            self._lock,
            on_tick=self._broadcast_countdown_tick,
            on_complete=self._complete_countdown,
            tick_seconds=countdown_tick_seconds,
        )
        self._participants = ParticipantRegistry()
        self._messages = MessageQueue(
            name_max_length=message_name_max_length,
            text_max_length=message_max_length,
            published_limit=published_history_limit,
        )
        self._handlers: dict[str, Handler] = {
            events.SELECT_CHANNEL: self._handle_select_channel,
            events.DESELECT_CHANNEL: self._handle_deselect_channel,
            events.SELECT_MULTIPLE_CHANNELS: self._handle_select_multiple,
            events.PARTICIPANT_JOIN: self._handle_participant_join,
            events.PARTICIPANT_LEAVE: self._handle_participant_leave,
            events.START_COUNTDOWN: self._handle_start_countdown,
            events.COUNTDOWN_UPDATE: self._handle_countdown_update,
            events.CANCEL_COUNTDOWN: self._handle_cancel_countdown,
            events.SUBMIT_MESSAGE: self._handle_submit_message,
            events.APPROVE_MESSAGE: self._handle_approve_message,
            events.REJECT_MESSAGE: self._handle_reject_message,
            events.GET_MESSAGES: self._handle_get_messages,
            events.EDITOR_MESSAGE: self._handle_editor_message,
            events.PAIR_PARTICIPANTS: self._handle_pair,
            events.UNPAIR_PARTICIPANTS: self._handle_unpair,
            events.PING: self._handle_ping,
            events.PONG: self._handle_pong,
        }

    @classmethod
    def from_settings(cls, settings) -> "LiveSession":
        return cls(
            countdown_default_seconds=settings.countdown_default_seconds,
            countdown_max_seconds=settings.countdown_max_seconds,
            countdown_tick_seconds=settings.countdown_tick_seconds,
            message_name_max_length=settings.message_name_max_length,
            message_max_length=settings.message_max_length,
            published_history_limit=settings.published_history_limit,
        )

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------
    @property
    def selection(self) -> SelectionState:
        return self._selection

    @property
    def countdown(self) -> CountdownSession | None:
        return self._countdown.session

    @property
    def participants(self) -> list[str]:
        return self._participants.channels

    @property
    def pairing(self) -> Pairing | None:
        return self._participants.pairing

    @property
    def messages(self) -> MessageQueue:
        return self._messages

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------
    async def connect(self, websocket: WebSocket) -> None:
        """Register a client and replay the steady state to it.

        An in-flight countdown and the message history are not replayed; the
        client asks for messages with ``getMessages``.
        """

        async with self._lock:
            self._connections.register(websocket)
            if not self._selection.is_empty:
                await self._connections.send(websocket, self._selection.to_event())
            pairing = self._participants.pairing
            if pairing is not None:
                await self._connections.send(websocket, pairing.to_event(events.PARTICIPANT_PAIRED))

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._connections.unregister(websocket)

    async def aclose(self) -> None:
        await self._countdown.aclose()

    # ------------------------------------------------------------------
    # Inbound dispatch
    # ------------------------------------------------------------------
    async def handle_raw(self, websocket: WebSocket, raw: str | bytes) -> None:
        try:
            payload = protocol.parse_envelope(raw)
        except ProtocolError as exc:
            live_dropped_messages_total.labels("malformed").inc()
            logger.warning("Dropped malformed live message: %s", exc)
            return
        await self.handle_message(websocket, payload)

    async def handle_message(self, websocket: WebSocket, payload: dict[str, Any]) -> None:
        message_type = payload.get("type")
        handler = self._handlers.get(message_type) if isinstance(message_type, str) else None
        if handler is None:
            live_dropped_messages_total.labels("unknown_type").inc()
            logger.debug("Ignoring live message with unknown type %r", message_type)
            return
        async with self._lock:
            try:
                await handler(websocket, payload)
            except ProtocolError as exc:
                live_dropped_messages_total.labels("malformed").inc()
                logger.warning("Dropped malformed %s message: %s", message_type, exc)
                return
        live_events_total.labels("in", message_type).inc()

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------
    async def select_channel(self, channel_id: str) -> None:
        async with self._lock:
            await self._select_channel(channel_id)

    async def deselect_channel(self) -> None:
        async with self._lock:
            await self._deselect_channel()

    async def select_multiple_channels(self, channel_ids: Iterable[str]) -> None:
        async with self._lock:
            await self._select_multiple_channels(channel_ids)

    async def start_countdown(self, target: SelectionState, seconds: int | None = None) -> None:
        async with self._lock:
            await self._start_countdown(target, seconds)

    async def relay_countdown_update(self, target: SelectionState, seconds: int) -> None:
        async with self._lock:
            await self._relay_countdown_update(target, seconds)

    async def cancel_countdown(self) -> bool:
        async with self._lock:
            return await self._cancel_countdown()

    async def participant_join(self, channel_id: str) -> None:
        async with self._lock:
            await self._participant_join(channel_id)

    async def participant_leave(self, channel_id: str) -> None:
        async with self._lock:
            await self._participant_leave(channel_id)

    async def pair(self, participant_a: str, participant_b: str) -> Pairing | None:
        async with self._lock:
            return await self._pair(participant_a, participant_b)

    async def unpair(self) -> Pairing | None:
        async with self._lock:
            return await self._unpair()

    async def submit_message(self, websocket: WebSocket, name: Any, text: Any) -> LiveMessage | None:
        async with self._lock:
            return await self._submit_message(websocket, name, text)

    async def approve_message(self, message_id: int) -> LiveMessage | None:
        async with self._lock:
            return await self._approve_message(message_id)

    async def reject_message(self, message_id: int) -> LiveMessage | None:
        async with self._lock:
            return await self._reject_message(message_id)

    async def inject_editor_message(self, text: Any) -> LiveMessage | None:
        async with self._lock:
            return await self._inject_editor_message(text)

    async def send_messages_snapshot(self, websocket: WebSocket) -> None:
        async with self._lock:
            await self._send_messages_snapshot(websocket)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    async def _apply_selection(self, state: SelectionState) -> None:
        self._selection = state
        if state.is_empty:
            logger.info("On-air selection cleared")
        else:
            logger.info("On-air selection: %s %s", state.mode.value, list(state.channel_ids))
        await self._connections.broadcast(state.to_event())

    async def _select_channel(self, channel_id: str) -> None:
        await self._cancel_countdown()
        await self._apply_selection(SelectionState.single(channel_id))

    async def _deselect_channel(self) -> None:
        await self._cancel_countdown()
        await self._apply_selection(SelectionState.none())

    async def _select_multiple_channels(self, channel_ids: Iterable[str]) -> None:
        await self._cancel_countdown()
        await self._apply_selection(SelectionState.multi(channel_ids))

    # ------------------------------------------------------------------
    # Countdown
    # ------------------------------------------------------------------
    def _clamp_seconds(self, seconds: int | None) -> int:
        if seconds is None:
            seconds = self._countdown_default
        return min(max(seconds, 1), self._countdown_max)

    async def _start_countdown(self, target: SelectionState, seconds: int | None) -> None:
        if target.is_empty:
            return
        await self._cancel_countdown()
        session, _ = self._countdown.start(target, self._clamp_seconds(seconds))
        live_countdowns_total.labels("started").inc()
        await self._connections.broadcast(session.to_event(events.COUNTDOWN_START))

    async def _relay_countdown_update(self, target: SelectionState, seconds: int) -> None:
        await self._connections.broadcast(
            {"type": events.COUNTDOWN_UPDATE, **target.target_fields(), "seconds": max(seconds, 0)}
        )

    async def _cancel_countdown(self) -> bool:
        cancelled = self._countdown.cancel()
        if cancelled is None:
            return False
        live_countdowns_total.labels("cancelled").inc()
        await self._connections.broadcast(
            {"type": events.COUNTDOWN_CANCELLED, **cancelled.target.target_fields()}
        )
        return True

    async def _broadcast_countdown_tick(self, session: CountdownSession) -> None:
        await self._connections.broadcast(session.to_event(events.COUNTDOWN_UPDATE))

    async def _complete_countdown(self, session: CountdownSession) -> None:
        live_countdowns_total.labels("completed").inc()
        await self._apply_selection(session.target)

    # ------------------------------------------------------------------
    # Participants and pairing
    # ------------------------------------------------------------------
    async def _participant_join(self, channel_id: str) -> None:
        self._participants.join(channel_id)
        await self._connections.broadcast({"type": events.PARTICIPANT_JOINED, "channelId": channel_id})

    async def _participant_leave(self, channel_id: str) -> None:
        self._participants.leave(channel_id)
        await self._connections.broadcast({"type": events.PARTICIPANT_LEFT, "channelId": channel_id})
        if self._selection.channel_id == channel_id:
            await self._deselect_channel()
        pairing = self._participants.pairing
        if pairing is not None and pairing.includes(channel_id):
            await self._unpair()

    async def _pair(self, participant_a: str, participant_b: str) -> Pairing | None:
        previous = self._participants.pairing
        pairing = self._participants.pair(participant_a, participant_b)
        if pairing is None:
            return None
        if previous is not None and not pairing.same_members(previous):
            await self._connections.broadcast(previous.to_event(events.PARTICIPANT_UNPAIRED))
        await self._connections.broadcast(pairing.to_event(events.PARTICIPANT_PAIRED))
        return pairing

    async def _unpair(self) -> Pairing | None:
        pairing = self._participants.unpair()
        if pairing is not None:
            await self._connections.broadcast(pairing.to_event(events.PARTICIPANT_UNPAIRED))
        return pairing

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------
    async def _submit_message(self, websocket: WebSocket, name: Any, text: Any) -> LiveMessage | None:
        try:
            message = self._messages.submit(name, text)
        except MessageValidationError as exc:
            live_moderation_total.labels("rejected_input").inc()
            await self._connections.send(
                websocket,
                {"type": events.MESSAGE_SUBMITTED, "success": False, "error": str(exc)},
            )
            return None
        live_moderation_total.labels("submitted").inc()
        await self._connections.broadcast(
            {"type": events.NEW_MESSAGE_IN_QUEUE, "message": message.to_wire()}
        )
        await self._connections.send(websocket, {"type": events.MESSAGE_SUBMITTED, "success": True})
        return message

    async def _approve_message(self, message_id: int) -> LiveMessage | None:
        message = self._messages.approve(message_id)
        if message is None:
            return None
        live_moderation_total.labels("approved").inc()
        await self._connections.broadcast({"type": events.MESSAGE_APPROVED, "message": message.to_wire()})
        return message

    async def _reject_message(self, message_id: int) -> LiveMessage | None:
        message = self._messages.reject(message_id)
        if message is None:
            return None
        live_moderation_total.labels("rejected").inc()
        await self._connections.broadcast({"type": events.MESSAGE_REJECTED, "messageId": message_id})
        return message

    async def _inject_editor_message(self, text: Any) -> LiveMessage | None:
        try:
            message = self._messages.moderator_message(text)
        except MessageValidationError as exc:
            logger.info("Ignoring editor message: %s", exc)
            return None
        live_moderation_total.labels("editor").inc()
        await self._connections.broadcast(
            {"type": events.EDITOR_MESSAGE_RECEIVED, "message": message.to_wire()}
        )
        return message

    async def _send_messages_snapshot(self, websocket: WebSocket) -> None:
        await self._connections.send(websocket, {"type": events.MESSAGES_DATA, **self._messages.snapshot()})

    # ------------------------------------------------------------------
    # Message handlers (lock held)
    # ------------------------------------------------------------------
    async def _handle_select_channel(self, websocket: WebSocket, payload: dict[str, Any]) -> None:
        await self._select_channel(protocol.require_channel_id(payload))

    async def _handle_deselect_channel(self, websocket: WebSocket, payload: dict[str, Any]) -> None:
        await self._deselect_channel()

    async def _handle_select_multiple(self, websocket: WebSocket, payload: dict[str, Any]) -> None:
        await self._select_multiple_channels(protocol.require_channel_ids(payload))

    async def _handle_participant_join(self, websocket: WebSocket, payload: dict[str, Any]) -> None:
        await self._participant_join(protocol.require_channel_id(payload))

    async def _handle_participant_leave(self, websocket: WebSocket, payload: dict[str, Any]) -> None:
        await self._participant_leave(protocol.require_channel_id(payload))

    async def _handle_start_countdown(self, websocket: WebSocket, payload: dict[str, Any]) -> None:
        await self._start_countdown(protocol.require_target(payload), protocol.optional_seconds(payload))

    async def _handle_countdown_update(self, websocket: WebSocket, payload: dict[str, Any]) -> None:
        await self._relay_countdown_update(protocol.require_target(payload), protocol.require_seconds(payload))

    async def _handle_cancel_countdown(self, websocket: WebSocket, payload: dict[str, Any]) -> None:
        await self._cancel_countdown()

    async def _handle_submit_message(self, websocket: WebSocket, payload: dict[str, Any]) -> None:
        await self._submit_message(websocket, payload.get("name"), payload.get("message"))

    async def _handle_approve_message(self, websocket: WebSocket, payload: dict[str, Any]) -> None:
        await self._approve_message(protocol.require_message_id(payload))

    async def _handle_reject_message(self, websocket: WebSocket, payload: dict[str, Any]) -> None:
        await self._reject_message(protocol.require_message_id(payload))

    async def _handle_get_messages(self, websocket: WebSocket, payload: dict[str, Any]) -> None:
        await self._send_messages_snapshot(websocket)

    async def _handle_editor_message(self, websocket: WebSocket, payload: dict[str, Any]) -> None:
        await self._inject_editor_message(payload.get("message"))

    async def _handle_pair(self, websocket: WebSocket, payload: dict[str, Any]) -> None:
        await self._pair(
            protocol.require_channel_id(payload, "participantA"),
            protocol.require_channel_id(payload, "participantB"),
        )

    async def _handle_unpair(self, websocket: WebSocket, payload: dict[str, Any]) -> None:
        await self._unpair()

    async def _handle_ping(self, websocket: WebSocket, payload: dict[str, Any]) -> None:
        await self._connections.send(websocket, {"type": events.PONG})

    async def _handle_pong(self, websocket: WebSocket, payload: dict[str, Any]) -> None:
        return None
