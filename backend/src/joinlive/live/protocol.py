"""Parsing helpers for inbound live session envelopes.

Every frame on the live websocket is a UTF-8 JSON object with a ``type`` key.
The helpers here turn raw frames and individual fields into typed values and
raise :class:`ProtocolError` for anything they cannot interpret; callers drop
such frames after logging them.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from . import events
from .selection import SelectionState


class ProtocolError(ValueError):
    """Raised when an inbound frame or field cannot be interpreted."""


def _reject_constant(name: str) -> Any:
    raise ProtocolError(f"Invalid JSON constant {name}")


def parse_envelope(raw: str | bytes) -> dict[str, Any]:
    try:
        payload = json.loads(raw, parse_constant=_reject_constant)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ProtocolError("Invalid JSON payload") from exc
    if not isinstance(payload, dict):
        raise ProtocolError("Payload must be a JSON object")
    message_type = payload.get("type")
    if not isinstance(message_type, str) or not message_type:
        raise ProtocolError("Payload is missing a message type")
    return payload


def _coerce_channel_id(value: Any, key: str) -> str:
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str) or not value.strip():
        raise ProtocolError(f"'{key}' must be a non-empty string")
    return value.strip()


def require_channel_id(payload: Mapping[str, Any], key: str = "channelId") -> str:
    return _coerce_channel_id(payload.get(key), key)


def require_channel_ids(payload: Mapping[str, Any], key: str = "channelIds") -> list[str]:
    value = payload.get(key)
    if not isinstance(value, (list, tuple)):
        raise ProtocolError(f"'{key}' must be a list of channel ids")
    return [_coerce_channel_id(item, key) for item in value]


def require_target(payload: Mapping[str, Any]) -> SelectionState:
    """Read a ``channelIds`` list or a single ``channelId`` as a selection."""

    if "channelIds" in payload:
        target = SelectionState.multi(require_channel_ids(payload))
        if target.is_empty:
            raise ProtocolError("'channelIds' must name at least one channel")
        return target
    return SelectionState.single(require_channel_id(payload))


def optional_seconds(payload: Mapping[str, Any], key: str = "seconds") -> int | None:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ProtocolError(f"'{key}' must be a number")
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ProtocolError(f"'{key}' must be a number") from exc


def require_seconds(payload: Mapping[str, Any], key: str = "seconds") -> int:
    seconds = optional_seconds(payload, key)
    if seconds is None:
        raise ProtocolError(f"'{key}' is required")
    return seconds


def require_message_id(payload: Mapping[str, Any], key: str = "messageId") -> int:
    value = payload.get(key)
    if isinstance(value, bool):
        raise ProtocolError(f"'{key}' must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ProtocolError(f"'{key}' must be an integer") from exc


def selection_from_event(event: Mapping[str, Any]) -> SelectionState | None:
    """Rebuild the selection carried by a server selection event, if any."""

    message_type = event.get("type")
    try:
        if message_type == events.CHANNEL_SELECTED:
            return SelectionState.single(require_channel_id(event))
        if message_type == events.MULTIPLE_CHANNELS_SELECTED:
            return SelectionState.multi(require_channel_ids(event))
    except ProtocolError:
        return None
    if message_type == events.CHANNEL_DESELECTED:
        return SelectionState.none()
    return None
