from __future__ import annotations

import pytest

from joinlive.live import ProtocolError, SelectionState
from joinlive.live import protocol


@pytest.mark.parametrize(
    "raw",
    ["not json", "[1, 2]", '"selectChannel"', "{}", '{"type": ""}', '{"type": 5}', b"\xff\xfe"],
)
def test_parse_envelope_rejects_malformed_frames(raw) -> None:
    with pytest.raises(ProtocolError):
        protocol.parse_envelope(raw)


def test_parse_envelope_keeps_extra_fields() -> None:
    payload = protocol.parse_envelope('{"type": "selectChannel", "channelId": "a", "extra": 1}')
    assert payload == {"type": "selectChannel", "channelId": "a", "extra": 1}


def test_channel_ids_are_coerced_to_stripped_strings() -> None:
    assert protocol.require_channel_id({"channelId": "  cam  "}) == "cam"
    assert protocol.require_channel_id({"channelId": 7}) == "7"
    with pytest.raises(ProtocolError):
        protocol.require_channel_id({"channelId": "   "})
    with pytest.raises(ProtocolError):
        protocol.require_channel_id({"channelId": True})
    with pytest.raises(ProtocolError):
        protocol.require_channel_ids({"channelIds": "cam"})


def test_require_target_prefers_channel_ids() -> None:
    assert protocol.require_target({"channelId": "a"}) == SelectionState.single("a")
    assert protocol.require_target({"channelIds": ["a", "b"], "channelId": "c"}) == SelectionState.multi(
        ["a", "b"]
    )
    with pytest.raises(ProtocolError):
        protocol.require_target({"channelIds": []})
    with pytest.raises(ProtocolError):
        protocol.require_target({})


def test_seconds_and_message_id() -> None:
    assert protocol.optional_seconds({}) is None
    assert protocol.optional_seconds({"seconds": "3"}) == 3
    with pytest.raises(ProtocolError):
        protocol.optional_seconds({"seconds": "soon"})
    with pytest.raises(ProtocolError):
        protocol.require_seconds({})
    assert protocol.require_message_id({"messageId": 4}) == 4
    with pytest.raises(ProtocolError):
        protocol.require_message_id({"messageId": None})


def test_selection_from_event() -> None:
    assert protocol.selection_from_event({"type": "channelSelected", "channelId": "a"}) == SelectionState.single(
        "a"
    )
    assert protocol.selection_from_event({"type": "channelDeselected"}) == SelectionState.none()
    assert protocol.selection_from_event({"type": "multipleChannelsSelected", "channelIds": ["a"]}) == (
        SelectionState.multi(["a"])
    )
    assert protocol.selection_from_event({"type": "countdownStart", "channelId": "a"}) is None
    assert protocol.selection_from_event({"type": "channelSelected"}) is None


@pytest.mark.parametrize(
    "raw",
    [
        '{"type": "startCountdown", "channelId": "a", "seconds": Infinity}',
        '{"type": "approveMessage", "messageId": -Infinity}',
        '{"type": "startCountdown", "channelId": "a", "seconds": NaN}',
    ],
)
def test_parse_envelope_rejects_non_standard_constants(raw) -> None:
    with pytest.raises(ProtocolError):
        protocol.parse_envelope(raw)


def test_overflowing_numbers_are_protocol_errors() -> None:
    with pytest.raises(ProtocolError):
        protocol.optional_seconds({"seconds": float("inf")})
    with pytest.raises(ProtocolError):
        protocol.require_message_id({"messageId": float("-inf")})
    with pytest.raises(ProtocolError):
        protocol.require_message_id({"messageId": float("nan")})
