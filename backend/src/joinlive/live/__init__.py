"""Live session coordination: on-air selection, countdowns, moderation and pairing."""

from .connections import ConnectionRegistry, safe_send_text  # noqa: F401
from .countdown import CountdownCoordinator, CountdownSession  # noqa: F401
from .messages import (  # noqa: F401
    LiveMessage,
    MessageQueue,
    MessageStatus,
    MessageValidationError,
)
from .participants import Pairing, ParticipantRegistry  # noqa: F401
from .protocol import ProtocolError  # noqa: F401
from .selection import SelectionMode, SelectionState  # noqa: F401
from .session import LiveSession  # noqa: F401

__all__ = [
    "ConnectionRegistry",
    "CountdownCoordinator",
    "CountdownSession",
    "LiveMessage",
    "LiveSession",
    "MessageQueue",
    "MessageStatus",
    "MessageValidationError",
    "Pairing",
    "ParticipantRegistry",
    "ProtocolError",
    "SelectionMode",
    "SelectionState",
    "safe_send_text",
]
