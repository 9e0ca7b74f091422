"""On-air selection state."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

from . import events


class SelectionMode(str, Enum):
    NONE = "none"
    SINGLE = "single"
    MULTI = "multi"


@dataclass(frozen=True, slots=True)
class SelectionState:
    """Which feed (or feeds) is currently on air.

    Single and multi selection are mutually exclusive: every transition builds a
    fresh state, so switching mode always replaces whatever was selected before.
    """

    mode: SelectionMode = SelectionMode.NONE
    channel_ids: tuple[str, ...] = ()

    @classmethod
    def none(cls) -> "SelectionState":
        return cls()

    @classmethod
    def single(cls, channel_id: str) -> "SelectionState":
        return cls(SelectionMode.SINGLE, (channel_id,))

    @classmethod
    def multi(cls, channel_ids: Iterable[str]) -> "SelectionState":
        unique = tuple(dict.fromkeys(channel_ids))
        if not unique:
            return cls()
        return cls(SelectionMode.MULTI, unique)

    @property
    def is_empty(self) -> bool:
        return self.mode is SelectionMode.NONE

    @property
    def channel_id(self) -> str | None:
        if self.mode is SelectionMode.SINGLE:
            return self.channel_ids[0]
        return None

    def contains(self, channel_id: str | None) -> bool:
        return channel_id is not None and channel_id in self.channel_ids

    def target_fields(self) -> dict[str, Any]:
        """Wire fields naming the selected feed(s)."""

        if self.mode is SelectionMode.MULTI:
            return {"channelIds": list(self.channel_ids)}
        if self.mode is SelectionMode.SINGLE:
            return {"channelId": self.channel_ids[0]}
        return {}

    def to_event(self) -> dict[str, Any]:
        if self.mode is SelectionMode.SINGLE:
            return {"type": events.CHANNEL_SELECTED, **self.target_fields()}
        if self.mode is SelectionMode.MULTI:
            return {"type": events.MULTIPLE_CHANNELS_SELECTED, **self.target_fields()}
        return {"type": events.CHANNEL_DESELECTED}
