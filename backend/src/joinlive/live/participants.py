"""Live participant feeds and the optional two-participant pairing."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Pairing:
    participant_a: str
    participant_b: str

    def includes(self, channel_id: str) -> bool:
        return channel_id in (self.participant_a, self.participant_b)

    def partner_of(self, channel_id: str) -> str | None:
        if channel_id == self.participant_a:
            return self.participant_b
        if channel_id == self.participant_b:
            return self.participant_a
        return None

    def same_members(self, other: "Pairing | None") -> bool:
        if other is None:
            return False
        return {self.participant_a, self.participant_b} == {other.participant_a, other.participant_b}

    def to_event(self, event_type: str) -> dict[str, Any]:
        return {
            "type": event_type,
            "participantA": self.participant_a,
            "participantB": self.participant_b,
        }


class ParticipantRegistry:
    """Feeds currently producing, independent of what is on air.

    There is no heartbeat: a feed stays registered until an explicit leave.
    """

    def __init__(self) -> None:
        self._live: dict[str, datetime] = {}
        self._pairing: Pairing | None = None

    @property
    def channels(self) -> list[str]:
        return list(self._live)

    @property
    def pairing(self) -> Pairing | None:
        return self._pairing

    def is_live(self, channel_id: str) -> bool:
        return channel_id in self._live

    def join(self, channel_id: str) -> bool:
        """Mark *channel_id* live; returns False if it already was."""

        if channel_id in self._live:
            return False
        self._live[channel_id] = datetime.now(timezone.utc)
        logger.info("Participant %s joined (live: %d)", channel_id, len(self._live))
        return True

    def leave(self, channel_id: str) -> bool:
        if self._live.pop(channel_id, None) is None:
            return False
        logger.info("Participant %s left (live: %d)", channel_id, len(self._live))
        return True

    def pair(self, participant_a: str, participant_b: str) -> Pairing | None:
        """Pair two live feeds, replacing any existing pair.

        Returns None (and changes nothing) when the two ids are equal or either
        feed is not live.
        """

        if participant_a == participant_b:
            logger.debug("Ignoring pairing of %s with itself", participant_a)
            return None
        missing = [channel for channel in (participant_a, participant_b) if channel not in self._live]
        if missing:
            logger.debug("Ignoring pairing with feeds that are not live: %s", missing)
            return None
        self._pairing = Pairing(participant_a, participant_b)
        logger.info("Participants %s and %s paired", participant_a, participant_b)
        return self._pairing

    def unpair(self) -> Pairing | None:
        pairing, self._pairing = self._pairing, None
        if pairing is not None:
            logger.info(
                "Participants %s and %s unpaired", pairing.participant_a, pairing.participant_b
            )
        return pairing
