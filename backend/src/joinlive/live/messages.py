"""Moderation queue for participant-submitted messages."""

from __future__ import annotations

import itertools
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field


logger = logging.getLogger(__name__)

MODERATOR_NAME = "Moderator"


class MessageStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class MessageValidationError(ValueError):
    """Raised when a submitted name or message text is not acceptable."""


class LiveMessage(BaseModel):
    """A short text message shown to viewers once approved."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int
    name: str
    text: str = Field(alias="message")
    submitted_at: datetime = Field(alias="submittedAt")
    status: MessageStatus = MessageStatus.PENDING
    from_moderator: bool = Field(default=False, alias="fromModerator")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def _clean(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        value = str(value)
    return value.strip()


class MessageQueue:
    """Pending queue (FIFO by submission) and published list (newest approval first).

    Ids come from one counter shared by submissions and moderator messages and
    are never reused. Approving or rejecting an id that is not pending is a
    silent no-op so a moderator UI that double-clicks stays consistent.
    """

    def __init__(
        self,
        *,
        name_max_length: int = 64,
        text_max_length: int = 500,
        published_limit: int = 0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._name_max_length = name_max_length
        self._text_max_length = text_max_length
        self._published_limit = published_limit
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._ids = itertools.count(1)
        self._pending: dict[int, LiveMessage] = {}
        self._published: list[LiveMessage] = []

    @property
    def pending(self) -> list[LiveMessage]:
        return list(self._pending.values())

    @property
    def published(self) -> list[LiveMessage]:
        return list(self._published)

    def _validate_text(self, text: str) -> None:
        if not text:
            raise MessageValidationError("Message is required")
        if len(text) > self._text_max_length:
            raise MessageValidationError(
                f"Message must be at most {self._text_max_length} characters"
            )

    def submit(self, name: Any, text: Any) -> LiveMessage:
        name = _clean(name)
        text = _clean(text)
        if not name:
            raise MessageValidationError("Name is required")
        if len(name) > self._name_max_length:
            raise MessageValidationError(f"Name must be at most {self._name_max_length} characters")
        self._validate_text(text)

        message = LiveMessage(id=next(self._ids), name=name, text=text, submitted_at=self._clock())
        self._pending[message.id] = message
        logger.info("Message %d from %r queued for moderation", message.id, name)
        return message

    def approve(self, message_id: int) -> LiveMessage | None:
        pending = self._pending.pop(message_id, None)
        if pending is None:
            logger.debug("Ignoring approval of unknown message %s", message_id)
            return None
        approved = pending.model_copy(update={"status": MessageStatus.APPROVED})
        self._published.insert(0, approved)
        if self._published_limit and len(self._published) > self._published_limit:
            del self._published[self._published_limit:]
        logger.info("Message %d approved", message_id)
        return approved

    def reject(self, message_id: int) -> LiveMessage | None:
        pending = self._pending.pop(message_id, None)
        if pending is None:
            logger.debug("Ignoring rejection of unknown message %s", message_id)
            return None
        logger.info("Message %d rejected", message_id)
        return pending.model_copy(update={"status": MessageStatus.REJECTED})

    def moderator_message(self, text: Any) -> LiveMessage:
        """Build a message attributed to the moderator; it never enters either list."""

        text = _clean(text)
        self._validate_text(text)
        return LiveMessage(
            id=next(self._ids),
            name=MODERATOR_NAME,
            text=text,
            submitted_at=self._clock(),
            status=MessageStatus.APPROVED,
            from_moderator=True,
        )

    def snapshot(self) -> dict[str, list[dict[str, Any]]]:
        return {
            "queue": [message.to_wire() for message in self._pending.values()],
            "published": [message.to_wire() for message in self._published],
        }
