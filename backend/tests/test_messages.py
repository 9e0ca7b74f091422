from __future__ import annotations

from datetime import datetime, timezone

import pytest

from joinlive.live import MessageQueue, MessageStatus, MessageValidationError


FIXED_NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _queue(**kwargs) -> MessageQueue:
    return MessageQueue(clock=lambda: FIXED_NOW, **kwargs)


def test_submit_trims_and_queues_in_order() -> None:
    queue = _queue()
    first = queue.submit("  Ann ", "  hello  ")
    second = queue.submit("Bob", "hi")

    assert (first.id, first.name, first.text) == (1, "Ann", "hello")
    assert first.status is MessageStatus.PENDING
    assert [message.id for message in queue.pending] == [1, 2]
    assert second.id == 2


@pytest.mark.parametrize(
    ("name", "text", "error"),
    [
        ("", "hello", "Name is required"),
        ("   ", "hello", "Name is required"),
        (None, "hello", "Name is required"),
        ("Ann", "", "Message is required"),
        ("Ann", "   ", "Message is required"),
    ],
)
def test_submit_rejects_blank_fields(name, text, error) -> None:
    queue = _queue()
    with pytest.raises(MessageValidationError, match=error):
        queue.submit(name, text)
    assert queue.pending == []


def test_submit_enforces_length_limits() -> None:
    queue = _queue(name_max_length=3, text_max_length=5)
    with pytest.raises(MessageValidationError):
        queue.submit("Anna", "hi")
    with pytest.raises(MessageValidationError):
        queue.submit("Ann", "toolong")
    assert queue.submit("Ann", "fine!").text == "fine!"


def test_approve_moves_message_to_front_of_published() -> None:
    queue = _queue()
    queue.submit("Ann", "one")
    queue.submit("Bob", "two")

    queue.approve(1)
    approved = queue.approve(2)

    assert approved is not None and approved.status is MessageStatus.APPROVED
    assert [message.id for message in queue.published] == [2, 1]
    assert queue.pending == []


def test_approve_and_reject_unknown_ids_are_noops() -> None:
    queue = _queue()
    queue.submit("Ann", "one")
    assert queue.reject(1) is not None
    assert queue.approve(1) is None
    assert queue.reject(1) is None
    assert queue.approve(99) is None
    assert queue.published == []


def test_published_limit_drops_oldest() -> None:
    queue = _queue(published_limit=2)
    for index in range(3):
        queue.submit("Ann", f"m{index}")
        queue.approve(index + 1)
    assert [message.text for message in queue.published] == ["m2", "m1"]


def test_moderator_message_shares_id_counter_and_skips_lists() -> None:
    queue = _queue()
    queue.submit("Ann", "one")
    moderator = queue.moderator_message(" Welcome ")
    following = queue.submit("Bob", "two")

    assert moderator.id == 2
    assert moderator.name == "Moderator"
    assert moderator.from_moderator
    assert moderator.status is MessageStatus.APPROVED
    assert following.id == 3
    assert queue.published == []
    with pytest.raises(MessageValidationError):
        queue.moderator_message("  ")


def test_wire_shape_uses_camel_case_keys() -> None:
    queue = _queue()
    message = queue.submit("Ann", "hello")

    assert message.to_wire() == {
        "id": 1,
        "name": "Ann",
        "message": "hello",
        "submittedAt": "2025-03-01T12:00:00Z",
        "status": "pending",
        "fromModerator": False,
    }
    assert queue.snapshot() == {"queue": [message.to_wire()], "published": []}
