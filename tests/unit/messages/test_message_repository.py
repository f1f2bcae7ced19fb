from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.signboard.domain.models import (
    DisplayOptions,
    EventType,
    Message,
    MessageStatus,
    Priority,
    Schedule,
)
from src.signboard.exceptions import InvalidMessageState, MessageNotFound
from src.signboard.history import InMemoryHistoryRecorder
from src.signboard.messages import MessageRepository

pytestmark = pytest.mark.unit

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def _message(
    message_id: str,
    *,
    device_id: str = "dev-1",
    room: int = 6,
    priority: Priority = Priority.NORMAL,
    schedule: Schedule | None = None,
) -> Message:
    return Message(
        id=message_id,
        device_id=device_id,
        content=f"content {message_id}",
        status=MessageStatus.PENDING,
        priority=priority,
        urgent=priority is Priority.URGENT,
        room_number=room,
        display_options=DisplayOptions(),
        schedule=schedule or Schedule(),
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.fixture
def recorder() -> InMemoryHistoryRecorder:
    return InMemoryHistoryRecorder()


@pytest.fixture
def repository(recorder: InMemoryHistoryRecorder) -> MessageRepository:
    return MessageRepository(recorder, clock=lambda: NOW)


def test_add_emits_created_event(repository: MessageRepository, recorder: InMemoryHistoryRecorder) -> None:
    repository.add(_message("m-1"))

    assert [e.event for e in recorder.events] == [EventType.CREATED]
    assert recorder.events[0].room_number == 6


def test_add_rejects_duplicate_ids(repository: MessageRepository) -> None:
    repository.add(_message("m-1"))

    with pytest.raises(InvalidMessageState):
        repository.add(_message("m-1"))


def test_get_unknown_message_raises(repository: MessageRepository) -> None:
    with pytest.raises(MessageNotFound, match="message 'missing' not found"):
        repository.get("missing")


def test_lifecycle_transitions_and_events(
    repository: MessageRepository, recorder: InMemoryHistoryRecorder
) -> None:
    repository.add(_message("m-1"))

    repository.transition("m-1", MessageStatus.SENDING)
    repository.transition("m-1", MessageStatus.SENT)
    message = repository.transition("m-1", MessageStatus.ACTIVE)

    assert message.status is MessageStatus.ACTIVE
    assert message.sent_at == NOW
    assert [e.event for e in recorder.for_message("m-1")] == [EventType.CREATED, EventType.SENT]


def test_forbidden_transition_raises(repository: MessageRepository) -> None:
    repository.add(_message("m-1"))

    with pytest.raises(InvalidMessageState, match="cannot move from pending to archived"):
        repository.transition("m-1", MessageStatus.ARCHIVED)


def test_devices_keep_separate_tables(repository: MessageRepository) -> None:
    repository.add(_message("a-1", device_id="dev-a"))
    repository.add(_message("b-1", device_id="dev-b"))
    repository.add(_message("b-2", device_id="dev-b", room=7))

    assert [m.id for m in repository.list_for_device("dev-a")] == ["a-1"]
    assert [m.id for m in repository.list_for_slot("dev-b", 7)] == ["b-2"]
    assert repository.list_for_device("dev-c") == []


def test_send_attempts_fail_after_max(repository: MessageRepository, recorder: InMemoryHistoryRecorder) -> None:
    repository.add(_message("m-1"))

    for _ in range(2):
        repository.transition("m-1", MessageStatus.SENDING)
        message = repository.record_send_attempt(
            "m-1", success=False, error="timeout", max_attempts=3
        )
        assert message.status is MessageStatus.PENDING

    repository.transition("m-1", MessageStatus.SENDING)
    message = repository.record_send_attempt("m-1", success=False, error="timeout", max_attempts=3)

    assert message.status is MessageStatus.FAILED
    assert message.send_attempts == 3
    assert message.last_error == "timeout"
    failed = recorder.of_type(EventType.FAILED)
    assert len(failed) == 1 and failed[0].details == {"attempts": 3}


def test_delete_requires_non_live_status(
    repository: MessageRepository, recorder: InMemoryHistoryRecorder
) -> None:
    repository.add(_message("m-1"))

    with pytest.raises(InvalidMessageState):
        repository.delete("m-1")

    repository.transition("m-1", MessageStatus.CANCELLED)
    repository.delete("m-1")

    assert repository.find("m-1") is None
    assert recorder.events[-1].event is EventType.DELETED


def test_archive_slot_keeps_named_message_and_skips_pending(repository: MessageRepository) -> None:
    for message_id in ("old", "new", "queued"):
        repository.add(_message(message_id))
    for message_id in ("old", "new"):
        repository.transition(message_id, MessageStatus.SENDING)
        repository.transition(message_id, MessageStatus.SENT)

    snapshots = repository.archive_slot("dev-1", 6, keep="new")

    assert [s.message_id for s in snapshots] == ["old"]
    assert repository.get("old").status is MessageStatus.ARCHIVED
    assert repository.get("new").status is MessageStatus.SENT
    assert repository.get("queued").status is MessageStatus.PENDING


def test_stats_counts_by_status_priority_and_room(repository: MessageRepository) -> None:
    repository.add(_message("u-1", room=1, priority=Priority.URGENT))
    repository.add(_message("n-1", room=6))
    repository.add(
        _message("n-2", room=7, schedule=Schedule(end_time=NOW - timedelta(minutes=1)))
    )
    repository.add(_message("other", device_id="dev-2"))
    for message_id in ("u-1", "n-2"):
        repository.transition(message_id, MessageStatus.SENDING)
        repository.transition(message_id, MessageStatus.SENT)

    stats = repository.stats("dev-1")

    assert stats.total == 3
    assert stats.by_status == {"sent": 2, "pending": 1}
    assert stats.by_priority == {"URGENT": 1, "NORMAL": 2}
    assert stats.by_room == {1: 1, 6: 1, 7: 1}
    assert stats.active == 1
    assert repository.stats().total == 4
