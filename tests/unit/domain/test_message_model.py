from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.signboard.domain.models import (
    LIVE_STATUSES,
    MESSAGE_TRANSITIONS,
    DisplayOptions,
    EffectMetadata,
    Message,
    MessageStatus,
    Priority,
    Resolution,
    Schedule,
)
from src.signboard.domain.effects import EntryEffect, ExitEffect

pytestmark = pytest.mark.unit

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def _message(schedule: Schedule | None = None) -> Message:
    return Message(
        id="m-1",
        device_id="dev-1",
        content="Hello",
        status=MessageStatus.ACTIVE,
        priority=Priority.NORMAL,
        urgent=False,
        room_number=6,
        display_options=DisplayOptions(),
        schedule=schedule or Schedule(),
        created_at=NOW,
        updated_at=NOW,
    )


def test_resolution_rejects_non_positive_sizes() -> None:
    with pytest.raises(ValueError):
        Resolution(0, 1080)
    with pytest.raises(ValueError):
        Resolution(1920, -1)


def test_archived_is_terminal_and_reachable_only_from_committed_states() -> None:
    assert MESSAGE_TRANSITIONS[MessageStatus.ARCHIVED] == frozenset()
    sources = {s for s, targets in MESSAGE_TRANSITIONS.items() if MessageStatus.ARCHIVED in targets}
    assert sources == {MessageStatus.SENT, MessageStatus.ACTIVE}
    assert MessageStatus.ARCHIVED not in LIVE_STATUSES


def test_message_without_window_is_always_active() -> None:
    message = _message()

    assert message.is_active_time(NOW)
    assert not message.is_expired(NOW + timedelta(days=365))


def test_message_window_bounds() -> None:
    message = _message(Schedule(start_time=NOW, end_time=NOW + timedelta(hours=1)))

    assert not message.is_active_time(NOW - timedelta(seconds=1))
    assert message.is_active_time(NOW + timedelta(minutes=30))
    assert message.is_expired(NOW + timedelta(hours=2))


def test_naive_clock_is_compared_against_aware_schedule() -> None:
    message = _message(Schedule(end_time=NOW))

    assert message.is_expired(datetime(2025, 1, 1, 13, 0))


def test_effect_metadata_carries_options_and_hold() -> None:
    options = DisplayOptions(
        display_effect=EntryEffect.LASER,
        display_effect_speed=2,
        end_effect=ExitEffect.SCROLL_LEFT,
        end_effect_speed=7,
        blink=True,
        siren_output=True,
    )

    metadata = EffectMetadata.from_options(options, Schedule(duration_seconds=4))

    assert metadata.as_dict() == {
        "entryCode": 0x05,
        "entrySpeed": 2,
        "waitSeconds": 1.0,
        "holdSeconds": 4,
        "exitCode": 0x07,
        "exitSpeed": 7,
        "blink": True,
        "sirenOutput": True,
    }
