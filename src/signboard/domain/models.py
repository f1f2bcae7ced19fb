"""Domain models for the signboard engine.

The module exposes lightweight dataclasses and enums for devices, slots,
messages and their lifecycle. Status progressions are reflected via explicit
enums and a transition table so that repositories and services stay
deterministic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Mapping

from .effects import EntryEffect, ExitEffect

SLOT_COUNT = 100
URGENT_RANGE = range(1, 6)
NORMAL_RANGE = range(6, SLOT_COUNT + 1)


@dataclass(frozen=True, slots=True)
class Resolution:
    """Physical pixel size of a panel."""

    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"resolution must be positive, got {self.width}x{self.height}")

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


DEFAULT_RESOLUTION = Resolution(1920, 1080)


@dataclass(frozen=True, slots=True)
class DeviceDescriptor:
    device_id: str
    resolution: Resolution = DEFAULT_RESOLUTION


class MessageStatus(StrEnum):
    """Lifecycle states of a message record.

    ``pending``, ``sending``, ``sent`` and ``active`` are live states and keep a
    slot occupied. ``archived`` is reached when the slot is released or
    overwritten; it is a history state, not a deletion.
    """

    PENDING = "pending"
    SENDING = "sending"
    SENT = "sent"
    ACTIVE = "active"
    EXPIRED = "expired"
    FAILED = "failed"
    CANCELLED = "cancelled"
    ARCHIVED = "archived"


LIVE_STATUSES = frozenset(
    {MessageStatus.PENDING, MessageStatus.SENDING, MessageStatus.SENT, MessageStatus.ACTIVE}
)

MESSAGE_TRANSITIONS: Mapping[MessageStatus, frozenset[MessageStatus]] = {
    MessageStatus.PENDING: frozenset(
        {MessageStatus.SENDING, MessageStatus.CANCELLED, MessageStatus.FAILED}
    ),
    MessageStatus.SENDING: frozenset(
        {
            MessageStatus.SENT,
            MessageStatus.PENDING,
            MessageStatus.FAILED,
            MessageStatus.CANCELLED,
        }
    ),
    MessageStatus.SENT: frozenset(
        {MessageStatus.ACTIVE, MessageStatus.ARCHIVED, MessageStatus.EXPIRED}
    ),
    MessageStatus.ACTIVE: frozenset({MessageStatus.ARCHIVED, MessageStatus.EXPIRED}),
    MessageStatus.EXPIRED: frozenset(),
    MessageStatus.FAILED: frozenset(),
    MessageStatus.CANCELLED: frozenset(),
    MessageStatus.ARCHIVED: frozenset(),
}


class Priority(StrEnum):
    URGENT = "URGENT"
    HIGH = "HIGH"
    NORMAL = "NORMAL"
    LOW = "LOW"


class Position(StrEnum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


@dataclass(frozen=True, slots=True)
class DisplayOptions:
    """Validated styling and effect settings of a message."""

    font_size: int = 16
    color: str = "#FFFFFF"
    background_color: str = "#000000"
    position: Position = Position.CENTER
    display_effect: EntryEffect = EntryEffect.DIRECT
    display_effect_speed: int = 4
    display_wait_time_seconds: float = 1.0
    end_effect: ExitEffect = ExitEffect.DIRECT_DISAPPEAR
    end_effect_speed: int = 4
    blink: bool = False
    siren_output: bool = False


@dataclass(frozen=True, slots=True)
class Schedule:
    start_time: datetime | None = None
    end_time: datetime | None = None
    duration_seconds: float = 10.0
    repeat_count: int = 1
    repeat_interval_seconds: float = 0.0


@dataclass(frozen=True, slots=True)
class EffectMetadata:
    """Playback parameters handed to the transport alongside the bitmap."""

    entry_code: EntryEffect
    entry_speed: int
    wait_seconds: float
    hold_seconds: float
    exit_code: ExitEffect
    exit_speed: int
    blink: bool = False
    siren_output: bool = False

    @classmethod
    def from_options(cls, options: DisplayOptions, schedule: Schedule) -> "EffectMetadata":
        return cls(
            entry_code=options.display_effect,
            entry_speed=options.display_effect_speed,
            wait_seconds=options.display_wait_time_seconds,
            hold_seconds=schedule.duration_seconds,
            exit_code=options.end_effect,
            exit_speed=options.end_effect_speed,
            blink=options.blink,
            siren_output=options.siren_output,
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "entryCode": int(self.entry_code),
            "entrySpeed": self.entry_speed,
            "waitSeconds": self.wait_seconds,
            "holdSeconds": self.hold_seconds,
            "exitCode": int(self.exit_code),
            "exitSpeed": self.exit_speed,
            "blink": self.blink,
            "sirenOutput": self.siren_output,
        }


@dataclass(slots=True)
class Message:
    """Content and delivery record for a single submission."""

    id: str
    device_id: str
    content: str
    status: MessageStatus
    priority: Priority
    urgent: bool
    room_number: int
    display_options: DisplayOptions
    schedule: Schedule
    created_at: datetime
    updated_at: datetime
    image_data: bytes | None = None
    sent_at: datetime | None = None
    archived_at: datetime | None = None
    completed_at: datetime | None = None
    send_attempts: int = 0
    last_error: str | None = None

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES

    def is_expired(self, now: datetime) -> bool:
        end_time = self.schedule.end_time
        if end_time is None:
            return False
        return _align(now, end_time) > end_time

    def is_active_time(self, now: datetime) -> bool:
        start_time = self.schedule.start_time
        if start_time is not None and _align(now, start_time) < start_time:
            return False
        return not self.is_expired(now)


def _align(now: datetime, reference: datetime) -> datetime:
    """Give ``now`` the same tz-awareness as ``reference``."""

    if reference.tzinfo is not None and now.tzinfo is None:
        return now.replace(tzinfo=reference.tzinfo)
    if reference.tzinfo is None and now.tzinfo is not None:
        return now.replace(tzinfo=None)
    return now


@dataclass(slots=True)
class SlotState:
    """Occupancy of one ``(device_id, number)`` pair."""

    device_id: str
    number: int
    active: bool = False
    last_message_ref: str | None = None
    updated_at: datetime | None = None


class EventType(StrEnum):
    CREATED = "created"
    SENT = "sent"
    ARCHIVED = "archived"
    DELETED = "deleted"
    FAILED = "failed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    RESTORED = "restored"


@dataclass(frozen=True, slots=True)
class MessageEvent:
    """Lifecycle event emitted to the history collaborator."""

    message_id: str
    device_id: str
    room_number: int
    event: EventType
    status: MessageStatus
    occurred_at: datetime
    details: Mapping[str, Any] = field(default_factory=dict)


__all__ = [
    "DEFAULT_RESOLUTION",
    "DeviceDescriptor",
    "DisplayOptions",
    "EffectMetadata",
    "EventType",
    "LIVE_STATUSES",
    "MESSAGE_TRANSITIONS",
    "Message",
    "MessageEvent",
    "MessageStatus",
    "NORMAL_RANGE",
    "Position",
    "Priority",
    "Resolution",
    "SLOT_COUNT",
    "Schedule",
    "SlotState",
    "URGENT_RANGE",
]
