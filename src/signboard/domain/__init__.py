"""Domain models, effect tables and lifecycle rules of the signboard engine."""

from .effects import (
    ENTRY_EFFECTS,
    EXIT_EFFECTS,
    EffectDescriptor,
    EntryEffect,
    ExitEffect,
    entry_duration_ms,
    exit_duration_ms,
    speed_multiplier,
)
from .models import (
    DEFAULT_RESOLUTION,
    LIVE_STATUSES,
    NORMAL_RANGE,
    SLOT_COUNT,
    URGENT_RANGE,
    DeviceDescriptor,
    DisplayOptions,
    EffectMetadata,
    EventType,
    Message,
    MessageEvent,
    MessageStatus,
    Position,
    Priority,
    Resolution,
    Schedule,
    SlotState,
)

__all__ = [
    "DEFAULT_RESOLUTION",
    "DeviceDescriptor",
    "DisplayOptions",
    "ENTRY_EFFECTS",
    "EXIT_EFFECTS",
    "EffectDescriptor",
    "EffectMetadata",
    "EntryEffect",
    "EventType",
    "ExitEffect",
    "LIVE_STATUSES",
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
    "entry_duration_ms",
    "exit_duration_ms",
    "speed_multiplier",
]
