"""Slot occupancy per device."""

from .registry import (
    CommitReceipt,
    RoomStatus,
    SlotRegistry,
    SlotReservation,
    normalize_slot_number,
    slot_range,
    validate_slot_number,
)

__all__ = [
    "CommitReceipt",
    "RoomStatus",
    "SlotRegistry",
    "SlotReservation",
    "normalize_slot_number",
    "slot_range",
    "validate_slot_number",
]
