"""Per-device slot occupancy with reservation holds and overwrite confirmation."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Mapping
from uuid import uuid4

from ..domain.models import NORMAL_RANGE, SLOT_COUNT, URGENT_RANGE, SlotState
from ..exceptions import InvalidSlotRange
from ..messages.repository import MessageRepository, StatusSnapshot

logger = logging.getLogger(__name__)


def normalize_slot_number(value: object) -> int:
    """Coerce a slot number from the outside world into the canonical ``int``.

    Integers and decimal strings (``"6"``, ``" 42 "``) are accepted; anything
    else, or a number outside ``1..100``, raises :class:`InvalidSlotRange`.
    """

    if isinstance(value, bool):
        raise InvalidSlotRange(f"slot number must be an integer, got {value!r}")
    text = value.strip() if isinstance(value, str) else None
    if isinstance(value, int):
        number = value
    elif text is not None and text.isascii() and text.isdigit():
        number = int(text)
    else:
        raise InvalidSlotRange(f"slot number must be an integer, got {value!r}")
    if not 1 <= number <= SLOT_COUNT:
        raise InvalidSlotRange(f"slot number must be between 1 and {SLOT_COUNT}, got {number}")
    return number


def slot_range(*, urgent: bool) -> range:
    return URGENT_RANGE if urgent else NORMAL_RANGE


def validate_slot_number(value: object, *, urgent: bool) -> int:
    """Normalize ``value`` and check it lies in the range allowed for the urgency."""

    number = normalize_slot_number(value)
    candidates = slot_range(urgent=urgent)
    if number not in candidates:
        kind = "urgent" if urgent else "normal"
        raise InvalidSlotRange(
            f"{kind} messages must use slots {candidates.start}-{candidates.stop - 1}, got {number}"
        )
    return number


@dataclass(frozen=True, slots=True)
class SlotReservation:
    """Outcome of :meth:`SlotRegistry.reserve`.

    ``hold_id`` is set only when the reservation may proceed; a conflicting
    request without a matching confirmation carries a fresh token instead.
    """

    device_id: str
    slot_number: int
    conflict: bool = False
    forced: bool = False
    confirmed: bool = False
    confirmation_token: str | None = None
    hold_id: str | None = None

    @property
    def proceed(self) -> bool:
        return self.hold_id is not None


@dataclass(frozen=True, slots=True)
class CommitReceipt:
    """What a commit replaced; handed back to :meth:`SlotRegistry.rollback`."""

    device_id: str
    slot_number: int
    message_ref: str
    previous: SlotState
    archived: tuple[StatusSnapshot, ...] = ()


@dataclass(frozen=True, slots=True)
class RoomStatus:
    device_id: str
    used: tuple[int, ...]
    available_urgent: tuple[int, ...]
    available_normal: tuple[int, ...]
    slots: Mapping[int, SlotState]

    @property
    def summary(self) -> dict[str, int]:
        return {
            "total": SLOT_COUNT,
            "used": len(self.used),
            "available": SLOT_COUNT - len(self.used),
            "urgent_used": sum(1 for n in self.used if n in URGENT_RANGE),
            "normal_used": sum(1 for n in self.used if n in NORMAL_RANGE),
        }


@dataclass(slots=True)
class _DeviceSlots:
    device_id: str
    slots: dict[int, SlotState] = field(default_factory=dict)
    holds: dict[int, str] = field(default_factory=dict)
    tokens: dict[int, tuple[str, str]] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def state(self, number: int) -> SlotState:
        slot = self.slots.get(number)
        if slot is None:
            slot = self.slots[number] = SlotState(device_id=self.device_id, number=number)
        return slot

    def occupant(self, number: int) -> str | None:
        hold = self.holds.get(number)
        if hold is not None:
            return hold
        slot = self.slots.get(number)
        if slot is not None and slot.active:
            return slot.last_message_ref or f"slot:{number}"
        return None

    def is_free(self, number: int) -> bool:
        return self.occupant(number) is None


class SlotRegistry:
    """Track which numbered slots of each device hold a committed message.

    Every device has its own table and lock. A reservation that may proceed
    places a hold on its slot so that a competing reservation on the same device
    observes a conflict until the hold is committed or cancelled.
    """

    def __init__(
        self,
        messages: MessageRepository | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._messages = messages
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._devices: dict[str, _DeviceSlots] = {}
        self._devices_lock = threading.Lock()

    def _table(self, device_id: str) -> _DeviceSlots:
        with self._devices_lock:
            table = self._devices.get(device_id)
            if table is None:
                table = self._devices[device_id] = _DeviceSlots(device_id=device_id)
            return table

    def active_slots(self, device_id: str) -> set[int]:
        table = self._table(device_id)
        with table.lock:
            return {number for number, slot in table.slots.items() if slot.active}

    def slot_state(self, device_id: str, slot_number: object) -> SlotState:
        number = normalize_slot_number(slot_number)
        table = self._table(device_id)
        with table.lock:
            return replace(table.state(number))

    def reserve(
        self,
        device_id: str,
        requested: object | None,
        *,
        urgent: bool,
        confirmation: str | None = None,
    ) -> SlotReservation:
        candidates = slot_range(urgent=urgent)
        number = None if requested is None else validate_slot_number(requested, urgent=urgent)

        table = self._table(device_id)
        with table.lock:
            if number is None:
                return self._auto_assign(table, candidates)
            return self._reserve_explicit(table, number, confirmation)

    def _auto_assign(self, table: _DeviceSlots, candidates: range) -> SlotReservation:
        for number in candidates:
            if table.is_free(number):
                reservation = self._hold(table, number)
                logger.info(
                    "slots.reserve.assigned",
                    extra={"device_id": table.device_id, "slot_number": number},
                )
                return reservation
        number = candidates[0]
        logger.warning(
            "slots.reserve.forced",
            extra={"device_id": table.device_id, "slot_number": number},
        )
        return self._hold(table, number, conflict=True, forced=True)

    def _reserve_explicit(
        self, table: _DeviceSlots, number: int, confirmation: str | None
    ) -> SlotReservation:
        occupant = table.occupant(number)
        if occupant is None:
            return self._hold(table, number)

        issued = table.tokens.get(number)
        if confirmation is not None and issued == (confirmation, occupant):
            del table.tokens[number]
            logger.info(
                "slots.reserve.confirmed",
                extra={"device_id": table.device_id, "slot_number": number},
            )
            return self._hold(table, number, conflict=True, confirmed=True)

        token = uuid4().hex
        table.tokens[number] = (token, occupant)
        logger.info(
            "slots.reserve.conflict",
            extra={"device_id": table.device_id, "slot_number": number},
        )
        return SlotReservation(
            device_id=table.device_id,
            slot_number=number,
            conflict=True,
            confirmation_token=token,
        )

    @staticmethod
    def _hold(
        table: _DeviceSlots,
        number: int,
        *,
        conflict: bool = False,
        forced: bool = False,
        confirmed: bool = False,
    ) -> SlotReservation:
        hold_id = uuid4().hex
        table.holds[number] = hold_id
        return SlotReservation(
            device_id=table.device_id,
            slot_number=number,
            conflict=conflict,
            forced=forced,
            confirmed=confirmed,
            hold_id=hold_id,
        )

    def cancel(self, reservation: SlotReservation) -> None:
        """Drop the hold of a reservation that will not be committed."""
        if reservation.hold_id is None:
            return
        table = self._table(reservation.device_id)
        with table.lock:
            if table.holds.get(reservation.slot_number) == reservation.hold_id:
                del table.holds[reservation.slot_number]
        logger.info(
            "slots.reserve.cancelled",
            extra={"device_id": reservation.device_id, "slot_number": reservation.slot_number},
        )

    def commit(
        self,
        device_id: str,
        slot_number: object,
        message_ref: str,
        *,
        reservation: SlotReservation | None = None,
    ) -> CommitReceipt:
        """Make ``message_ref`` the occupant of the slot, archiving whatever it replaces."""
        number = normalize_slot_number(slot_number)
        table = self._table(device_id)
        with table.lock:
            slot = table.state(number)
            previous = replace(slot)
            slot.active = True
            slot.last_message_ref = message_ref
            slot.updated_at = self._clock()
            if reservation is not None and table.holds.get(number) == reservation.hold_id:
                del table.holds[number]
            table.tokens.pop(number, None)
            archived: tuple[StatusSnapshot, ...] = ()
            if self._messages is not None:
                archived = tuple(self._messages.archive_slot(device_id, number, keep=message_ref))
        logger.info(
            "slots.commit",
            extra={
                "device_id": device_id,
                "slot_number": number,
                "message_ref": message_ref,
                "replaced": previous.last_message_ref if previous.active else None,
            },
        )
        return CommitReceipt(
            device_id=device_id,
            slot_number=number,
            message_ref=message_ref,
            previous=previous,
            archived=archived,
        )

    def rollback(self, receipt: CommitReceipt) -> None:
        """Restore the slot and the messages a commit replaced."""
        table = self._table(receipt.device_id)
        with table.lock:
            slot = table.state(receipt.slot_number)
            if not slot.active or slot.last_message_ref != receipt.message_ref:
                logger.warning(
                    "slots.rollback.skipped",
                    extra={
                        "device_id": receipt.device_id,
                        "slot_number": receipt.slot_number,
                        "current_ref": slot.last_message_ref,
                    },
                )
                return
            table.slots[receipt.slot_number] = replace(receipt.previous)
            table.tokens.pop(receipt.slot_number, None)
            if self._messages is not None:
                self._messages.restore(receipt.archived)
        logger.info(
            "slots.rollback",
            extra={"device_id": receipt.device_id, "slot_number": receipt.slot_number},
        )

    def release(self, device_id: str, slot_number: object) -> list[str]:
        """Deactivate a slot and archive its messages; returns the archived ids."""
        number = normalize_slot_number(slot_number)
        table = self._table(device_id)
        with table.lock:
            slot = table.state(number)
            if not slot.active:
                return []
            slot.active = False
            slot.updated_at = self._clock()
            table.tokens.pop(number, None)
            archived: list[StatusSnapshot] = []
            if self._messages is not None:
                archived = self._messages.archive_slot(device_id, number)
        logger.info(
            "slots.release",
            extra={"device_id": device_id, "slot_number": number},
        )
        return [snapshot.message_id for snapshot in archived]

    def release_all(self, device_id: str) -> list[int]:
        released = sorted(self.active_slots(device_id))
        for number in released:
            self.release(device_id, number)
        return released

    def vacate(self, device_id: str, slot_number: object, *, message_ref: str) -> bool:
        """Deactivate the slot only if ``message_ref`` still occupies it."""
        number = normalize_slot_number(slot_number)
        table = self._table(device_id)
        with table.lock:
            slot = table.state(number)
            if not slot.active or slot.last_message_ref != message_ref:
                return False
            slot.active = False
            slot.updated_at = self._clock()
            table.tokens.pop(number, None)
        logger.info(
            "slots.vacate",
            extra={"device_id": device_id, "slot_number": number, "message_ref": message_ref},
        )
        return True

    def room_status(self, device_id: str) -> RoomStatus:
        table = self._table(device_id)
        with table.lock:
            used = tuple(n for n in range(1, SLOT_COUNT + 1) if not table.is_free(n))
            slots = {n: replace(table.state(n)) for n in used if n in table.slots}
        return RoomStatus(
            device_id=device_id,
            used=used,
            available_urgent=tuple(n for n in URGENT_RANGE if n not in used),
            available_normal=tuple(n for n in NORMAL_RANGE if n not in used),
            slots=slots,
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
