"""In-memory message store keyed by device."""

from __future__ import annotations

import logging
import threading
from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, cast

from ..domain.models import (
    LIVE_STATUSES,
    MESSAGE_TRANSITIONS,
    EventType,
    Message,
    MessageEvent,
    MessageStatus,
)
from ..exceptions import InvalidMessageState, ensure_found
from ..history.recorder import HistoryRecorder

logger = logging.getLogger(__name__)

COMMITTED_STATUSES = frozenset({MessageStatus.SENT, MessageStatus.ACTIVE})

_STATUS_EVENTS: Mapping[MessageStatus, EventType] = {
    MessageStatus.SENT: EventType.SENT,
    MessageStatus.ARCHIVED: EventType.ARCHIVED,
    MessageStatus.FAILED: EventType.FAILED,
    MessageStatus.EXPIRED: EventType.EXPIRED,
    MessageStatus.CANCELLED: EventType.CANCELLED,
}


@dataclass(frozen=True, slots=True)
class StatusSnapshot:
    """Status a message had before a bulk transition, used for rollback."""

    message_id: str
    status: MessageStatus
    archived_at: datetime | None


@dataclass(frozen=True, slots=True)
class MessageStats:
    total: int
    by_status: Mapping[str, int]
    by_priority: Mapping[str, int]
    by_room: Mapping[int, int]
    active: int


class MessageRepository:
    """Keep message records per device and emit lifecycle events.

    Each device owns its own table; lookups never scan other devices' records.
    """

    def __init__(
        self,
        recorder: HistoryRecorder | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._recorder = recorder
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._by_device: dict[str, dict[str, Message]] = {}
        self._device_of: dict[str, str] = {}
        self._lock = threading.RLock()

    def now(self) -> datetime:
        return self._clock()

    def add(self, message: Message) -> Message:
        with self._lock:
            if message.id in self._device_of:
                raise InvalidMessageState(f"message '{message.id}' already exists")
            self._by_device.setdefault(message.device_id, {})[message.id] = message
            self._device_of[message.id] = message.device_id
        self._emit(message, EventType.CREATED)
        logger.info(
            "messages.created",
            extra={
                "message_id": message.id,
                "device_id": message.device_id,
                "room_number": message.room_number,
            },
        )
        return message

    def find(self, message_id: str) -> Message | None:
        with self._lock:
            device_id = self._device_of.get(message_id)
            if device_id is None:
                return None
            return self._by_device[device_id].get(message_id)

    def get(self, message_id: str) -> Message:
        return cast(
            Message, ensure_found(self.find(message_id), entity="message", identifier=message_id)
        )

    def list_for_device(
        self, device_id: str, *, statuses: Iterable[MessageStatus] | None = None
    ) -> list[Message]:
        wanted = frozenset(statuses) if statuses is not None else None
        with self._lock:
            records = list(self._by_device.get(device_id, {}).values())
        return [m for m in records if wanted is None or m.status in wanted]

    def list_for_slot(
        self,
        device_id: str,
        room_number: int,
        *,
        statuses: Iterable[MessageStatus] | None = None,
    ) -> list[Message]:
        return [
            m
            for m in self.list_for_device(device_id, statuses=statuses)
            if m.room_number == room_number
        ]

    def list_all(self) -> list[Message]:
        with self._lock:
            return [m for table in self._by_device.values() for m in table.values()]

    def transition(
        self,
        message_id: str,
        status: MessageStatus,
        *,
        error: str | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> Message:
        """Move a message to ``status`` if the lifecycle allows it."""
        with self._lock:
            message = self.get(message_id)
            if status is message.status:
                return message
            allowed = MESSAGE_TRANSITIONS[message.status]
            if status not in allowed:
                raise InvalidMessageState(
                    f"message '{message_id}' cannot move from {message.status} to {status}"
                )
            now = self.now()
            message.status = status
            message.updated_at = now
            if error is not None:
                message.last_error = error
            if status is MessageStatus.SENT:
                message.sent_at = now
            elif status is MessageStatus.ARCHIVED:
                message.archived_at = now
            elif status in (MessageStatus.EXPIRED, MessageStatus.CANCELLED, MessageStatus.FAILED):
                message.completed_at = now
        event = _STATUS_EVENTS.get(status)
        if event is not None:
            self._emit(message, event, details)
        return message

    def archive_slot(
        self, device_id: str, room_number: int, *, keep: str | None = None
    ) -> list[StatusSnapshot]:
        """Archive committed messages of one slot, except ``keep``."""
        snapshots: list[StatusSnapshot] = []
        for message in self.list_for_slot(device_id, room_number, statuses=COMMITTED_STATUSES):
            if message.id == keep:
                continue
            snapshots.append(StatusSnapshot(message.id, message.status, message.archived_at))
            self.transition(message.id, MessageStatus.ARCHIVED)
        if snapshots:
            logger.info(
                "messages.slot.archived",
                extra={
                    "device_id": device_id,
                    "room_number": room_number,
                    "message_ids": [s.message_id for s in snapshots],
                },
            )
        return snapshots

    def restore(self, snapshots: Iterable[StatusSnapshot]) -> None:
        """Undo an :meth:`archive_slot` call; only used to roll back a commit.

        The history already holds an ``archived`` event for each message, so a
        ``restored`` event carrying the reinstated status follows it.
        """
        restored: list[Message] = []
        with self._lock:
            for snapshot in snapshots:
                message = self.find(snapshot.message_id)
                if message is None or message.status is not MessageStatus.ARCHIVED:
                    continue
                message.status = snapshot.status
                message.archived_at = snapshot.archived_at
                message.updated_at = self.now()
                restored.append(message)
        for message in restored:
            self._emit(message, EventType.RESTORED)

    def record_send_attempt(
        self, message_id: str, *, success: bool, error: str | None, max_attempts: int
    ) -> Message:
        """Count a delivery attempt; the message fails once attempts are exhausted."""
        with self._lock:
            message = self.get(message_id)
            message.send_attempts += 1
            message.updated_at = self.now()
        if success:
            return self.transition(message_id, MessageStatus.SENT)
        if message.send_attempts >= max_attempts:
            return self.transition(
                message_id,
                MessageStatus.FAILED,
                error=error,
                details={"attempts": message.send_attempts},
            )
        return self.transition(message_id, MessageStatus.PENDING, error=error)

    def delete(self, message_id: str) -> Message:
        """Remove a message from history permanently."""
        with self._lock:
            message = self.get(message_id)
            if message.status in LIVE_STATUSES:
                raise InvalidMessageState(
                    f"message '{message_id}' is {message.status}; release its slot first"
                )
            del self._by_device[message.device_id][message_id]
            del self._device_of[message_id]
        self._emit(message, EventType.DELETED)
        logger.info(
            "messages.deleted",
            extra={"message_id": message_id, "device_id": message.device_id},
        )
        return message

    def stats(self, device_id: str | None = None, *, now: datetime | None = None) -> MessageStats:
        messages = self.list_all() if device_id is None else self.list_for_device(device_id)
        moment = now or self.now()
        return MessageStats(
            total=len(messages),
            by_status=dict(Counter(m.status.value for m in messages)),
            by_priority=dict(Counter(m.priority.value for m in messages)),
            by_room=dict(Counter(m.room_number for m in messages)),
            active=sum(
                1 for m in messages if m.status in COMMITTED_STATUSES and m.is_active_time(moment)
            ),
        )

    def _emit(
        self, message: Message, event: EventType, details: Mapping[str, Any] | None = None
    ) -> None:
        if self._recorder is None:
            return
        self._recorder.record(
            MessageEvent(
                message_id=message.id,
                device_id=message.device_id,
                room_number=message.room_number,
                event=event,
                status=message.status,
                occurred_at=self.now(),
                details=dict(details or {}),
            )
        )


__all__ = ["COMMITTED_STATUSES", "MessageRepository", "MessageStats", "StatusSnapshot"]
