"""History collaborator interface and an in-memory implementation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from ..domain.models import EventType, MessageEvent


class HistoryRecorder(Protocol):
    """Receives message lifecycle events for durable storage."""

    def record(self, event: MessageEvent) -> None:
        """Persist a single lifecycle event."""


@dataclass(slots=True)
class InMemoryHistoryRecorder:
    """Keeps events in a list; used when no history database is configured."""

    events: list[MessageEvent] = field(default_factory=list)

    def record(self, event: MessageEvent) -> None:
        self.events.append(event)

    def for_message(self, message_id: str) -> list[MessageEvent]:
        return [event for event in self.events if event.message_id == message_id]

    def of_type(self, event_type: EventType) -> list[MessageEvent]:
        return [event for event in self.events if event.event is event_type]


__all__ = ["HistoryRecorder", "InMemoryHistoryRecorder"]
