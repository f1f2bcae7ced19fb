from __future__ import annotations

import asyncio

import pytest

from src.signboard.domain.models import EventType, MessageStatus, Resolution
from src.signboard.history import SqlAlchemyHistoryRecorder
from src.signboard.playback import PlaybackPhase
from src.signboard.services import (
    ComposedMessage,
    DeliveryReceipt,
    StaticDeviceDirectory,
    build_services,
)

pytestmark = pytest.mark.integration


class UploadingTransport:
    def __init__(self) -> None:
        self.payloads: list[dict] = []

    async def deliver(self, composed: ComposedMessage) -> DeliveryReceipt:
        self.payloads.append(composed.as_payload())
        return DeliveryReceipt(success=True)


def test_submission_to_playback_with_sqlalchemy_history(clock) -> None:
    services = build_services(
        {"history_database_url": "sqlite://", "progress_tick_ms": 250},
        directory=StaticDeviceDirectory({"lobby": Resolution(800, 200)}),
        clock=clock,
    )
    transport = UploadingTransport()

    composed = services.composer.compose(
        {
            "deviceId": "lobby",
            "content": "Welcome\nvisitors",
            "urgent": True,
            "displayOptions": {
                "displayEffect": 0x02,
                "displayEffectSpeed": 8,
                "displayWaitTime": 0,
                "endEffect": 0x05,
                "blink": True,
            },
            "schedule": {"duration": 1},
        }
    )
    outcome = asyncio.run(services.composer.send(composed, transport))

    assert outcome.delivered
    assert transport.payloads[0]["roomNumber"] == 1
    assert transport.payloads[0]["width"] == 800
    assert services.registry.active_slots("lobby") == {1}

    assert isinstance(services.recorder, SqlAlchemyHistoryRecorder)
    events = services.recorder.list_for_message(composed.message.id)
    assert [e.event for e in events] == [EventType.CREATED, EventType.SENT]

    phases: list[PlaybackPhase] = []
    delays: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        delays.append(seconds)

    scheduler = services.scheduler(sleep=fake_sleep, on_phase=phases.append)
    completed = asyncio.run(scheduler.run(composed.plan))

    assert completed
    assert phases == [
        PlaybackPhase.ENTERING,
        PlaybackPhase.DISPLAYING,
        PlaybackPhase.EXITING,
        PlaybackPhase.IDLE,
    ]
    assert sum(delays) == pytest.approx(composed.plan.total_ms / 1000)
    assert delays[1:] == [pytest.approx(0.25)] * 4

    archived = services.composer.release("lobby", 1)
    assert archived == [composed.message.id]
    assert services.messages.get(composed.message.id).status is MessageStatus.ARCHIVED
    assert services.recorder.list_for_message(composed.message.id)[-1].event is EventType.ARCHIVED
