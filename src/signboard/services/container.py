"""Service composition helpers."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from ..config import SignboardConfig
from ..history.recorder import HistoryRecorder
from ..history.sqlalchemy_recorder import SqlAlchemyHistoryRecorder
from ..messages.repository import MessageRepository
from ..playback.scheduler import PlaybackScheduler
from ..rendering.rasterizer import Rasterizer
from ..slots.registry import SlotRegistry
from .composer import MessageComposer
from .directory import DeviceDirectory


@dataclass(frozen=True, slots=True)
class SignboardServices:
    """Wired engine components sharing one configuration."""

    config: SignboardConfig
    recorder: HistoryRecorder
    messages: MessageRepository
    registry: SlotRegistry
    rasterizer: Rasterizer
    composer: MessageComposer

    def scheduler(self, **options: Any) -> PlaybackScheduler:
        """Return a fresh scheduler using the configured tick and blink period."""
        return PlaybackScheduler(
            tick_ms=self.config.progress_tick_ms,
            blink_period_ms=self.config.blink_period_ms,
            **options,
        )


def _coerce_config(config: Mapping[str, Any] | SignboardConfig | None) -> SignboardConfig:
    if isinstance(config, SignboardConfig):
        return config
    if isinstance(config, Mapping):
        return SignboardConfig(**dict(config))
    return SignboardConfig.build_default()


def build_services(
    config: Mapping[str, Any] | SignboardConfig | None = None,
    *,
    directory: DeviceDirectory | None = None,
    recorder: HistoryRecorder | None = None,
    clock: Callable[[], datetime] | None = None,
) -> SignboardServices:
    """Construct the engine from configuration.

    Lifecycle events go to ``recorder`` when supplied, otherwise to an
    SQLAlchemy event log at ``history_database_url``.
    """

    app_config = _coerce_config(config)
    history = recorder or SqlAlchemyHistoryRecorder.from_url(app_config.history_database_url)
    messages = MessageRepository(history, clock=clock)
    registry = SlotRegistry(messages, clock=clock)
    rasterizer = Rasterizer(app_config.font_path)
    composer = MessageComposer(
        registry=registry,
        messages=messages,
        rasterizer=rasterizer,
        directory=directory,
        config=app_config,
        clock=clock,
    )
    return SignboardServices(
        config=app_config,
        recorder=history,
        messages=messages,
        registry=registry,
        rasterizer=rasterizer,
        composer=composer,
    )


__all__ = ["SignboardServices", "build_services"]
