"""Playback phase timing."""

from .scheduler import (
    DEFAULT_BLINK_PERIOD_MS,
    DEFAULT_TICK_MS,
    PlaybackPhase,
    PlaybackPlan,
    PlaybackScheduler,
    plan_timeline,
)

__all__ = [
    "DEFAULT_BLINK_PERIOD_MS",
    "DEFAULT_TICK_MS",
    "PlaybackPhase",
    "PlaybackPlan",
    "PlaybackScheduler",
    "plan_timeline",
]
