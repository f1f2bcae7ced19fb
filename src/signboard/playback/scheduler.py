"""Playback timing of a message: entering, displaying and exiting phases.

:func:`plan_timeline` is the pure duration computation shared with transports;
:class:`PlaybackScheduler` drives the phases on the running event loop and
reports them through optional listener callbacks.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from ..domain.effects import entry_duration_ms, exit_duration_ms
from ..domain.models import EffectMetadata

logger = logging.getLogger(__name__)

DEFAULT_TICK_MS = 100
DEFAULT_BLINK_PERIOD_MS = 1000


class PlaybackPhase(StrEnum):
    IDLE = "idle"
    ENTERING = "entering"
    DISPLAYING = "displaying"
    EXITING = "exiting"


@dataclass(frozen=True, slots=True)
class PlaybackPlan:
    """Phase durations in milliseconds."""

    entering_ms: float
    wait_ms: float
    displaying_ms: float
    exiting_ms: float
    blink: bool = False

    @property
    def total_ms(self) -> float:
        return self.entering_ms + self.wait_ms + self.displaying_ms + self.exiting_ms


def plan_timeline(metadata: EffectMetadata) -> PlaybackPlan:
    return PlaybackPlan(
        entering_ms=entry_duration_ms(metadata.entry_code, metadata.entry_speed),
        wait_ms=max(0.0, metadata.wait_seconds) * 1000,
        displaying_ms=max(0.0, metadata.hold_seconds) * 1000,
        exiting_ms=exit_duration_ms(metadata.exit_code, metadata.exit_speed),
        blink=metadata.blink,
    )


PhaseListener = Callable[[PlaybackPhase], None]
ProgressListener = Callable[[float], None]
BlinkListener = Callable[[bool], None]


def _current_task() -> asyncio.Task[Any] | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class PlaybackScheduler:
    """Run one play session at a time; a new play stops the previous one first."""

    def __init__(
        self,
        *,
        sleep: Callable[[float], Any] | None = None,
        tick_ms: int = DEFAULT_TICK_MS,
        blink_period_ms: int = DEFAULT_BLINK_PERIOD_MS,
        on_phase: PhaseListener | None = None,
        on_progress: ProgressListener | None = None,
        on_blink: BlinkListener | None = None,
    ) -> None:
        self._sleep = self._wrap_sleep(sleep)
        self._tick_ms = max(1, tick_ms)
        self._blink_period_ms = max(2, blink_period_ms)
        self._on_phase = on_phase
        self._on_progress = on_progress
        self._on_blink = on_blink
        self._phase = PlaybackPhase.IDLE
        self._progress = 0.0
        self._blink_on = False
        self._session: object | None = None
        self._task: asyncio.Task[bool] | None = None

    @staticmethod
    def _wrap_sleep(
        sleep: Callable[[float], Any] | None,
    ) -> Callable[[float], Awaitable[None]]:
        if sleep is None:
            return asyncio.sleep

        async def _async_sleep(seconds: float) -> None:
            result = sleep(seconds)
            if inspect.isawaitable(result):
                await result

        return _async_sleep

    @property
    def phase(self) -> PlaybackPhase:
        return self._phase

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def blink_on(self) -> bool:
        return self._blink_on

    @property
    def is_playing(self) -> bool:
        return self._phase is not PlaybackPhase.IDLE

    def start(self, plan: PlaybackPlan) -> asyncio.Task[bool] | None:
        """Schedule ``plan`` on the running loop; returns ``None`` when there is none."""
        self.stop()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("playback.start.no_loop", extra={"total_ms": plan.total_ms})
            return None
        self._task = loop.create_task(self.run(plan))
        return self._task

    async def run(self, plan: PlaybackPlan) -> bool:
        """Play ``plan`` to the end; returns ``False`` if the session was stopped.

        When awaited directly (not through :meth:`start`) the session runs in
        its own task so that :meth:`stop` can cancel a pending timer without
        cancelling the caller.
        """
        if self._task is not None and self._task is asyncio.current_task():
            return await self._play(plan)
        self.stop()
        task = asyncio.get_running_loop().create_task(self._play(plan))
        self._task = task
        try:
            return await task
        except asyncio.CancelledError:
            if self._task is task:
                raise
            return False
        finally:
            if self._task is task:
                self._task = None

    async def _play(self, plan: PlaybackPlan) -> bool:
        session = object()
        self._session = session
        logger.info(
            "playback.session.started",
            extra={
                "entering_ms": plan.entering_ms,
                "wait_ms": plan.wait_ms,
                "displaying_ms": plan.displaying_ms,
                "exiting_ms": plan.exiting_ms,
            },
        )
        try:
            self._set_phase(PlaybackPhase.ENTERING)
            if not await self._wait(plan.entering_ms, session):
                return False
            if not await self._wait(plan.wait_ms, session):
                return False

            self._set_phase(PlaybackPhase.DISPLAYING)
            if not await self._display(plan, session):
                return False

            self._set_phase(PlaybackPhase.EXITING)
            if not await self._wait(plan.exiting_ms, session):
                return False
        except asyncio.CancelledError:
            if self._session is session:
                self._reset()
            raise
        if self._session is not session:
            return False
        self._reset()
        logger.info("playback.session.finished", extra={"total_ms": plan.total_ms})
        return True

    def stop(self) -> None:
        """Cancel any pending timer and return to idle with progress 0."""
        task, self._task = self._task, None
        was_playing = self.is_playing
        self._session = None
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()
        self._reset()
        if was_playing:
            logger.info("playback.session.stopped")

    async def _wait(self, duration_ms: float, session: object) -> bool:
        if duration_ms > 0:
            await self._sleep(duration_ms / 1000)
        return self._session is session

    async def _display(self, plan: PlaybackPlan, session: object) -> bool:
        duration = plan.displaying_ms
        self._set_progress(0.0)
        if plan.blink:
            self._set_blink(True)
        if duration <= 0:
            self._set_progress(100.0)
            return self._session is session

        ticks = math.ceil(duration / self._tick_ms)
        step = 100.0 / (duration / self._tick_ms)
        half_period = self._blink_period_ms / 2
        elapsed = 0.0
        for tick in range(1, ticks + 1):
            interval = min(self._tick_ms, duration - elapsed)
            await self._sleep(interval / 1000)
            if self._session is not session:
                return False
            elapsed += interval
            self._set_progress(min(100.0, step * tick))
            if plan.blink:
                self._set_blink(int(elapsed // half_period) % 2 == 0)
        self._set_progress(100.0)
        if plan.blink:
            self._set_blink(False)
        return True

    def _set_phase(self, phase: PlaybackPhase) -> None:
        if phase is self._phase:
            return
        self._phase = phase
        logger.debug("playback.phase", extra={"phase": phase.value})
        if self._on_phase is not None:
            self._on_phase(phase)

    def _set_progress(self, value: float) -> None:
        if value == self._progress:
            return
        self._progress = value
        if self._on_progress is not None:
            self._on_progress(value)

    def _set_blink(self, on: bool) -> None:
        if on == self._blink_on:
            return
        self._blink_on = on
        if self._on_blink is not None:
            self._on_blink(on)

    def _reset(self) -> None:
        self._set_blink(False)
        self._set_progress(0.0)
        self._set_phase(PlaybackPhase.IDLE)


__all__ = [
    "DEFAULT_BLINK_PERIOD_MS",
    "DEFAULT_TICK_MS",
    "PlaybackPhase",
    "PlaybackPlan",
    "PlaybackScheduler",
    "plan_timeline",
]
