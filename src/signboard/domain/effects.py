"""Entry/exit effect tables and the speed-to-duration law.

Effect codes are the numeric values understood by the panel firmware. Entry
and exit effects are separate, closed enumerations; the numeric spaces overlap
but never mean the same thing, so each table is indexed only by its own enum.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from types import MappingProxyType
from typing import Mapping

SPEED_MIN = 1
SPEED_MAX = 8


class EntryEffect(IntEnum):
    DIRECT = 0x01
    SCROLL_LEFT = 0x02
    SCROLL_UP = 0x03
    SCROLL_DOWN = 0x04
    LASER = 0x05
    CENTER_EXPAND = 0x06
    EDGE_CONVERGE = 0x07
    ROTATE_DISPLAY = 0x08
    ROTATE_LINE = 0x09
    ROTATE_CHANGE = 0x0A
    ROTATE_LINE_CHANGE = 0x0B
    MOVE_UP_DOWN_1 = 0x0C
    MOVE_UP_DOWN_2 = 0x0D
    REVERSE_SLOW = 0x0E
    REVERSE_FAST = 0x0F
    CURRENT_TIME = 0x10
    SCROLL_ALL_LEFT = 0x11


class ExitEffect(IntEnum):
    SCROLL_UP = 0x01
    SCROLL_DOWN = 0x02
    CENTER_EXPAND = 0x03
    EDGE_CONVERGE = 0x04
    DIRECT_DISAPPEAR = 0x05
    ROTATE_DISAPPEAR = 0x06
    SCROLL_LEFT = 0x07
    SCREEN_REVERSE = 0x08
    EXPAND_HORIZONTAL = 0x09
    SHRINK_CENTER = 0x0A
    EXPAND_REVERSE = 0x0B


@dataclass(frozen=True, slots=True)
class EffectDescriptor:
    """Human readable name and base duration of an effect at full length."""

    name: str
    base_duration_ms: int


ENTRY_EFFECTS: Mapping[EntryEffect, EffectDescriptor] = MappingProxyType(
    {
        EntryEffect.DIRECT: EffectDescriptor("direct", 0),
        EntryEffect.SCROLL_LEFT: EffectDescriptor("scroll left", 2000),
        EntryEffect.SCROLL_UP: EffectDescriptor("scroll up", 2000),
        EntryEffect.SCROLL_DOWN: EffectDescriptor("scroll down", 2000),
        EntryEffect.LASER: EffectDescriptor("laser", 1500),
        EntryEffect.CENTER_EXPAND: EffectDescriptor("open from center", 1500),
        EntryEffect.EDGE_CONVERGE: EffectDescriptor("close to center", 1500),
        EntryEffect.ROTATE_DISPLAY: EffectDescriptor("rotate characters", 2000),
        EntryEffect.ROTATE_LINE: EffectDescriptor("rotate line", 2000),
        EntryEffect.ROTATE_CHANGE: EffectDescriptor("rotate characters change", 2000),
        EntryEffect.ROTATE_LINE_CHANGE: EffectDescriptor("rotate line change", 2000),
        EntryEffect.MOVE_UP_DOWN_1: EffectDescriptor("move up/down 1", 2000),
        EntryEffect.MOVE_UP_DOWN_2: EffectDescriptor("move up/down 2", 2000),
        EntryEffect.REVERSE_SLOW: EffectDescriptor("reverse video (slow)", 3000),
        EntryEffect.REVERSE_FAST: EffectDescriptor("reverse video (fast)", 1000),
        EntryEffect.CURRENT_TIME: EffectDescriptor("current time", 1000),
        EntryEffect.SCROLL_ALL_LEFT: EffectDescriptor("scroll all left", 3000),
    }
)

EXIT_EFFECTS: Mapping[ExitEffect, EffectDescriptor] = MappingProxyType(
    {
        ExitEffect.SCROLL_UP: EffectDescriptor("scroll up", 1500),
        ExitEffect.SCROLL_DOWN: EffectDescriptor("scroll down", 1500),
        ExitEffect.CENTER_EXPAND: EffectDescriptor("open from center", 1500),
        ExitEffect.EDGE_CONVERGE: EffectDescriptor("close to center", 1500),
        ExitEffect.DIRECT_DISAPPEAR: EffectDescriptor("disappear", 0),
        ExitEffect.ROTATE_DISAPPEAR: EffectDescriptor("rotate away", 1500),
        ExitEffect.SCROLL_LEFT: EffectDescriptor("scroll left", 1500),
        ExitEffect.SCREEN_REVERSE: EffectDescriptor("screen reverse", 1000),
        ExitEffect.EXPAND_HORIZONTAL: EffectDescriptor("expand horizontally", 1500),
        ExitEffect.SHRINK_CENTER: EffectDescriptor("shrink to center", 1500),
        ExitEffect.EXPAND_REVERSE: EffectDescriptor("expand reversed", 1500),
    }
)


def speed_multiplier(speed: int) -> int:
    """Return the duration divisor for a 1..8 speed setting.

    The divisor is ``9 - speed``: speed 8 plays the full base duration and
    speed 1 plays an eighth of it.
    """

    if not SPEED_MIN <= speed <= SPEED_MAX:
        raise ValueError(f"speed must be within {SPEED_MIN}..{SPEED_MAX}, got {speed}")
    return 9 - speed


def entry_duration_ms(effect: EntryEffect | int, speed: int) -> float:
    return ENTRY_EFFECTS[EntryEffect(effect)].base_duration_ms / speed_multiplier(speed)


def exit_duration_ms(effect: ExitEffect | int, speed: int) -> float:
    return EXIT_EFFECTS[ExitEffect(effect)].base_duration_ms / speed_multiplier(speed)


__all__ = [
    "ENTRY_EFFECTS",
    "EXIT_EFFECTS",
    "EffectDescriptor",
    "EntryEffect",
    "ExitEffect",
    "SPEED_MAX",
    "SPEED_MIN",
    "entry_duration_ms",
    "exit_duration_ms",
    "speed_multiplier",
]
