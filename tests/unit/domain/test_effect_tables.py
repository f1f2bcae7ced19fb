from __future__ import annotations

import pytest

from src.signboard.domain.effects import (
    ENTRY_EFFECTS,
    EXIT_EFFECTS,
    EntryEffect,
    ExitEffect,
    entry_duration_ms,
    exit_duration_ms,
    speed_multiplier,
)

pytestmark = pytest.mark.unit


def test_tables_cover_every_code() -> None:
    assert [int(code) for code in ENTRY_EFFECTS] == list(range(0x01, 0x12))
    assert [int(code) for code in EXIT_EFFECTS] == list(range(0x01, 0x0C))
    assert set(ENTRY_EFFECTS) == set(EntryEffect)
    assert set(EXIT_EFFECTS) == set(ExitEffect)


def test_base_durations_match_firmware_values() -> None:
    entry = [ENTRY_EFFECTS[code].base_duration_ms for code in EntryEffect]
    exit_ = [EXIT_EFFECTS[code].base_duration_ms for code in ExitEffect]

    assert entry == [
        0, 2000, 2000, 2000, 1500, 1500, 1500, 2000, 2000,
        2000, 2000, 2000, 2000, 3000, 1000, 1000, 3000,
    ]
    assert exit_ == [1500, 1500, 1500, 1500, 0, 1500, 1500, 1000, 1500, 1500, 1500]


@pytest.mark.parametrize("speed, divisor", [(1, 8), (4, 5), (8, 1)])
def test_speed_multiplier_is_inverse_of_speed(speed: int, divisor: int) -> None:
    assert speed_multiplier(speed) == divisor


@pytest.mark.parametrize("speed", [0, 9, -1])
def test_speed_multiplier_rejects_out_of_range(speed: int) -> None:
    with pytest.raises(ValueError, match="speed must be within"):
        speed_multiplier(speed)


def test_duration_law_full_length_at_speed_eight() -> None:
    assert entry_duration_ms(EntryEffect.SCROLL_LEFT, 8) == 2000
    assert entry_duration_ms(EntryEffect.SCROLL_LEFT, 1) == 250
    assert exit_duration_ms(ExitEffect.SCREEN_REVERSE, 4) == 200
    assert exit_duration_ms(0x05, 1) == 0


def test_entry_and_exit_spaces_are_distinct() -> None:
    # 0x05 is the laser entry but the plain disappear exit.
    assert ENTRY_EFFECTS[EntryEffect(0x05)].base_duration_ms == 1500
    assert EXIT_EFFECTS[ExitEffect(0x05)].base_duration_ms == 0
