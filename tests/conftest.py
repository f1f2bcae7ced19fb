from __future__ import annotations

import os
from datetime import datetime, timezone

import pytest

os.environ.setdefault("SIGNBOARD_HISTORY_DATABASE_URL", "sqlite:///:memory:")

FIXED_NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock injected wherever the engine reads the current time."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
