"""Engine configuration loaded from ``SIGNBOARD_*`` environment variables.

Defaults mirror the behaviour of the deployed signage controllers: an unknown
device is treated as a 1920x1080 panel, text submissions are capped at 1000
characters and a failed delivery is attempted at most three times before the
message is marked as failed.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Any, cast

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CommitPolicy(StrEnum):
    """When the slot registry commits a slot relative to transport delivery."""

    CONFIRMED = "confirmed"
    OPTIMISTIC = "optimistic"


class SignboardConfig(BaseSettings):
    """Pydantic settings container for the engine."""

    model_config = cast(Any, SettingsConfigDict(env_prefix="SIGNBOARD_"))

    default_width: int = Field(
        default=1920,
        gt=0,
        description="Panel width assumed when a device cannot be resolved.",
    )
    default_height: int = Field(
        default=1080,
        gt=0,
        description="Panel height assumed when a device cannot be resolved.",
    )
    content_max_chars: int = Field(
        default=1000,
        ge=1,
        description="Maximum number of characters accepted in a text submission.",
    )
    font_path: Path | None = Field(
        default=None,
        description="TrueType font used for rendering; Pillow's default face otherwise.",
    )
    progress_tick_ms: int = Field(
        default=100,
        ge=1,
        description="Cadence of progress updates while a message is displaying.",
    )
    blink_period_ms: int = Field(
        default=1000,
        ge=2,
        description="Full on/off period of the blink pulse (50% duty).",
    )
    max_send_attempts: int = Field(
        default=3,
        ge=1,
        description="Delivery attempts before a message is marked as failed.",
    )
    commit_policy: CommitPolicy = Field(
        default=CommitPolicy.CONFIRMED,
        description="Commit slots after confirmed delivery or optimistically on send.",
    )
    history_database_url: str = Field(
        default="sqlite:///:memory:",
        description="SQLAlchemy URL for the message lifecycle event log.",
    )

    @classmethod
    def build_default(cls) -> "SignboardConfig":
        """Construct configuration with the stock defaults and environment overrides."""

        return cls()


__all__ = ["CommitPolicy", "SignboardConfig"]
