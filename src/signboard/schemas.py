"""Pydantic schemas for submissions entering the engine.

Field names accept both the snake_case attribute names and the camelCase keys
used by the submission API (``deviceId``, ``roomNumber``, ``displayOptions``).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from PIL import ImageColor
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .domain.effects import SPEED_MAX, SPEED_MIN, EntryEffect, ExitEffect
from .domain.models import DisplayOptions, Position, Priority, Schedule
from .exceptions import (
    ContentTooLong,
    EmptyContent,
    InvalidDisplayOptions,
    InvalidSchedule,
    InvalidSlotRange,
    ValidationFailure,
)

FONT_SIZE_MIN = 8
FONT_SIZE_MAX = 120


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class DisplayOptionsPayload(_CamelModel):
    font_size: int = Field(default=16, ge=FONT_SIZE_MIN, le=FONT_SIZE_MAX)
    color: str = "#FFFFFF"
    background_color: str = "#000000"
    position: Position = Position.CENTER
    display_effect: EntryEffect = EntryEffect.DIRECT
    display_effect_speed: int = Field(default=4, ge=SPEED_MIN, le=SPEED_MAX)
    display_wait_time_seconds: float = Field(default=1.0, ge=0, alias="displayWaitTime")
    end_effect: ExitEffect = ExitEffect.DIRECT_DISAPPEAR
    end_effect_speed: int = Field(default=4, ge=SPEED_MIN, le=SPEED_MAX)
    blink: bool = False
    siren_output: bool = False

    @field_validator("color", "background_color")
    @classmethod
    def _check_color(cls, value: str) -> str:
        ImageColor.getrgb(value)
        return value

    def to_domain(self) -> DisplayOptions:
        return DisplayOptions(
            font_size=self.font_size,
            color=self.color,
            background_color=self.background_color,
            position=self.position,
            display_effect=self.display_effect,
            display_effect_speed=self.display_effect_speed,
            display_wait_time_seconds=self.display_wait_time_seconds,
            end_effect=self.end_effect,
            end_effect_speed=self.end_effect_speed,
            blink=self.blink,
            siren_output=self.siren_output,
        )


class SchedulePayload(_CamelModel):
    start_time: datetime | None = None
    end_time: datetime | None = None
    duration_seconds: float = Field(default=10.0, ge=0, alias="duration")
    repeat_count: int = Field(default=1, ge=1)
    repeat_interval_seconds: float = Field(default=0.0, ge=0, alias="repeatInterval")

    @model_validator(mode="after")
    def _check_window(self) -> "SchedulePayload":
        if self.start_time is not None and self.end_time is not None:
            if self.start_time >= self.end_time:
                raise ValueError("end time must be later than start time")
        return self

    def to_domain(self) -> Schedule:
        return Schedule(
            start_time=self.start_time,
            end_time=self.end_time,
            duration_seconds=self.duration_seconds,
            repeat_count=self.repeat_count,
            repeat_interval_seconds=self.repeat_interval_seconds,
        )


class Submission(_CamelModel):
    """A validated message submission."""

    device_id: str = Field(..., min_length=1)
    content: str = ""
    image_data: bytes | None = None
    priority: Priority | None = None
    urgent: bool = False
    room_number: int | None = None
    display_options: DisplayOptionsPayload = Field(default_factory=DisplayOptionsPayload)
    schedule: SchedulePayload = Field(default_factory=SchedulePayload)
    confirmation: str | None = None

    @property
    def effective_priority(self) -> Priority:
        if self.priority is not None:
            return self.priority
        return Priority.URGENT if self.urgent else Priority.NORMAL


_FIELD_ERRORS: Mapping[str, type[ValidationFailure]] = {
    "display_options": InvalidDisplayOptions,
    "displayOptions": InvalidDisplayOptions,
    "schedule": InvalidSchedule,
    "room_number": InvalidSlotRange,
    "roomNumber": InvalidSlotRange,
}


def parse_submission(data: Mapping[str, Any] | Submission) -> Submission:
    """Validate raw submission data, raising the engine's error taxonomy."""

    if isinstance(data, Submission):
        return data
    try:
        return Submission.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = first["loc"]
        error_cls = _FIELD_ERRORS.get(str(location[0]), ValidationFailure) if location else ValidationFailure
        path = ".".join(str(part) for part in location) or "$"
        raise error_cls(f"{path}: {first['msg']}") from exc


def validate_content(content: str, *, max_chars: int) -> str:
    """Reject blank or oversized text before it reaches the rasterizer."""

    if not content or not content.strip():
        raise EmptyContent("message content must not be blank")
    if len(content) > max_chars:
        raise ContentTooLong(f"message content must be at most {max_chars} characters")
    return content


__all__ = [
    "DisplayOptionsPayload",
    "FONT_SIZE_MAX",
    "FONT_SIZE_MIN",
    "SchedulePayload",
    "Submission",
    "parse_submission",
    "validate_content",
]
