"""Domain level exceptions for the signboard engine."""

from __future__ import annotations

__all__ = [
    "SignboardError",
    "ValidationFailure",
    "InvalidSlotRange",
    "SlotConflict",
    "EmptyContent",
    "ContentTooLong",
    "InvalidDisplayOptions",
    "InvalidSchedule",
    "InvalidImageData",
    "UnknownDevice",
    "MessageNotFound",
    "InvalidMessageState",
    "ensure_found",
]


class SignboardError(Exception):
    """Base class for engine errors returned to the submission surface."""

    code = "signboard_error"

    def to_dict(self) -> dict[str, object]:
        return {"code": self.code, "message": str(self)}


class ValidationFailure(SignboardError):
    """Raised for submissions rejected before any slot state is touched."""

    code = "validation_failed"


class InvalidSlotRange(ValidationFailure):
    """Requested slot lies outside the range allowed for the urgency."""

    code = "invalid_slot_range"


class SlotConflict(SignboardError):
    """Requested slot is occupied and no overwrite confirmation was given."""

    code = "slot_conflict"

    def __init__(self, device_id: str, slot_number: int, confirmation_token: str) -> None:
        super().__init__(
            f"slot {slot_number} on device '{device_id}' is already in use; "
            "resubmit with the confirmation token to overwrite"
        )
        self.device_id = device_id
        self.slot_number = slot_number
        self.confirmation_token = confirmation_token

    def to_dict(self) -> dict[str, object]:
        payload = super().to_dict()
        payload["slot_number"] = self.slot_number
        payload["confirmation_token"] = self.confirmation_token
        return payload


class EmptyContent(ValidationFailure):
    """Content is blank after trimming."""

    code = "empty_content"


class ContentTooLong(ValidationFailure):
    """Content exceeds the configured character ceiling."""

    code = "content_too_long"


class InvalidDisplayOptions(ValidationFailure):
    """Font size, speed or effect code outside allowed bounds."""

    code = "invalid_display_options"


class InvalidSchedule(ValidationFailure):
    """Schedule end time is not after its start time."""

    code = "invalid_schedule"


class InvalidImageData(ValidationFailure):
    """Uploaded image content could not be decoded."""

    code = "invalid_image_data"


class UnknownDevice(SignboardError):
    """Device id could not be resolved by the device directory."""

    code = "unknown_device"


class MessageNotFound(SignboardError):
    """Raised when a message record could not be located."""

    code = "message_not_found"


class InvalidMessageState(SignboardError):
    """Raised when a lifecycle transition is not allowed."""

    code = "invalid_message_state"


def ensure_found(record: object | None, *, entity: str, identifier: str) -> object:
    """Ensure a record exists, otherwise raise :class:`MessageNotFound`."""

    if record is None:
        raise MessageNotFound(f"{entity} '{identifier}' not found")
    return record
