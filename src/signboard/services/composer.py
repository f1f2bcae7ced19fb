"""Compose submissions into slot-bound bitmaps and settle their delivery."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Mapping, cast
from uuid import uuid4

import structlog

from ..config import CommitPolicy, SignboardConfig
from ..domain.models import (
    DEFAULT_RESOLUTION,
    EffectMetadata,
    Message,
    MessageStatus,
    Resolution,
)
from ..exceptions import InvalidMessageState, SlotConflict, UnknownDevice
from ..logging import device_context
from ..messages.repository import COMMITTED_STATUSES, MessageRepository, MessageStats
from ..playback.scheduler import PlaybackPlan, plan_timeline
from ..rendering.rasterizer import RasterArtifact, Rasterizer
from ..schemas import Submission, parse_submission, validate_content
from ..slots.registry import (
    CommitReceipt,
    RoomStatus,
    SlotRegistry,
    SlotReservation,
    normalize_slot_number,
    validate_slot_number,
)
from .directory import DeviceDirectory
from .transport import DeliveryReceipt, Transport

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ComposedMessage:
    """Bitmap, slot and effect metadata ready for a transport."""

    device_id: str
    slot_number: int
    artifact: RasterArtifact
    effect_metadata: EffectMetadata
    message: Message
    reservation: SlotReservation
    warnings: tuple[str, ...] = ()

    @property
    def bitmap(self) -> RasterArtifact:
        return self.artifact

    @property
    def conflict(self) -> bool:
        return self.reservation.conflict

    @property
    def plan(self) -> PlaybackPlan:
        return plan_timeline(self.effect_metadata)

    def as_payload(self) -> dict[str, Any]:
        """Transport payload with the bitmap encoded as base64 PNG."""
        return {
            "deviceId": self.device_id,
            "roomNumber": self.slot_number,
            "messageId": self.message.id,
            "width": self.artifact.width,
            "height": self.artifact.height,
            "image": self.artifact.to_base64(),
            "effectMetadata": self.effect_metadata.as_dict(),
        }


@dataclass(frozen=True, slots=True)
class DeliveryOutcome:
    message: Message
    delivered: bool
    error: str | None = None
    rolled_back: bool = False


class MessageComposer:
    """Turn submissions into composed messages and track them to a committed slot."""

    def __init__(
        self,
        *,
        registry: SlotRegistry,
        messages: MessageRepository,
        rasterizer: Rasterizer,
        directory: DeviceDirectory | None = None,
        config: SignboardConfig | None = None,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.registry = registry
        self.messages = messages
        self.rasterizer = rasterizer
        self.directory = directory
        self.config = config or SignboardConfig.build_default()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._id_factory = id_factory or (lambda: uuid4().hex)
        self._reservations: dict[str, SlotReservation] = {}

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------
    def compose(self, data: Mapping[str, Any] | Submission) -> ComposedMessage:
        """Validate, render and reserve a slot for a submission.

        Nothing touches slot state until validation and rendering succeeded. A
        requested slot that is occupied raises :class:`SlotConflict` carrying
        the token to resubmit with; an exhausted range silently falls back to
        its first slot and reports ``conflict``.
        """

        submission = parse_submission(data)
        if submission.image_data is None:
            validate_content(submission.content, max_chars=self.config.content_max_chars)
        if submission.room_number is not None:
            validate_slot_number(submission.room_number, urgent=submission.urgent)

        with device_context(submission.device_id):
            warnings: list[str] = []
            resolution = self._resolve_resolution(submission.device_id, warnings)
            options = submission.display_options.to_domain()
            schedule = submission.schedule.to_domain()

            if submission.image_data is not None:
                artifact = self.rasterizer.render_image(submission.image_data, options, resolution)
            else:
                artifact = self.rasterizer.render(submission.content, options, resolution)

            reservation = self.registry.reserve(
                submission.device_id,
                submission.room_number,
                urgent=submission.urgent,
                confirmation=submission.confirmation,
            )
            if not reservation.proceed:
                raise SlotConflict(
                    submission.device_id,
                    reservation.slot_number,
                    cast(str, reservation.confirmation_token),
                )
            if reservation.forced:
                warnings.append(
                    f"no free {'urgent' if submission.urgent else 'normal'} slot; "
                    f"slot {reservation.slot_number} will be overwritten"
                )

            now = self._clock()
            message = Message(
                id=self._id_factory(),
                device_id=submission.device_id,
                content=submission.content,
                status=MessageStatus.PENDING,
                priority=submission.effective_priority,
                urgent=submission.urgent,
                room_number=reservation.slot_number,
                display_options=options,
                schedule=schedule,
                created_at=now,
                updated_at=now,
                image_data=submission.image_data,
            )
            self.messages.add(message)
            self._reservations[message.id] = reservation

            logger.info(
                "composer.composed",
                message_id=message.id,
                slot_number=reservation.slot_number,
                conflict=reservation.conflict,
                forced=reservation.forced,
            )
            return ComposedMessage(
                device_id=submission.device_id,
                slot_number=reservation.slot_number,
                artifact=artifact,
                effect_metadata=EffectMetadata.from_options(options, schedule),
                message=message,
                reservation=reservation,
                warnings=tuple(warnings),
            )

    def _resolve_resolution(self, device_id: str, warnings: list[str]) -> Resolution:
        if self.directory is None:
            return self._fallback_resolution()
        try:
            return self.directory.describe(device_id).resolution
        except UnknownDevice as exc:
            fallback = self._fallback_resolution()
            logger.warning(
                "composer.device.unknown",
                width=fallback.width,
                height=fallback.height,
            )
            warnings.append(f"{exc}; using {fallback.width}x{fallback.height}")
            return fallback

    def _fallback_resolution(self) -> Resolution:
        width, height = self.config.default_width, self.config.default_height
        if (width, height) == (DEFAULT_RESOLUTION.width, DEFAULT_RESOLUTION.height):
            return DEFAULT_RESOLUTION
        return Resolution(width, height)

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------
    async def send(self, composed: ComposedMessage, transport: Transport) -> DeliveryOutcome:
        """Deliver a composed message and commit its slot per the commit policy."""
        message_id = composed.message.id
        reservation = self._reservations.get(message_id)
        if reservation is None:
            raise InvalidMessageState(f"message '{message_id}' has no outstanding reservation")

        with device_context(composed.device_id, message_id=message_id):
            self.messages.transition(message_id, MessageStatus.SENDING)
            receipt: CommitReceipt | None = None
            if self.config.commit_policy is CommitPolicy.OPTIMISTIC:
                receipt = self.registry.commit(
                    composed.device_id, composed.slot_number, message_id, reservation=reservation
                )

            try:
                result = await transport.deliver(composed)
            except Exception as exc:  # noqa: BLE001
                logger.exception("composer.deliver.error")
                result = DeliveryReceipt(success=False, error=str(exc) or type(exc).__name__)

            if result.success:
                return self._settle_success(composed, reservation)
            return self._settle_failure(composed, reservation, receipt, result.error)

    def _settle_success(
        self, composed: ComposedMessage, reservation: SlotReservation
    ) -> DeliveryOutcome:
        message_id = composed.message.id
        self.messages.record_send_attempt(
            message_id, success=True, error=None, max_attempts=self.config.max_send_attempts
        )
        self._reservations.pop(message_id, None)
        if self.config.commit_policy is CommitPolicy.CONFIRMED:
            self.registry.commit(
                composed.device_id, composed.slot_number, message_id, reservation=reservation
            )
        else:
            slot = self.registry.slot_state(composed.device_id, composed.slot_number)
            if not slot.active or slot.last_message_ref != message_id:
                # released or overwritten while the delivery was in flight
                message = self.messages.transition(message_id, MessageStatus.ARCHIVED)
                logger.warning(
                    "composer.deliver.superseded",
                    slot_number=composed.slot_number,
                    current_ref=slot.last_message_ref if slot.active else None,
                )
                return DeliveryOutcome(message=message, delivered=True)
        message = self.messages.transition(message_id, MessageStatus.ACTIVE)
        logger.info("composer.deliver.succeeded", slot_number=composed.slot_number)
        return DeliveryOutcome(message=message, delivered=True)

    def _settle_failure(
        self,
        composed: ComposedMessage,
        reservation: SlotReservation,
        receipt: CommitReceipt | None,
        error: str | None,
    ) -> DeliveryOutcome:
        message_id = composed.message.id
        if receipt is not None:
            self.registry.rollback(receipt)
        self.registry.cancel(reservation)
        self._reservations.pop(message_id, None)
        message = self.messages.record_send_attempt(
            message_id,
            success=False,
            error=error,
            max_attempts=self.config.max_send_attempts,
        )
        logger.warning(
            "composer.deliver.failed",
            slot_number=composed.slot_number,
            attempts=message.send_attempts,
            status=message.status.value,
            error=error,
        )
        return DeliveryOutcome(
            message=message,
            delivered=False,
            error=error,
            rolled_back=receipt is not None,
        )

    async def retry(self, composed: ComposedMessage, transport: Transport) -> DeliveryOutcome:
        """Send a pending message again on its original slot.

        An overwrite that was already authorized (confirmed or the exhausted
        range fallback) is carried forward; a slot taken in the meantime raises
        :class:`SlotConflict`.
        """

        message = self.messages.get(composed.message.id)
        if message.status is not MessageStatus.PENDING:
            raise InvalidMessageState(f"message '{message.id}' is {message.status}, not pending")

        previous = composed.reservation
        reservation = self.registry.reserve(
            composed.device_id, composed.slot_number, urgent=message.urgent
        )
        if not reservation.proceed and (previous.forced or previous.confirmed):
            reservation = self.registry.reserve(
                composed.device_id,
                composed.slot_number,
                urgent=message.urgent,
                confirmation=reservation.confirmation_token,
            )
        if not reservation.proceed:
            raise SlotConflict(
                composed.device_id,
                reservation.slot_number,
                cast(str, reservation.confirmation_token),
            )
        self._reservations[message.id] = reservation
        return await self.send(replace(composed, reservation=reservation, message=message), transport)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def cancel(self, message_id: str) -> Message:
        """Cancel a pending message and drop its slot hold."""
        message = self.messages.transition(message_id, MessageStatus.CANCELLED)
        reservation = self._reservations.pop(message_id, None)
        if reservation is not None:
            self.registry.cancel(reservation)
        return message

    def release(self, device_id: str, slot_number: object) -> list[str]:
        return self.registry.release(device_id, normalize_slot_number(slot_number))

    def release_all(self, device_id: str) -> list[int]:
        with device_context(device_id):
            released = self.registry.release_all(device_id)
            logger.info("composer.release_all", slots=released)
            return released

    def delete_from_history(self, message_id: str) -> Message:
        return self.messages.delete(message_id)

    def expire_due(self, now: datetime | None = None) -> list[Message]:
        """Mark committed messages past their end time as expired and free their slots."""
        moment = now or self._clock()
        expired: list[Message] = []
        for message in self.messages.list_all():
            if message.status not in COMMITTED_STATUSES or not message.is_expired(moment):
                continue
            self.messages.transition(message.id, MessageStatus.EXPIRED)
            self.registry.vacate(message.device_id, message.room_number, message_ref=message.id)
            expired.append(message)
        if expired:
            logger.info("composer.expired", message_ids=[m.id for m in expired])
        return expired

    def active_messages(self, device_id: str, now: datetime | None = None) -> list[Message]:
        moment = now or self._clock()
        return [
            message
            for message in self.messages.list_for_device(device_id, statuses=COMMITTED_STATUSES)
            if message.is_active_time(moment)
        ]

    def stats(self, device_id: str | None = None) -> MessageStats:
        return self.messages.stats(device_id, now=self._clock())

    def room_status(self, device_id: str) -> RoomStatus:
        return self.registry.room_status(device_id)


__all__ = ["ComposedMessage", "DeliveryOutcome", "MessageComposer"]
