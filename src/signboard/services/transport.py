"""Delivery of composed messages to physical panels."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .composer import ComposedMessage


@dataclass(frozen=True, slots=True)
class DeliveryReceipt:
    success: bool
    error: str | None = None


class Transport(Protocol):
    """Upload a composed bitmap and its effect metadata to a device."""

    async def deliver(self, composed: "ComposedMessage") -> DeliveryReceipt:
        ...


__all__ = ["DeliveryReceipt", "Transport"]
