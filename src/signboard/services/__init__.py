"""Orchestration of slots, rendering and delivery."""

from .composer import ComposedMessage, DeliveryOutcome, MessageComposer
from .container import SignboardServices, build_services
from .directory import DeviceDirectory, StaticDeviceDirectory
from .transport import DeliveryReceipt, Transport

__all__ = [
    "ComposedMessage",
    "DeliveryOutcome",
    "DeliveryReceipt",
    "DeviceDirectory",
    "MessageComposer",
    "SignboardServices",
    "StaticDeviceDirectory",
    "Transport",
    "build_services",
]
