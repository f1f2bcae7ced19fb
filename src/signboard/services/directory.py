"""Resolution lookup for devices."""

from __future__ import annotations

from typing import Mapping, Protocol

from ..domain.models import DeviceDescriptor, Resolution
from ..exceptions import UnknownDevice


class DeviceDirectory(Protocol):
    """Resolve a device id to its descriptor or raise :class:`UnknownDevice`."""

    def describe(self, device_id: str) -> DeviceDescriptor:
        ...


class StaticDeviceDirectory:
    """Dictionary-backed directory, mostly for configuration files and tests."""

    def __init__(self, devices: Mapping[str, Resolution | DeviceDescriptor] | None = None) -> None:
        self._devices: dict[str, DeviceDescriptor] = {}
        for device_id, entry in (devices or {}).items():
            self.register(device_id, entry)

    def register(self, device_id: str, entry: Resolution | DeviceDescriptor) -> None:
        if isinstance(entry, Resolution):
            entry = DeviceDescriptor(device_id=device_id, resolution=entry)
        self._devices[device_id] = entry

    def describe(self, device_id: str) -> DeviceDescriptor:
        try:
            return self._devices[device_id]
        except KeyError:
            raise UnknownDevice(f"device '{device_id}' is not registered") from None


__all__ = ["DeviceDirectory", "StaticDeviceDirectory"]
