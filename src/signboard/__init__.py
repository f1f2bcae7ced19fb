"""Slot allocation, rasterization and playback timing for LED signage."""

from .config import CommitPolicy, SignboardConfig
from .exceptions import SignboardError
from .services import MessageComposer, build_services

__all__ = [
    "CommitPolicy",
    "MessageComposer",
    "SignboardConfig",
    "SignboardError",
    "build_services",
]
