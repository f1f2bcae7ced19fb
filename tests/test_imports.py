"""Smoke-check that every package exposes its public symbols."""

from __future__ import annotations

from importlib import import_module
from types import ModuleType

import pytest
import structlog

MODULES_AND_SYMBOLS = [
    ("src.signboard", "build_services"),
    ("src.signboard.config", "SignboardConfig"),
    ("src.signboard.logging", "configure_logging"),
    ("src.signboard.logging", "device_context"),
    ("src.signboard.domain", "EntryEffect"),
    ("src.signboard.domain", "Message"),
    ("src.signboard.schemas", "Submission"),
    ("src.signboard.history", "SqlAlchemyHistoryRecorder"),
    ("src.signboard.messages", "MessageRepository"),
    ("src.signboard.slots", "SlotRegistry"),
    ("src.signboard.rendering", "Rasterizer"),
    ("src.signboard.playback", "PlaybackScheduler"),
    ("src.signboard.services", "MessageComposer"),
    ("src.signboard.services", "StaticDeviceDirectory"),
    ("src.signboard.services.transport", "DeliveryReceipt"),
]


@pytest.mark.parametrize(("module_name", "symbol"), MODULES_AND_SYMBOLS)
def test_importable_symbols(module_name: str, symbol: str) -> None:
    """Import modules and verify that public symbols are exposed."""

    module: ModuleType = import_module(module_name)
    assert hasattr(module, symbol), f"{module_name} missing {symbol}"


def test_configure_logging_is_idempotent() -> None:
    logging_module = import_module("src.signboard.logging")

    logging_module.configure_logging()
    logging_module.configure_logging()

    with logging_module.device_context("dev-1"):
        assert structlog.contextvars.get_contextvars()["device_id"] == "dev-1"
    assert "device_id" not in structlog.contextvars.get_contextvars()
