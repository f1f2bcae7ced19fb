"""Logging configuration for signboard."""

from __future__ import annotations

import logging
from contextlib import AbstractContextManager

import structlog


def configure_logging(level: int = logging.INFO) -> None:
    """Configure stdlib logging and route structlog through it as JSON."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def device_context(device_id: str, **extra: object) -> AbstractContextManager[None]:
    """Bind ``device_id`` (and extras) to structlog events emitted inside the block."""

    return structlog.contextvars.bound_contextvars(device_id=device_id, **extra)


__all__ = ["configure_logging", "device_context"]
