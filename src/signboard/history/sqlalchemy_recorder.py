"""Message event log backed by SQLAlchemy."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Sequence
from datetime import datetime

from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..domain.models import EventType, MessageEvent, MessageStatus
from .db_models import Base, MessageEventModel

logger = logging.getLogger(__name__)


def _normalize_detail_value(value: object) -> object:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class SqlAlchemyHistoryRecorder:
    """Append lifecycle events to the ``message_event`` table."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str) -> "SqlAlchemyHistoryRecorder":
        engine = create_engine(database_url, future=True)
        init_history_db(engine)
        return cls(sessionmaker(bind=engine, expire_on_commit=False))

    def record(self, event: MessageEvent) -> None:
        details = {str(key): _normalize_detail_value(value) for key, value in event.details.items()}
        try:
            with self._session_factory() as session:
                session.add(
                    MessageEventModel(
                        message_id=event.message_id,
                        device_id=event.device_id,
                        room_number=event.room_number,
                        event=event.event.value,
                        status=event.status.value,
                        occurred_at=event.occurred_at,
                        details_json=json.dumps(details) if details else None,
                    )
                )
                session.commit()
        except SQLAlchemyError:
            logger.exception(
                "history.record.failed",
                extra={"message_id": event.message_id, "event": event.event.value},
            )
            raise

    def list_for_message(self, message_id: str) -> Sequence[MessageEvent]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(MessageEventModel)
                .where(MessageEventModel.message_id == message_id)
                .order_by(MessageEventModel.id)
            ).all()
            return [self._to_domain(row) for row in rows]

    def list_for_device(self, device_id: str) -> Sequence[MessageEvent]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(MessageEventModel)
                .where(MessageEventModel.device_id == device_id)
                .order_by(MessageEventModel.id)
            ).all()
            return [self._to_domain(row) for row in rows]

    @staticmethod
    def _to_domain(model: MessageEventModel) -> MessageEvent:
        details = {}
        if model.details_json:
            try:
                details = json.loads(model.details_json)
            except json.JSONDecodeError:
                details = {}
        return MessageEvent(
            message_id=model.message_id,
            device_id=model.device_id,
            room_number=model.room_number,
            event=EventType(model.event),
            status=MessageStatus(model.status),
            occurred_at=model.occurred_at,
            details=details,
        )


def init_history_db(engine: Engine) -> None:
    """Create the event log tables if they are missing."""
    Base.metadata.create_all(engine)


__all__ = ["SqlAlchemyHistoryRecorder", "init_history_db"]
