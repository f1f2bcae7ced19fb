"""Message lifecycle event sinks."""

from .recorder import HistoryRecorder, InMemoryHistoryRecorder
from .sqlalchemy_recorder import SqlAlchemyHistoryRecorder, init_history_db

__all__ = [
    "HistoryRecorder",
    "InMemoryHistoryRecorder",
    "SqlAlchemyHistoryRecorder",
    "init_history_db",
]
