"""Message records and their lifecycle."""

from .repository import COMMITTED_STATUSES, MessageRepository, MessageStats, StatusSnapshot

__all__ = ["COMMITTED_STATUSES", "MessageRepository", "MessageStats", "StatusSnapshot"]
