"""Persistence for connections, import sessions, row logs and mapping templates."""

from .base import ImportStore
from .memory import InMemoryStore
from .models import (
    Connection,
    ImportRowLog,
    ImportSession,
    MappingTemplate,
    RowOperation,
    RowStatus,
    SessionStatus,
)
from .sql_store import SqlStore

__all__ = [
    "ImportStore",
    "InMemoryStore",
    "SqlStore",
    "Connection",
    "ImportSession",
    "ImportRowLog",
    "MappingTemplate",
    "SessionStatus",
    "RowStatus",
    "RowOperation",
]
