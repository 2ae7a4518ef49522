"""Persistence backends for monitoring results."""

from storage.base import MonitorStore
from storage.sqlite_store import SQLiteStore

__all__ = [
    "MonitorStore",
    "SQLiteStore",
]
