"""Persistent storage for the brief cache."""

from daily_brief.storage.base import PersistentStore
from daily_brief.storage.memory import MemoryStore
from daily_brief.storage.sql import SqlStore, to_async_url

__all__ = [
    "MemoryStore",
    "PersistentStore",
    "SqlStore",
    "to_async_url",
]
