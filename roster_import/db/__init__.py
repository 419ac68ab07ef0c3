"""Persistence adapters."""

from .store import MemoryStore, OffDayStore, PostgresStore

__all__ = [
    "MemoryStore",
    "OffDayStore",
    "PostgresStore",
]
