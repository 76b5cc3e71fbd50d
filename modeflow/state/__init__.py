"""
State System - Persisted mode state behind an injectable store.

Provides:
- StateStore: Abstract read/write/reset interface
- FileStateStore: JSON file with atomic replace
- InMemoryStateStore: Process-local store for tests and embedding
- PersistedState / HistoryEntry: The persisted data
"""

from .store import (
    FileStateStore,
    HistoryEntry,
    InMemoryStateStore,
    PersistedState,
    StateStore,
    utc_timestamp,
)

__all__ = [
    "FileStateStore",
    "HistoryEntry",
    "InMemoryStateStore",
    "PersistedState",
    "StateStore",
    "utc_timestamp",
]
