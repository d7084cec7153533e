"""State stores - SQLite for the daemon, in-memory for embedding and tests."""

from swapfeed.storage.memory import InMemoryStateStore
from swapfeed.storage.sqlite import SQLiteStateStore

__all__ = ["InMemoryStateStore", "SQLiteStateStore"]
