"""Store protocols - cursors, follower graph, feeds and the pool registry."""

from __future__ import annotations

from typing import Protocol

from swapfeed.models.events import Pool
from swapfeed.models.records import FeedEntry


class CursorStore(Protocol):
    """Durable per-pool watermark of the last fully processed block."""

    async def get_cursor(self, pool: str) -> int | None:
        ...

    async def get_cursors(self) -> dict[str, int]:
        """All cursors, keyed by pool address. Used to load state on startup."""
        ...

    async def set_cursor(self, pool: str, block: int) -> None:
        """Advance the cursor. Never moves it backwards."""
        ...


class FollowerIndex(Protocol):
    """Maps an actor address to the subscribers following it."""

    async def followers_of(self, actor: str) -> set[str]:
        ...


class FeedStore(Protocol):
    """Append-only, per-subscriber ordered feed log."""

    async def append_entries(self, entries: list[FeedEntry]) -> int:
        """Write entries atomically; returns how many were new.

        Entries whose key already exists are skipped silently. Raises
        DispatchWriteError if any write fails, in which case none are kept.
        """
        ...

    async def get_feed(
        self, subscriber: str, limit: int | None = None, offset: int = 0,
    ) -> list[FeedEntry]:
        ...


class PoolRegistry(Protocol):
    """Registered pools the scheduler polls."""

    async def save_pool(self, pool: Pool) -> None:
        ...

    async def get_pools(self) -> list[Pool]:
        ...

    async def get_pool(self, address: str) -> Pool | None:
        ...
