"""In-process implementation of the swapfeed stores.

Same surface as SQLiteStateStore without durability. Used for embedding the
pipeline in another process and throughout the test suite.

With ``feed_retention`` set, eviction matches the SQLite store: each
subscriber keeps the entries with the highest (block_number, log_index), and
an evicted entry's key is forgotten with it, so memory stays bounded.
"""

from __future__ import annotations

import asyncio
import dataclasses
from datetime import datetime, timezone

from swapfeed.models.events import Pool
from swapfeed.models.records import ActivityRecord, FeedEntry


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryStateStore:
    """Dict-backed CursorStore, FollowerIndex, FeedStore and PoolRegistry."""

    def __init__(self, feed_retention: int = 0) -> None:
        self._feed_retention = feed_retention
        self._lock = asyncio.Lock()
        self._cursors: dict[str, int] = {}
        self._pools: dict[str, Pool] = {}
        self._subscribers: set[str] = set()
        self._follows: dict[str, set[str]] = {}  # actor -> subscribers
        self._feeds: dict[str, list[FeedEntry]] = {}
        self._keys: set[tuple[str, str, str, int]] = set()
        self._activity: list[ActivityRecord] = []

    async def initialize(self) -> None:
        return None

    async def close(self) -> None:
        return None

    # ── Cursors ────────────────────────────────────────────

    async def get_cursor(self, pool: str) -> int | None:
        return self._cursors.get(pool.lower())

    async def get_cursors(self) -> dict[str, int]:
        return dict(self._cursors)

    async def set_cursor(self, pool: str, block: int) -> None:
        async with self._lock:
            pool = pool.lower()
            self._cursors[pool] = max(block, self._cursors.get(pool, block))

    # ── Pools ──────────────────────────────────────────────

    async def save_pool(self, pool: Pool) -> None:
        self._pools.setdefault(pool.address, pool)

    async def get_pools(self) -> list[Pool]:
        return list(self._pools.values())

    async def get_pool(self, address: str) -> Pool | None:
        return self._pools.get(address.lower())

    # ── Follower graph ─────────────────────────────────────

    async def register_subscriber(self, address: str) -> None:
        self._subscribers.add(address.lower())

    async def is_registered(self, address: str) -> bool:
        return address.lower() in self._subscribers

    async def follow(self, subscriber: str, actor: str) -> bool:
        subscriber, actor = subscriber.lower(), actor.lower()
        self._subscribers.add(subscriber)
        followers = self._follows.setdefault(actor, set())
        if subscriber in followers:
            return False
        followers.add(subscriber)
        return True

    async def unfollow(self, subscriber: str, actor: str) -> bool:
        followers = self._follows.get(actor.lower(), set())
        if subscriber.lower() not in followers:
            return False
        followers.discard(subscriber.lower())
        return True

    async def get_follows(self, subscriber: str) -> list[str]:
        subscriber = subscriber.lower()
        return sorted(actor for actor, subs in self._follows.items() if subscriber in subs)

    async def followers_of(self, actor: str) -> set[str]:
        return set(self._follows.get(actor.lower(), set()))

    # ── Feeds ──────────────────────────────────────────────

    async def append_entries(self, entries: list[FeedEntry]) -> int:
        inserted = 0
        now = _now()
        async with self._lock:
            for entry in sorted(entries, key=lambda e: e.sort_key):
                if entry.key in self._keys:
                    continue
                self._keys.add(entry.key)
                self._feeds.setdefault(entry.subscriber, []).append(
                    dataclasses.replace(entry, created_at=now)
                )
                inserted += 1
            if self._feed_retention > 0:
                for subscriber in {e.subscriber for e in entries}:
                    self._evict(subscriber)
        return inserted

    def _evict(self, subscriber: str) -> None:
        feed = self._feeds.get(subscriber, [])
        overflow = len(feed) - self._feed_retention
        if overflow > 0:
            # Same policy as SQLiteStateStore: the lowest (block, log_index) go first
            feed.sort(key=lambda e: e.sort_key)
            for entry in feed[:overflow]:
                self._keys.discard(entry.key)
            del feed[:overflow]

    async def get_feed(
        self, subscriber: str, limit: int | None = None, offset: int = 0,
    ) -> list[FeedEntry]:
        feed = sorted(self._feeds.get(subscriber.lower(), []), key=lambda e: e.sort_key)
        end = None if limit is None else offset + limit
        return feed[offset:end]

    async def count_entries(self, subscriber: str | None = None) -> int:
        if subscriber is not None:
            return len(self._feeds.get(subscriber.lower(), []))
        return sum(len(feed) for feed in self._feeds.values())

    # ── Activity log ───────────────────────────────────────

    async def log_activity(self, event_type: str, message: str, pool: str | None = None) -> None:
        self._activity.append(ActivityRecord(
            id=len(self._activity) + 1,
            event_type=event_type,
            pool=pool,
            message=message,
            created_at=_now(),
        ))

    async def get_recent_activity(self, limit: int = 50) -> list[ActivityRecord]:
        return list(reversed(self._activity))[:limit]
