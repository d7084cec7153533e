"""SQLite implementation of the cursor, follower, feed and pool stores."""

from __future__ import annotations

import asyncio
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from swapfeed.errors import DispatchWriteError
from swapfeed.models.events import Pool
from swapfeed.models.records import ActivityRecord, FeedEntry

SCHEMA = """
-- Per-pool watermark of the last fully processed block
CREATE TABLE IF NOT EXISTS cursors (
    pool TEXT PRIMARY KEY,
    last_block INTEGER NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Registered pools
CREATE TABLE IF NOT EXISTS pools (
    address TEXT PRIMARY KEY,
    asset_a TEXT NOT NULL,
    asset_b TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Subscribers and the actors they follow
CREATE TABLE IF NOT EXISTS subscribers (
    address TEXT PRIMARY KEY,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS follows (
    subscriber TEXT NOT NULL,
    actor TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (subscriber, actor)
);
CREATE INDEX IF NOT EXISTS idx_follows_actor ON follows(actor);

-- Per-subscriber feeds (amounts are uint256, stored as decimal text)
CREATE TABLE IF NOT EXISTS feed_entries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    subscriber TEXT NOT NULL,
    pool TEXT NOT NULL,
    actor TEXT NOT NULL,
    kind TEXT NOT NULL DEFAULT 'swap',
    input_asset TEXT NOT NULL,
    output_asset TEXT NOT NULL,
    input_amount TEXT NOT NULL,
    output_amount TEXT NOT NULL,
    block_number INTEGER NOT NULL,
    log_index INTEGER NOT NULL,
    block_timestamp INTEGER NOT NULL,
    tx_hash TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    UNIQUE (subscriber, pool, tx_hash, log_index)
);
CREATE INDEX IF NOT EXISTS idx_feed_order
    ON feed_entries(subscriber, block_number, log_index);

-- Activity log
CREATE TABLE IF NOT EXISTS activity_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event_type TEXT NOT NULL,
    pool TEXT,
    message TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_activity_created ON activity_log(created_at);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteStateStore:
    """SQLite-backed CursorStore, FollowerIndex, FeedStore and PoolRegistry.

    One connection is shared by all pool workers. Multi-statement writes hold
    ``_write_lock`` so two workers never interleave inside one transaction, and
    roll back on every exit that is not a commit, cancellation included.
    """

    def __init__(self, db_path: str, feed_retention: int = 0) -> None:
        self._db_path = db_path
        self._feed_retention = feed_retention
        self._db: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    async def initialize(self) -> None:
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    # ── Cursors ────────────────────────────────────────────

    async def get_cursor(self, pool: str) -> int | None:
        async with self.db.execute(
            "SELECT last_block FROM cursors WHERE pool=?", (pool.lower(),)
        ) as cur:
            row = await cur.fetchone()
            return row["last_block"] if row else None

    async def get_cursors(self) -> dict[str, int]:
        async with self.db.execute("SELECT pool, last_block FROM cursors") as cur:
            return {row["pool"]: row["last_block"] async for row in cur}

    async def set_cursor(self, pool: str, block: int) -> None:
        async with self._write_lock:
            try:
                await self.db.execute(
                    "INSERT INTO cursors (pool, last_block, updated_at) VALUES (?, ?, ?)"
                    " ON CONFLICT(pool) DO UPDATE SET"
                    " last_block=MAX(cursors.last_block, excluded.last_block),"
                    " updated_at=excluded.updated_at",
                    (pool.lower(), block, _now()),
                )
                await self.db.commit()
            except sqlite3.Error as exc:
                await self.db.rollback()
                raise DispatchWriteError(f"cursor write failed for {pool}: {exc}") from exc
            except BaseException:
                await self.db.rollback()
                raise

    # ── Pools ──────────────────────────────────────────────

    async def save_pool(self, pool: Pool) -> None:
        async with self._write_lock:
            await self.db.execute(
                "INSERT OR IGNORE INTO pools (address, asset_a, asset_b, created_at)"
                " VALUES (?, ?, ?, ?)",
                (pool.address, pool.asset_a, pool.asset_b, _now()),
            )
            await self.db.commit()

    async def get_pools(self) -> list[Pool]:
        async with self.db.execute(
            "SELECT address, asset_a, asset_b FROM pools ORDER BY created_at, address"
        ) as cur:
            return [
                Pool(address=row["address"], asset_a=row["asset_a"], asset_b=row["asset_b"])
                async for row in cur
            ]

    async def get_pool(self, address: str) -> Pool | None:
        async with self.db.execute(
            "SELECT address, asset_a, asset_b FROM pools WHERE address=?", (address.lower(),)
        ) as cur:
            row = await cur.fetchone()
            if row is None:
                return None
            return Pool(address=row["address"], asset_a=row["asset_a"], asset_b=row["asset_b"])

    # ── Follower graph ─────────────────────────────────────

    async def register_subscriber(self, address: str) -> None:
        async with self._write_lock:
            await self.db.execute(
                "INSERT OR IGNORE INTO subscribers (address, created_at) VALUES (?, ?)",
                (address.lower(), _now()),
            )
            await self.db.commit()

    async def is_registered(self, address: str) -> bool:
        async with self.db.execute(
            "SELECT 1 FROM subscribers WHERE address=?", (address.lower(),)
        ) as cur:
            return await cur.fetchone() is not None

    async def follow(self, subscriber: str, actor: str) -> bool:
        """Add a follow edge, registering the subscriber if needed. True if new."""
        now = _now()
        async with self._write_lock:
            await self.db.execute(
                "INSERT OR IGNORE INTO subscribers (address, created_at) VALUES (?, ?)",
                (subscriber.lower(), now),
            )
            cur = await self.db.execute(
                "INSERT OR IGNORE INTO follows (subscriber, actor, created_at) VALUES (?, ?, ?)",
                (subscriber.lower(), actor.lower(), now),
            )
            await self.db.commit()
            return cur.rowcount > 0

    async def unfollow(self, subscriber: str, actor: str) -> bool:
        async with self._write_lock:
            cur = await self.db.execute(
                "DELETE FROM follows WHERE subscriber=? AND actor=?",
                (subscriber.lower(), actor.lower()),
            )
            await self.db.commit()
            return cur.rowcount > 0

    async def get_follows(self, subscriber: str) -> list[str]:
        async with self.db.execute(
            "SELECT actor FROM follows WHERE subscriber=? ORDER BY created_at, actor",
            (subscriber.lower(),),
        ) as cur:
            return [row["actor"] async for row in cur]

    async def followers_of(self, actor: str) -> set[str]:
        async with self.db.execute(
            "SELECT subscriber FROM follows WHERE actor=?", (actor.lower(),)
        ) as cur:
            return {row["subscriber"] async for row in cur}

    # ── Feeds ──────────────────────────────────────────────

    async def append_entries(self, entries: list[FeedEntry]) -> int:
        if not entries:
            return 0

        ordered = sorted(entries, key=lambda e: e.sort_key)
        now = _now()
        inserted = 0
        async with self._write_lock:
            try:
                for entry in ordered:
                    cur = await self.db.execute(
                        "INSERT OR IGNORE INTO feed_entries"
                        " (subscriber, pool, actor, kind, input_asset, output_asset,"
                        "  input_amount, output_amount, block_number, log_index,"
                        "  block_timestamp, tx_hash, created_at)"
                        " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                        (
                            entry.subscriber, entry.pool, entry.actor, entry.kind,
                            entry.input_asset, entry.output_asset,
                            str(entry.input_amount), str(entry.output_amount),
                            entry.block_number, entry.log_index,
                            entry.block_timestamp, entry.tx_hash, now,
                        ),
                    )
                    inserted += cur.rowcount
                if self._feed_retention > 0:
                    for subscriber in {e.subscriber for e in ordered}:
                        await self._evict(subscriber)
                await self.db.commit()
            except sqlite3.Error as exc:
                await self.db.rollback()
                raise DispatchWriteError(f"feed write failed: {exc}") from exc
            except BaseException:
                # Cancelled mid-batch: the open transaction must not outlive the lock
                await self.db.rollback()
                raise
        return inserted

    async def _evict(self, subscriber: str) -> None:
        await self.db.execute(
            "DELETE FROM feed_entries WHERE subscriber=? AND id NOT IN ("
            " SELECT id FROM feed_entries WHERE subscriber=?"
            " ORDER BY block_number DESC, log_index DESC, id DESC LIMIT ?)",
            (subscriber, subscriber, self._feed_retention),
        )

    async def get_feed(
        self, subscriber: str, limit: int | None = None, offset: int = 0,
    ) -> list[FeedEntry]:
        sql = (
            "SELECT * FROM feed_entries WHERE subscriber=?"
            " ORDER BY block_number, log_index, id"
        )
        params: tuple = (subscriber.lower(),)
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params += (limit, offset)
        elif offset:
            sql += " LIMIT -1 OFFSET ?"
            params += (offset,)
        async with self.db.execute(sql, params) as cur:
            return [_row_to_entry(row) async for row in cur]

    async def count_entries(self, subscriber: str | None = None) -> int:
        if subscriber is None:
            sql, params = "SELECT COUNT(*) AS c FROM feed_entries", ()
        else:
            sql, params = "SELECT COUNT(*) AS c FROM feed_entries WHERE subscriber=?", (subscriber.lower(),)
        async with self.db.execute(sql, params) as cur:
            row = await cur.fetchone()
            return row["c"] if row else 0

    # ── Activity log ───────────────────────────────────────

    async def log_activity(self, event_type: str, message: str, pool: str | None = None) -> None:
        async with self._write_lock:
            await self.db.execute(
                "INSERT INTO activity_log (event_type, pool, message, created_at)"
                " VALUES (?, ?, ?, ?)",
                (event_type, pool, message, _now()),
            )
            await self.db.commit()

    async def get_recent_activity(self, limit: int = 50) -> list[ActivityRecord]:
        async with self.db.execute(
            "SELECT * FROM activity_log ORDER BY id DESC LIMIT ?", (limit,)
        ) as cur:
            return [
                ActivityRecord(
                    id=row["id"],
                    event_type=row["event_type"],
                    pool=row["pool"],
                    message=row["message"],
                    created_at=row["created_at"],
                )
                async for row in cur
            ]


def _row_to_entry(row: aiosqlite.Row) -> FeedEntry:
    return FeedEntry(
        subscriber=row["subscriber"],
        pool=row["pool"],
        actor=row["actor"],
        input_asset=row["input_asset"],
        output_asset=row["output_asset"],
        input_amount=int(row["input_amount"]),
        output_amount=int(row["output_amount"]),
        block_number=row["block_number"],
        log_index=row["log_index"],
        block_timestamp=row["block_timestamp"],
        tx_hash=row["tx_hash"],
        kind=row["kind"],
        created_at=row["created_at"],
    )
