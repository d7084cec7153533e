"""Fan-out dispatcher - turns one pool's batch of logs into feed entries."""

from __future__ import annotations

import logging

from swapfeed.chain.decoder import decode_swap
from swapfeed.errors import DispatchWriteError, MalformedEventError
from swapfeed.interfaces.ledger import LedgerReader
from swapfeed.interfaces.store import FeedStore, FollowerIndex
from swapfeed.models.events import RawEvent, SwapEvent
from swapfeed.models.records import DispatchResult, FeedEntry

log = logging.getLogger(__name__)


class FanoutDispatcher:
    """Delivers each swap to the feed of every subscriber following its actor.

    A batch either lands completely (new entries plus idempotent no-ops) or
    raises, in which case the caller leaves the pool's cursor where it was and
    retries the same range later. Undecodable logs are the one exception:
    they are dropped and logged as data loss so a single bad record cannot
    stall the pool.
    """

    def __init__(
        self,
        reader: LedgerReader,
        followers: FollowerIndex,
        feeds: FeedStore,
    ) -> None:
        self._reader = reader
        self._followers = followers
        self._feeds = feeds

    async def dispatch(
        self, pool: str, raw_events: list[RawEvent], from_block: int, to_block: int,
    ) -> DispatchResult:
        result = DispatchResult(pool=pool.lower(), from_block=from_block, to_block=to_block)
        if not raw_events:
            return result

        ordered = sorted(raw_events, key=lambda e: e.sort_key)
        timestamps = await self._resolve_timestamps(ordered)

        events: list[SwapEvent] = []
        for raw in ordered:
            try:
                events.append(decode_swap(raw, timestamps[raw.block_number]))
            except MalformedEventError as exc:
                result.malformed += 1
                log.error(
                    "Data loss: skipping malformed log %s:%d in pool %s block %d: %s",
                    raw.tx_hash, raw.log_index, pool, raw.block_number, exc,
                )
        result.events = len(events)

        entries: list[FeedEntry] = []
        followers_cache: dict[str, set[str]] = {}
        for event in events:
            if event.actor not in followers_cache:
                followers_cache[event.actor] = await self._followers.followers_of(event.actor)
            subscribers = followers_cache[event.actor]
            if not subscribers:
                result.discarded += 1
                continue
            for subscriber in sorted(subscribers):
                entries.append(FeedEntry.from_event(subscriber, event))

        if entries:
            try:
                result.delivered = await self._feeds.append_entries(entries)
            except DispatchWriteError:
                raise
            except Exception as exc:
                raise DispatchWriteError(f"feed write failed for pool {pool}: {exc}") from exc
            result.duplicates = len(entries) - result.delivered

        log.info(
            "Pool %s [%d, %d]: %d swaps, %d delivered, %d duplicate, %d unfollowed, %d malformed",
            pool, from_block, to_block, result.events, result.delivered,
            result.duplicates, result.discarded, result.malformed,
        )
        return result

    async def _resolve_timestamps(self, ordered: list[RawEvent]) -> dict[int, int]:
        timestamps: dict[int, int] = {}
        for raw in ordered:
            if raw.block_number not in timestamps:
                timestamps[raw.block_number] = await self._reader.get_block_timestamp(
                    raw.block_number
                )
        return timestamps
