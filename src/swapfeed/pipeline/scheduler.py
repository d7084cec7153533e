"""Poll scheduler - periodic per-pool fetch, fan-out and cursor advance."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Protocol

from swapfeed.errors import PipelineError
from swapfeed.interfaces.ledger import SWAPPED, LedgerReader
from swapfeed.interfaces.store import CursorStore, PoolRegistry
from swapfeed.models.events import Pool
from swapfeed.models.records import PoolTickResult, TickReport
from swapfeed.pipeline.dispatcher import FanoutDispatcher

log = logging.getLogger(__name__)


class ActivityLog(Protocol):
    async def log_activity(self, event_type: str, message: str, pool: str | None = None) -> None:
        ...


def block_ranges(from_block: int, to_block: int, max_range: int) -> list[tuple[int, int]]:
    """Split [from_block, to_block] into inclusive chunks of at most ``max_range`` blocks."""
    if from_block > to_block:
        return []
    if max_range <= 0:
        return [(from_block, to_block)]
    return [
        (start, min(start + max_range - 1, to_block))
        for start in range(from_block, to_block + 1, max_range)
    ]


class PollScheduler:
    """Drives one independent polling pass per registered pool every tick.

    Each pass:
    1. Reads the pool's cursor and the chain head (skips if no new blocks)
    2. Fetches Swapped logs for cursor+1 .. head
    3. Fans them out through the dispatcher
    4. Advances the cursor, only after the dispatch fully succeeded

    At most ``max_concurrent`` pools are processed at once; the rest wait for
    a free slot within the same tick. A failing pool is logged and retried on
    the next tick from its unchanged cursor.
    """

    def __init__(
        self,
        reader: LedgerReader,
        dispatcher: FanoutDispatcher,
        cursors: CursorStore,
        pools: PoolRegistry,
        activity: ActivityLog | None = None,
        poll_interval: float = 10,
        max_concurrent: int = 4,
        max_block_range: int = 0,
        start_block_offset: int = 5,
        start_block: int | None = None,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._reader = reader
        self._dispatcher = dispatcher
        self._cursors = cursors
        self._pools = pools
        self._activity = activity
        self._poll_interval = poll_interval
        self._max_concurrent = max_concurrent
        self._max_block_range = max_block_range
        self._start_block_offset = start_block_offset
        self._start_block = start_block
        self._running = False
        self._stop_event = asyncio.Event()
        self._last_report: TickReport | None = None

    @property
    def last_report(self) -> TickReport | None:
        return self._last_report

    @property
    def running(self) -> bool:
        return self._running

    # ── Loop ───────────────────────────────────────────────

    async def run_forever(self) -> None:
        """Tick every ``poll_interval`` seconds until stop() is called.

        A stop requested before this starts (e.g. during daemon setup) is
        honoured: the loop returns without ticking.
        """
        if self._stop_event.is_set():
            log.info("Scheduler stop requested before start, not running")
            return
        self._running = True
        log.info(
            "Scheduler started (interval %ss, %d concurrent pools)",
            self._poll_interval, self._max_concurrent,
        )
        while self._running:
            started = time.monotonic()
            try:
                await self.run_tick()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                log.error("Scheduler tick failed: %s", exc, exc_info=True)

            delay = max(0.0, self._poll_interval - (time.monotonic() - started))
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
        log.info("Scheduler stopped")

    def stop(self) -> None:
        """Stop after the in-flight tick completes. A stopped scheduler stays stopped."""
        self._running = False
        self._stop_event.set()

    # ── Tick ───────────────────────────────────────────────

    async def run_tick(self) -> TickReport:
        """Process every registered pool once."""
        started = datetime.now(timezone.utc).isoformat()
        start_time = time.monotonic()

        pools = await self._pools.get_pools()
        semaphore = asyncio.Semaphore(self._max_concurrent)

        async def _process_one(pool: Pool) -> PoolTickResult:
            async with semaphore:
                return await self.process_pool(pool)

        outcomes = await asyncio.gather(
            *(_process_one(pool) for pool in pools), return_exceptions=True,
        )

        results: list[PoolTickResult] = []
        for pool, outcome in zip(pools, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                log.error("Pool %s worker crashed: %s", pool.address, outcome)
                results.append(PoolTickResult(pool=pool.address, status="failed", error=str(outcome)))
            else:
                results.append(outcome)

        report = TickReport(
            started_at=started,
            completed_at=datetime.now(timezone.utc).isoformat(),
            results=results,
            duration_ms=int((time.monotonic() - start_time) * 1000),
        )
        self._last_report = report
        log.debug(
            "Tick complete: %d pools, %d advanced, %d idle, %d failed in %dms",
            len(results), report.advanced, report.idle, report.failed, report.duration_ms,
        )
        return report

    async def process_pool(self, pool: Pool) -> PoolTickResult:
        """Fetch, dispatch and advance one pool. Never raises except on cancellation."""
        address = pool.address
        from_block: int | None = None
        to_block: int | None = None
        result = PoolTickResult(pool=address, status="idle")
        try:
            head = await self._reader.get_chain_head()
            cursor = await self._cursors.get_cursor(address)
            if cursor is None:
                cursor = self._baseline_cursor(head)
                await self._cursors.set_cursor(address, cursor)
                log.info("Pool %s has no cursor, starting after block %d", address, cursor)

            if head <= cursor:
                return result

            for from_block, to_block in block_ranges(cursor + 1, head, self._max_block_range):
                raw_events = await self._reader.get_logs(address, SWAPPED, from_block, to_block)
                dispatched = await self._dispatcher.dispatch(address, raw_events, from_block, to_block)
                await self._cursors.set_cursor(address, to_block)
                result.dispatch.append(dispatched)
                if dispatched.malformed:
                    await self._record(
                        "data_loss",
                        f"Skipped {dispatched.malformed} malformed logs in blocks"
                        f" {from_block}-{to_block}",
                        address,
                    )

            result.status = "advanced"
            result.from_block = cursor + 1
            result.to_block = head
            return result

        except asyncio.CancelledError:
            raise
        except PipelineError as exc:
            log.warning(
                "Pool %s batch [%s, %s] failed, retrying next tick: %s",
                address, from_block, to_block, exc,
            )
            return await self._failed(result, exc, from_block, to_block)
        except Exception as exc:
            log.error("Pool %s unexpected error: %s", address, exc, exc_info=True)
            return await self._failed(result, exc, from_block, to_block)

    def _baseline_cursor(self, head: int) -> int:
        if self._start_block is not None:
            return max(self._start_block - 1, 0)
        return max(head - self._start_block_offset, 0)

    async def _failed(
        self,
        result: PoolTickResult,
        exc: Exception,
        from_block: int | None,
        to_block: int | None,
    ) -> PoolTickResult:
        result.status = "failed"
        result.error = f"{type(exc).__name__}: {exc}"
        result.from_block = from_block
        result.to_block = to_block
        await self._record("batch_failed", result.error, result.pool)
        return result

    async def _record(self, event_type: str, message: str, pool: str) -> None:
        if self._activity is None:
            return
        try:
            await self._activity.log_activity(event_type, message, pool=pool)
        except Exception as exc:
            log.warning("Could not record %s activity for %s: %s", event_type, pool, exc)
