"""Main daemon - wires reader, stores, dispatcher and scheduler together."""

from __future__ import annotations

import asyncio
import logging
import signal

from swapfeed.api.feed_service import FeedService
from swapfeed.chain.reader import JsonRpcLedgerReader
from swapfeed.models.config import DaemonConfig
from swapfeed.pipeline.dispatcher import FanoutDispatcher
from swapfeed.pipeline.scheduler import PollScheduler
from swapfeed.storage.sqlite import SQLiteStateStore

log = logging.getLogger(__name__)


class SwapFeedDaemon:
    """Swap activity feed daemon.

    Polls every registered pool for Swapped events, fans each one out to the
    feeds of the actor's followers, and persists per-pool cursors so a restart
    resumes exactly where the last successful batch ended.
    """

    def __init__(self, cfg: DaemonConfig) -> None:
        self._cfg = cfg

        self.store = SQLiteStateStore(cfg.db_path, feed_retention=cfg.feed_retention)
        self.reader = JsonRpcLedgerReader(cfg.rpc_url, timeout=cfg.request_timeout)
        self._build_pipeline()

    def _build_pipeline(self) -> None:
        """(Re)build components that hold references to the store and reader."""
        cfg = self._cfg
        self.dispatcher = FanoutDispatcher(self.reader, self.store, self.store)
        self.scheduler = PollScheduler(
            reader=self.reader,
            dispatcher=self.dispatcher,
            cursors=self.store,
            pools=self.store,
            activity=self.store,
            poll_interval=cfg.poll_interval,
            max_concurrent=cfg.max_concurrent_pools,
            max_block_range=cfg.max_block_range,
            start_block_offset=cfg.start_block_offset,
            start_block=cfg.start_block,
        )
        self.feed_api = FeedService(self.store, self.store, self.store, reserves=self.reader)

    async def setup(self) -> None:
        """Open the store, register pools and load cursors."""
        await self.store.initialize()

        for pool in self._cfg.pools:
            await self.store.save_pool(pool)

        if self._cfg.factory_address:
            try:
                discovered = await self.reader.discover_pools(self._cfg.factory_address)
            except Exception as exc:
                log.error("Pool discovery via factory %s failed: %s", self._cfg.factory_address, exc)
            else:
                for pool in discovered:
                    await self.store.save_pool(pool)
                log.info("Discovered %d pools from factory", len(discovered))

        pools = await self.store.get_pools()
        cursors = await self.store.get_cursors()
        log.info("Tracking %d pools", len(pools))
        for pool in pools:
            if pool.address in cursors:
                log.info("  %s: resuming after block %d", pool.address, cursors[pool.address])
            else:
                log.info("  %s: no cursor yet", pool.address)

    async def start(self) -> None:
        """Initialize components and run the scheduler until stopped."""
        log.info("Starting swapfeed daemon")
        log.info("  RPC: %s", self._cfg.rpc_url)
        log.info("  DB: %s", self._cfg.db_path)
        log.info("  Interval: %ss, concurrency: %d",
                 self._cfg.poll_interval, self._cfg.max_concurrent_pools)

        started = False
        try:
            await self.setup()
            await self.store.log_activity("daemon_started", "Daemon started")
            started = True
            await self.scheduler.run_forever()
        except asyncio.CancelledError:
            log.info("Scheduler cancelled; in-flight batches will be retried next run")
            raise
        finally:
            if started:
                await self.store.log_activity("daemon_stopped", "Daemon stopped")
            await self.reader.close()
            await self.store.close()
            log.info("Daemon shut down cleanly")

    async def stop(self) -> None:
        """Signal the daemon to stop gracefully."""
        log.info("Stop requested")
        self.scheduler.stop()


async def run_daemon(cfg: DaemonConfig) -> None:
    """Entry point for running the daemon."""
    daemon = SwapFeedDaemon(cfg)

    loop = asyncio.get_running_loop()

    def _signal_handler():
        asyncio.ensure_future(daemon.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    await daemon.start()
