"""Shared fixtures for swapfeed tests."""

from __future__ import annotations

import pytest
from pytest_metadata.plugin import metadata_key

from swapfeed.daemon import SwapFeedDaemon
from swapfeed.models.config import DaemonConfig
from swapfeed.pipeline.dispatcher import FanoutDispatcher
from swapfeed.pipeline.scheduler import PollScheduler
from swapfeed.storage.memory import InMemoryStateStore
from swapfeed.storage.sqlite import SQLiteStateStore

from tests.factories import POOL_1, POOL_2, make_pool
from tests.mocks import MockLedgerReader


def pytest_configure(config):
    """Add pipeline settings to the report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Ledger"] = "MockLedgerReader (no live node)"
    meta["Store"] = "SQLite :memory: / InMemoryStateStore"


def make_test_config(**overrides) -> DaemonConfig:
    """Build a DaemonConfig suitable for testing."""
    defaults = dict(
        poll_interval=1,
        max_concurrent_pools=2,
        max_block_range=0,
        start_block_offset=5,
        rpc_url="http://127.0.0.1:8545",
        db_path=":memory:",
        pools=[make_pool(POOL_1), make_pool(POOL_2)],
    )
    defaults.update(overrides)
    return DaemonConfig(**defaults)


def make_scheduler(reader, store, feeds=None, **kwargs) -> PollScheduler:
    dispatcher = FanoutDispatcher(reader, store, feeds or store)
    kwargs.setdefault("poll_interval", 0.01)
    kwargs.setdefault("max_concurrent", 2)
    return PollScheduler(
        reader=reader,
        dispatcher=dispatcher,
        cursors=store,
        pools=store,
        activity=store,
        **kwargs,
    )


@pytest.fixture
def test_config():
    """Default DaemonConfig for tests."""
    return make_test_config()


@pytest.fixture
async def store():
    """Initialized in-memory SQLiteStateStore."""
    s = SQLiteStateStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture(params=["sqlite", "memory"])
async def any_store(request):
    """Each store implementation in turn."""
    if request.param == "sqlite":
        s = SQLiteStateStore(":memory:")
    else:
        s = InMemoryStateStore()
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def reader():
    return MockLedgerReader(head=100)


@pytest.fixture
def dispatcher(reader, store):
    return FanoutDispatcher(reader, store, store)


@pytest.fixture
async def daemon(test_config, store, reader):
    """SwapFeedDaemon with the mock reader and in-memory store swapped in."""
    d = SwapFeedDaemon(test_config)
    await d.reader.close()
    d.store = store
    d.reader = reader
    d._build_pipeline()
    for pool in test_config.pools:
        await store.save_pool(pool)
    return d
