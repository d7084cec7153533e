"""Test 2: ledger reader and one scheduler tick against a live node."""

from __future__ import annotations

import pytest

from swapfeed.interfaces.ledger import SWAPPED
from swapfeed.storage.memory import InMemoryStateStore

from tests.conftest import make_scheduler
from tests.factories import make_pool

# No contract is deployed here, so no Swapped logs exist
EMPTY_POOL = "0x" + "5f" * 20


@pytest.mark.rpc
async def test_head_and_timestamp(live_reader):
    head = await live_reader.get_chain_head()
    assert head >= 0
    timestamp = await live_reader.get_block_timestamp(head)
    assert timestamp > 0


@pytest.mark.rpc
async def test_get_logs_for_empty_address(live_reader):
    head = await live_reader.get_chain_head()
    logs = await live_reader.get_logs(EMPTY_POOL, SWAPPED, max(head - 10, 0), head)
    assert logs == []


@pytest.mark.rpc
async def test_tick_advances_cursor_to_head(live_reader):
    store = InMemoryStateStore()
    await store.save_pool(make_pool(EMPTY_POOL))
    scheduler = make_scheduler(live_reader, store, start_block_offset=3)

    report = await scheduler.run_tick()

    result = report.for_pool(EMPTY_POOL)
    assert result.status in ("advanced", "idle")
    assert await store.get_cursor(EMPTY_POOL) is not None
