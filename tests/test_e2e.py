"""End-to-end: daemon wiring, one tick from chain log to subscriber feed and quote."""

from __future__ import annotations

import pytest

from swapfeed.errors import InvalidReserves

from tests.factories import (
    ACTOR_X,
    ACTOR_Y,
    POOL_1,
    POOL_2,
    SUB_A,
    SUB_B,
    TOKEN_A,
    TOKEN_B,
    make_raw_swap,
)


# ── Test 1: a followed swap reaches the feed ──────────────────────


async def test_followed_swap_lands_in_feed(daemon, store, reader):
    """S follows X; X swaps 500 TOKEN_A in block 42; one tick later S sees it."""
    await store.set_cursor(POOL_1, 41)
    await store.set_cursor(POOL_2, 41)
    await store.follow(SUB_A, ACTOR_X)
    reader.head = 42
    reader.add(make_raw_swap(pool=POOL_1, actor=ACTOR_X, amount_in=500, amount_out=493,
                             block_number=42, tx="0xabc"))

    report = await daemon.scheduler.run_tick()

    assert report.failed == 0
    feed = await daemon.feed_api.get_feed(SUB_A)
    assert len(feed) == 1
    entry = feed[0]
    assert entry.tx_hash == "0xabc"
    assert entry.actor == ACTOR_X
    assert entry.input_asset == TOKEN_A
    assert entry.output_asset == TOKEN_B
    assert entry.input_amount == 500
    assert entry.output_amount == 493
    assert entry.to_dict()["amountIn"] == "500"
    assert await daemon.feed_api.get_cursor(POOL_1) == 42
    assert await daemon.feed_api.get_cursor(POOL_2) == 42


# ── Test 2: unfollowed actors never reach anyone ──────────────────


async def test_unfollowed_actor_ignored(daemon, store, reader):
    await store.set_cursor(POOL_1, 40)
    await store.follow(SUB_A, ACTOR_X)
    reader.head = 45
    reader.add(make_raw_swap(actor=ACTOR_Y, block_number=43))

    await daemon.scheduler.run_tick()

    assert await store.count_entries() == 0
    assert await store.get_cursor(POOL_1) == 45


# ── Test 3: restart replays nothing twice ─────────────────────────


async def test_replay_after_cursor_loss_is_idempotent(daemon, store, reader):
    """Even if a range is processed twice, each subscriber sees each swap once."""
    await store.set_cursor(POOL_1, 40)
    await store.follow(SUB_A, ACTOR_X)
    await store.follow(SUB_B, ACTOR_X)
    reader.head = 45
    reader.add(make_raw_swap(block_number=43, tx="0xdef"))

    await daemon.scheduler.run_tick()
    result = await daemon.dispatcher.dispatch(POOL_1, reader.logs[POOL_1], 41, 45)

    assert result.duplicates == 2
    assert len(await daemon.feed_api.get_feed(SUB_A)) == 1
    assert len(await daemon.feed_api.get_feed(SUB_B)) == 1


# ── Test 4: quotes against live reserves ──────────────────────────


async def test_quote_pool_against_reserves(daemon, reader):
    reader.reserves[POOL_1] = (50_000, 50_000)
    assert await daemon.feed_api.quote_pool(POOL_1, TOKEN_A, 500) == 493


async def test_quote_pool_orientation(daemon, reader):
    reader.reserves[POOL_1] = (100_000, 200_000)
    assert await daemon.feed_api.quote_pool(POOL_1, TOKEN_A, 1_000) == 1974
    assert await daemon.feed_api.quote_pool(POOL_1, TOKEN_B, 1_000) == daemon.feed_api.quote(
        200_000, 100_000, 1_000,
    )


async def test_quote_unknown_pool(daemon):
    with pytest.raises(InvalidReserves):
        await daemon.feed_api.quote_pool("0x" + "ee" * 20, TOKEN_A, 1)


async def test_feed_api_rejects_negative_paging(daemon):
    with pytest.raises(ValueError):
        await daemon.feed_api.get_feed(SUB_A, limit=-1)
    with pytest.raises(ValueError):
        await daemon.feed_api.get_feed(SUB_A, offset=-1)


async def test_list_pools(daemon):
    pools = await daemon.feed_api.list_pools()
    assert sorted(p.address for p in pools) == [POOL_1, POOL_2]
