"""Feed and quote service - the read surface handed to presentation layers."""

from __future__ import annotations

import logging
from typing import Protocol

from swapfeed.errors import InvalidReserves
from swapfeed.interfaces.store import CursorStore, FeedStore, PoolRegistry
from swapfeed.models.events import Pool
from swapfeed.models.records import FeedEntry
from swapfeed.pricing.engine import (
    DEFAULT_FEE_DENOMINATOR,
    DEFAULT_FEE_NUMERATOR,
    quote,
    quote_for_pool,
)

log = logging.getLogger(__name__)


class ReserveReader(Protocol):
    async def get_reserves(self, pool_address: str) -> tuple[int, int]:
        ...


class FeedService:
    """Implements FeedQueryAPI over the stores and the pricing engine.

    Nothing here writes state; feeds are only ever appended by the dispatcher.
    """

    def __init__(
        self,
        feeds: FeedStore,
        cursors: CursorStore,
        pools: PoolRegistry,
        reserves: ReserveReader | None = None,
        fee_numerator: int = DEFAULT_FEE_NUMERATOR,
        fee_denominator: int = DEFAULT_FEE_DENOMINATOR,
    ) -> None:
        self._feeds = feeds
        self._cursors = cursors
        self._pools = pools
        self._reserves = reserves
        self._fee_numerator = fee_numerator
        self._fee_denominator = fee_denominator

    async def get_feed(
        self, subscriber: str, limit: int | None = None, offset: int = 0,
    ) -> list[FeedEntry]:
        if limit is not None and limit < 0:
            raise ValueError("limit must be non-negative")
        if offset < 0:
            raise ValueError("offset must be non-negative")
        return await self._feeds.get_feed(subscriber.lower(), limit=limit, offset=offset)

    async def get_cursor(self, pool: str) -> int | None:
        return await self._cursors.get_cursor(pool.lower())

    async def list_pools(self) -> list[Pool]:
        return await self._pools.get_pools()

    def quote(
        self,
        input_reserve: int,
        output_reserve: int,
        input_amount: int,
        fee_numerator: int | None = None,
        fee_denominator: int | None = None,
    ) -> int:
        return quote(
            input_reserve,
            output_reserve,
            input_amount,
            self._fee_numerator if fee_numerator is None else fee_numerator,
            self._fee_denominator if fee_denominator is None else fee_denominator,
        )

    async def quote_pool(self, pool: str, input_asset: str, input_amount: int) -> int:
        """Quote against live reserves, oriented by the pool's canonical asset order."""
        if self._reserves is None:
            raise RuntimeError("FeedService was built without a reserve reader")
        registered = await self._pools.get_pool(pool)
        if registered is None:
            raise InvalidReserves(f"unknown pool {pool}")
        reserve_a, reserve_b = await self._reserves.get_reserves(registered.address)
        log.debug("Pool %s reserves: %d / %d", registered.address, reserve_a, reserve_b)
        return quote_for_pool(
            registered, reserve_a, reserve_b, input_asset, input_amount,
            self._fee_numerator, self._fee_denominator,
        )
