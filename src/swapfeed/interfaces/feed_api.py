"""FeedQueryAPI protocol - read surface for presentation layers."""

from __future__ import annotations

from typing import Protocol

from swapfeed.models.events import Pool
from swapfeed.models.records import FeedEntry


class FeedQueryAPI(Protocol):
    """The interface between the daemon backend and any UI.

    Read-only: no method here changes feed or cursor state.
    """

    async def get_feed(
        self, subscriber: str, limit: int | None = None, offset: int = 0,
    ) -> list[FeedEntry]:
        """A subscriber's feed, oldest first."""
        ...

    async def get_cursor(self, pool: str) -> int | None:
        ...

    async def list_pools(self) -> list[Pool]:
        ...

    def quote(
        self,
        input_reserve: int,
        output_reserve: int,
        input_amount: int,
        fee_numerator: int = 997,
        fee_denominator: int = 1000,
    ) -> int:
        """Expected output for a hypothetical swap. Raises PricingError."""
        ...

    async def quote_pool(self, pool: str, input_asset: str, input_amount: int) -> int:
        """Quote against a pool's live reserves."""
        ...
