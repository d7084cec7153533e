"""LedgerReader protocol - stateless adapter around the chain node."""

from __future__ import annotations

from typing import Protocol

from swapfeed.models.events import RawEvent

SWAPPED = "Swapped"


class LedgerReader(Protocol):
    """Reads event logs and block metadata from the chain.

    Failures raise TransientFetchError. Implementations do not retry; the
    scheduler retries on its next tick.
    """

    async def get_logs(
        self, pool_address: str, event_kind: str, from_block: int, to_block: int,
    ) -> list[RawEvent]:
        """Logs of ``event_kind`` emitted by ``pool_address`` in [from_block, to_block]."""
        ...

    async def get_block_timestamp(self, block_number: int) -> int:
        ...

    async def get_chain_head(self) -> int:
        ...
