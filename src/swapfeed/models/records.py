"""Internal record types for feed persistence and pipeline results."""

from __future__ import annotations

from dataclasses import dataclass, field

from swapfeed.models.events import SwapEvent


@dataclass
class FeedEntry:
    """A swap materialized into one subscriber's feed."""

    subscriber: str
    pool: str
    actor: str
    input_asset: str
    output_asset: str
    input_amount: int
    output_amount: int
    block_number: int
    log_index: int
    block_timestamp: int
    tx_hash: str
    kind: str = "swap"
    created_at: str = ""

    @property
    def key(self) -> tuple[str, str, str, int]:
        """Idempotency key: at most one entry per key exists."""
        return (self.subscriber, self.pool, self.tx_hash, self.log_index)

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.block_number, self.log_index)

    @classmethod
    def from_event(cls, subscriber: str, event: SwapEvent) -> FeedEntry:
        return cls(
            subscriber=subscriber.lower(),
            pool=event.pool,
            actor=event.actor,
            input_asset=event.input_asset,
            output_asset=event.output_asset,
            input_amount=event.input_amount,
            output_amount=event.output_amount,
            block_number=event.block_number,
            log_index=event.log_index,
            block_timestamp=event.block_timestamp,
            tx_hash=event.tx_hash,
        )

    def to_dict(self) -> dict:
        # Amounts as strings: uint256 does not survive JSON numbers
        return {
            "type": self.kind,
            "subscriber": self.subscriber,
            "pool": self.pool,
            "actor": self.actor,
            "tokenIn": self.input_asset,
            "tokenOut": self.output_asset,
            "amountIn": str(self.input_amount),
            "amountOut": str(self.output_amount),
            "blockNumber": self.block_number,
            "logIndex": self.log_index,
            "timestamp": self.block_timestamp,
            "txHash": self.tx_hash,
        }


@dataclass
class DispatchResult:
    """Outcome of fanning out one batch of logs for a pool."""

    pool: str
    from_block: int
    to_block: int
    events: int = 0  # decoded swap events
    delivered: int = 0  # new feed entries written
    duplicates: int = 0  # idempotent no-ops
    discarded: int = 0  # events whose actor has no followers
    malformed: int = 0  # undecodable logs skipped


@dataclass
class PoolTickResult:
    """Result of one scheduler pass over a single pool."""

    pool: str
    status: str  # "advanced", "idle", "failed"
    from_block: int | None = None
    to_block: int | None = None
    error: str | None = None
    dispatch: list[DispatchResult] = field(default_factory=list)


@dataclass
class TickReport:
    """Summary of one scheduler tick across all registered pools."""

    started_at: str
    completed_at: str
    results: list[PoolTickResult] = field(default_factory=list)
    duration_ms: int = 0

    def _count(self, status: str) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def advanced(self) -> int:
        return self._count("advanced")

    @property
    def idle(self) -> int:
        return self._count("idle")

    @property
    def failed(self) -> int:
        return self._count("failed")

    def for_pool(self, pool: str) -> PoolTickResult | None:
        pool = pool.lower()
        for r in self.results:
            if r.pool == pool:
                return r
        return None


@dataclass
class ActivityRecord:
    """A single activity log entry."""

    id: int
    event_type: str
    pool: str | None
    message: str
    created_at: str
