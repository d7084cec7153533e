"""Exception taxonomy for the swap feed pipeline and the pricing engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from swapfeed.models.events import RawEvent


class SwapFeedError(Exception):
    """Base class for all swapfeed errors."""


# ── Pipeline (recovered at the per-pool batch boundary) ───────────


class PipelineError(SwapFeedError):
    """An I/O-adjacent failure; the pool's batch is retried next tick."""


class TransientFetchError(PipelineError):
    """A ledger read failed (network, node or RPC error)."""


class MalformedEventError(PipelineError):
    """A log entry cannot be decoded into a SwapEvent.

    Skipped record by record; never fails the batch it belongs to.
    """

    def __init__(self, message: str, raw: RawEvent | None = None) -> None:
        super().__init__(message)
        self.raw = raw


class DispatchWriteError(PipelineError):
    """A feed or cursor write failed; the whole batch fails."""


# ── Pricing (surfaced synchronously to the caller) ────────────────


class PricingError(SwapFeedError, ValueError):
    """Quote input contract violated."""


class InvalidReserves(PricingError):
    """A reserve is not strictly positive, or the asset is not in the pool."""


class InvalidAmount(PricingError):
    """The input amount is negative or not an integer."""
