"""Pricing engine - pure constant-product quotes."""

from swapfeed.pricing.engine import (
    DEFAULT_FEE_DENOMINATOR,
    DEFAULT_FEE_NUMERATOR,
    minimum_received,
    orient_reserves,
    quote,
    quote_for_pool,
)

__all__ = [
    "DEFAULT_FEE_DENOMINATOR", "DEFAULT_FEE_NUMERATOR",
    "minimum_received", "orient_reserves", "quote", "quote_for_pool",
]
