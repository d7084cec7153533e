"""Constant-product quote engine.

All amounts are integers in the token's smallest unit. The final division
floors, matching the pool contract's integer division, so a quote equals what
the contract would pay out for the same reserves.
"""

from __future__ import annotations

from swapfeed.errors import InvalidAmount, InvalidReserves, PricingError
from swapfeed.models.events import Pool

DEFAULT_FEE_NUMERATOR = 997
DEFAULT_FEE_DENOMINATOR = 1000
BPS_DENOMINATOR = 10_000


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def quote(
    input_reserve: int,
    output_reserve: int,
    input_amount: int,
    fee_numerator: int = DEFAULT_FEE_NUMERATOR,
    fee_denominator: int = DEFAULT_FEE_DENOMINATOR,
) -> int:
    """Expected output amount for swapping ``input_amount`` into the pool.

    effective = input_amount * fee_numerator
    output    = effective * output_reserve // (input_reserve * fee_denominator + effective)

    Raises InvalidReserves unless both reserves are positive integers, and
    InvalidAmount unless ``input_amount`` is a non-negative integer.
    """
    if not (_is_int(input_reserve) and _is_int(output_reserve)):
        raise InvalidReserves(
            f"reserves must be integers, got {input_reserve!r} / {output_reserve!r}"
        )
    if input_reserve <= 0 or output_reserve <= 0:
        raise InvalidReserves(
            f"reserves must be positive, got {input_reserve} / {output_reserve}"
        )
    if not _is_int(input_amount):
        raise InvalidAmount(f"input amount must be an integer, got {input_amount!r}")
    if input_amount < 0:
        raise InvalidAmount(f"input amount must be non-negative, got {input_amount}")
    if not (_is_int(fee_numerator) and _is_int(fee_denominator)):
        raise PricingError("fee numerator and denominator must be integers")
    if fee_denominator <= 0 or not 0 <= fee_numerator <= fee_denominator:
        raise PricingError(f"invalid fee {fee_numerator}/{fee_denominator}")

    effective_input = input_amount * fee_numerator
    numerator = effective_input * output_reserve
    denominator = input_reserve * fee_denominator + effective_input
    return numerator // denominator


def orient_reserves(
    pool: Pool, reserve_a: int, reserve_b: int, input_asset: str,
) -> tuple[int, int]:
    """Map canonical-ordered reserves to (input_reserve, output_reserve).

    ``reserve_a`` belongs to the lexicographically smaller asset address and
    ``reserve_b`` to the larger, which is the order pools report them in.
    """
    low, high = pool.canonical_assets()
    asset = input_asset.lower()
    if asset == low:
        return reserve_a, reserve_b
    if asset == high:
        return reserve_b, reserve_a
    raise InvalidReserves(f"asset {input_asset} is not traded by pool {pool.address}")


def quote_for_pool(
    pool: Pool,
    reserve_a: int,
    reserve_b: int,
    input_asset: str,
    input_amount: int,
    fee_numerator: int = DEFAULT_FEE_NUMERATOR,
    fee_denominator: int = DEFAULT_FEE_DENOMINATOR,
) -> int:
    input_reserve, output_reserve = orient_reserves(pool, reserve_a, reserve_b, input_asset)
    return quote(input_reserve, output_reserve, input_amount, fee_numerator, fee_denominator)


def minimum_received(amount_out: int, slippage_bps: int) -> int:
    """Lower bound on output after allowing ``slippage_bps`` basis points of slippage."""
    if not _is_int(amount_out) or amount_out < 0:
        raise InvalidAmount(f"output amount must be a non-negative integer, got {amount_out!r}")
    if not _is_int(slippage_bps) or not 0 <= slippage_bps <= BPS_DENOMINATOR:
        raise InvalidAmount(f"slippage must be within 0..{BPS_DENOMINATOR} bps, got {slippage_bps!r}")
    return amount_out * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR
