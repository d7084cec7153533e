"""Synthetic log and event factories for testing."""

from __future__ import annotations

from eth_abi import encode

from swapfeed.chain.decoder import SWAPPED_TOPIC
from swapfeed.models.events import Pool, RawEvent, SwapEvent

POOL_1 = "0x" + "a1" * 20
POOL_2 = "0x" + "a2" * 20
POOL_3 = "0x" + "a3" * 20

TOKEN_A = "0x" + "0a" * 20
TOKEN_B = "0x" + "0b" * 20

ACTOR_X = "0x" + "11" * 20
ACTOR_Y = "0x" + "22" * 20

SUB_A = "0x" + "aa" * 20
SUB_B = "0x" + "bb" * 20
SUB_C = "0x" + "cc" * 20


def make_pool(address: str = POOL_1, asset_a: str = TOKEN_A, asset_b: str = TOKEN_B) -> Pool:
    return Pool(address=address, asset_a=asset_a, asset_b=asset_b)


def tx_hash(n: int) -> str:
    return "0x" + f"{n:064x}"


def _address_topic(address: str) -> str:
    return "0x" + address.lower().removeprefix("0x").rjust(64, "0")


def make_raw_swap(
    pool: str = POOL_1,
    actor: str = ACTOR_X,
    token_in: str = TOKEN_A,
    token_out: str = TOKEN_B,
    amount_in: int = 500,
    amount_out: int = 493,
    block_number: int = 42,
    log_index: int = 0,
    tx: str | None = None,
    indexed_actor: bool = False,
) -> RawEvent:
    """Build a Swapped log exactly as a node would return it."""
    if indexed_actor:
        topics = (SWAPPED_TOPIC, _address_topic(actor))
        data = encode(
            ["address", "address", "uint256", "uint256"],
            [token_in, token_out, amount_in, amount_out],
        )
    else:
        topics = (SWAPPED_TOPIC,)
        data = encode(
            ["address", "address", "address", "uint256", "uint256"],
            [actor, token_in, token_out, amount_in, amount_out],
        )
    return RawEvent(
        address=pool,
        topics=topics,
        data="0x" + data.hex(),
        block_number=block_number,
        log_index=log_index,
        tx_hash=tx or tx_hash(block_number * 1000 + log_index),
    )


def make_malformed_log(
    pool: str = POOL_1, block_number: int = 42, log_index: int = 0,
) -> RawEvent:
    """A Swapped-topic log whose data is truncated."""
    return RawEvent(
        address=pool,
        topics=(SWAPPED_TOPIC,),
        data="0x" + "00" * 40,
        block_number=block_number,
        log_index=log_index,
        tx_hash=tx_hash(900_000 + block_number * 1000 + log_index),
    )


def make_swap_event(
    pool: str = POOL_1,
    actor: str = ACTOR_X,
    amount_in: int = 500,
    amount_out: int = 493,
    block_number: int = 42,
    log_index: int = 0,
    tx: str = "0xabc",
    block_timestamp: int = 1_700_000_000,
) -> SwapEvent:
    return SwapEvent(
        pool=pool,
        actor=actor,
        input_asset=TOKEN_A,
        output_asset=TOKEN_B,
        input_amount=amount_in,
        output_amount=amount_out,
        block_number=block_number,
        log_index=log_index,
        tx_hash=tx,
        block_timestamp=block_timestamp,
    )
