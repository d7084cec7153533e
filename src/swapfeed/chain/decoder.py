"""Decoder for the pool contract's Swapped event."""

from __future__ import annotations

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from swapfeed.errors import MalformedEventError
from swapfeed.models.events import RawEvent, SwapEvent

SWAPPED_SIGNATURE = "Swapped(address,address,address,uint256,uint256)"


def _hex_prefixed(value: bytes | str) -> str:
    text = value.hex() if isinstance(value, (bytes, bytearray)) else str(value)
    return "0x" + text.removeprefix("0x").lower()


SWAPPED_TOPIC = _hex_prefixed(Web3.keccak(text=SWAPPED_SIGNATURE))

# Emitted by pools as Swapped(user, inputToken, outputToken, inputAmount, outputAmount).
# Deployments differ on whether ``user`` is indexed, so both layouts are accepted.
_DATA_TYPES_UNINDEXED = ["address", "address", "address", "uint256", "uint256"]
_DATA_TYPES_INDEXED_USER = ["address", "address", "uint256", "uint256"]


def _topic_to_address(topic: str) -> str:
    body = topic.lower().removeprefix("0x")
    if len(body) != 64:
        raise ValueError(f"topic is not a 32-byte word: {topic}")
    int(body, 16)
    return "0x" + body[-40:]


def _data_bytes(data: str) -> bytes:
    return bytes.fromhex(data.removeprefix("0x"))


def decode_swap(raw: RawEvent, block_timestamp: int = 0) -> SwapEvent:
    """Decode a raw Swapped log. Raises MalformedEventError if it cannot."""
    if not raw.topics or raw.topics[0].lower() != SWAPPED_TOPIC:
        raise MalformedEventError(
            f"log {raw.tx_hash}:{raw.log_index} is not a Swapped event", raw,
        )

    indexed = raw.topics[1:]
    try:
        payload = _data_bytes(raw.data)
        if not indexed:
            user, token_in, token_out, amount_in, amount_out = decode(
                _DATA_TYPES_UNINDEXED, payload,
            )
        elif len(indexed) == 1:
            user = _topic_to_address(indexed[0])
            token_in, token_out, amount_in, amount_out = decode(
                _DATA_TYPES_INDEXED_USER, payload,
            )
        else:
            raise MalformedEventError(
                f"log {raw.tx_hash}:{raw.log_index} has {len(raw.topics)} topics", raw,
            )
    except (DecodingError, ValueError) as exc:
        raise MalformedEventError(
            f"cannot decode Swapped log {raw.tx_hash}:{raw.log_index}: {exc}", raw,
        ) from exc

    return SwapEvent(
        pool=raw.address.lower(),
        actor=str(user).lower(),
        input_asset=str(token_in).lower(),
        output_asset=str(token_out).lower(),
        input_amount=int(amount_in),
        output_amount=int(amount_out),
        block_number=raw.block_number,
        log_index=raw.log_index,
        tx_hash=raw.tx_hash.lower(),
        block_timestamp=block_timestamp,
    )
