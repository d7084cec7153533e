"""EVM chain adapters - JSON-RPC reader and Swapped event decoder."""

from swapfeed.chain.decoder import SWAPPED_TOPIC, decode_swap
from swapfeed.chain.reader import JsonRpcLedgerReader

__all__ = ["SWAPPED_TOPIC", "decode_swap", "JsonRpcLedgerReader"]
