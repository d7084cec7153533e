"""EVM JSON-RPC ledger reader - fetches pool logs, block times and reserves."""

from __future__ import annotations

import logging
from collections import OrderedDict

import httpx
from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from swapfeed.chain.decoder import SWAPPED_TOPIC
from swapfeed.errors import TransientFetchError
from swapfeed.interfaces.ledger import SWAPPED
from swapfeed.models.events import Pool, RawEvent

log = logging.getLogger(__name__)

_EVENT_TOPICS = {
    SWAPPED: SWAPPED_TOPIC,
}


def _selector(signature: str) -> str:
    return "0x" + Web3.keccak(text=signature)[:4].hex().removeprefix("0x")


_SEL_GET_RESERVES = _selector("getReserves()")
_SEL_ALL_PAIRS_LENGTH = _selector("allPairsLength()")
_SEL_ALL_PAIRS = _selector("allPairs(uint256)")
_SEL_TOKEN_A = _selector("tokenA()")
_SEL_TOKEN_B = _selector("tokenB()")


def _to_int(value: object) -> int:
    if isinstance(value, int):
        return value
    return int(str(value), 16)


def _parse_log(item: dict) -> RawEvent:
    return RawEvent(
        address=str(item["address"]).lower(),
        topics=tuple(str(t).lower() for t in item.get("topics", [])),
        data=str(item.get("data", "0x")),
        block_number=_to_int(item["blockNumber"]),
        log_index=_to_int(item["logIndex"]),
        tx_hash=str(item["transactionHash"]).lower(),
    )


class JsonRpcLedgerReader:
    """LedgerReader over a node's JSON-RPC endpoint.

    Every failed call (transport error, HTTP status, RPC error object or an
    unparseable response) raises TransientFetchError. Nothing is retried
    here; the scheduler retries the pool on its next tick with the same cursor.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
        timestamp_cache_size: int = 4096,
    ) -> None:
        self._rpc_url = rpc_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout, connect=5))
        self._request_id = 0
        self._timestamps: OrderedDict[int, int] = OrderedDict()
        self._timestamp_cache_size = timestamp_cache_size

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _call(self, method: str, params: list) -> object:
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params}
        try:
            resp = await self._client.post(self._rpc_url, json=payload)
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise TransientFetchError(f"{method} failed: {exc}") from exc

        if not isinstance(body, dict):
            raise TransientFetchError(f"{method} returned a non-object response")
        if body.get("error"):
            err = body["error"]
            message = err.get("message", err) if isinstance(err, dict) else err
            raise TransientFetchError(f"{method} RPC error: {message}")
        return body.get("result")

    # ── LedgerReader ───────────────────────────────────────

    async def get_chain_head(self) -> int:
        result = await self._call("eth_blockNumber", [])
        try:
            return _to_int(result)
        except (TypeError, ValueError) as exc:
            raise TransientFetchError(f"bad eth_blockNumber result: {result!r}") from exc

    async def get_logs(
        self, pool_address: str, event_kind: str, from_block: int, to_block: int,
    ) -> list[RawEvent]:
        topic = _EVENT_TOPICS.get(event_kind)
        if topic is None:
            raise ValueError(f"unsupported event kind: {event_kind}")

        result = await self._call("eth_getLogs", [{
            "address": pool_address,
            "fromBlock": hex(from_block),
            "toBlock": hex(to_block),
            "topics": [topic],
        }])
        if not isinstance(result, list):
            raise TransientFetchError(f"bad eth_getLogs result for {pool_address}")

        events: list[RawEvent] = []
        for item in result:
            if item.get("removed"):
                continue
            try:
                events.append(_parse_log(item))
            except (KeyError, TypeError, ValueError) as exc:
                raise TransientFetchError(f"incomplete log in eth_getLogs result: {exc}") from exc

        log.debug(
            "Fetched %d %s logs for %s in [%d, %d]",
            len(events), event_kind, pool_address, from_block, to_block,
        )
        return events

    async def get_block_timestamp(self, block_number: int) -> int:
        cached = self._timestamps.get(block_number)
        if cached is not None:
            return cached

        result = await self._call("eth_getBlockByNumber", [hex(block_number), False])
        if not isinstance(result, dict) or "timestamp" not in result:
            raise TransientFetchError(f"block {block_number} not available")
        timestamp = _to_int(result["timestamp"])

        self._timestamps[block_number] = timestamp
        if len(self._timestamps) > self._timestamp_cache_size:
            self._timestamps.popitem(last=False)
        return timestamp

    # ── Contract reads ─────────────────────────────────────

    async def _eth_call(self, to: str, data: str) -> bytes:
        result = await self._call("eth_call", [{"to": to, "data": data}, "latest"])
        try:
            return bytes.fromhex(str(result).removeprefix("0x"))
        except ValueError as exc:
            raise TransientFetchError(f"bad eth_call result from {to}: {result!r}") from exc

    async def _call_words(self, to: str, data: str, types: list[str]) -> tuple:
        raw = await self._eth_call(to, data)
        try:
            return decode(types, raw[: 32 * len(types)])
        except DecodingError as exc:
            raise TransientFetchError(f"cannot decode eth_call result from {to}: {exc}") from exc

    async def get_reserves(self, pool_address: str) -> tuple[int, int]:
        """(reserve_a, reserve_b) in the pool's canonical asset order."""
        reserve_a, reserve_b = await self._call_words(
            pool_address, _SEL_GET_RESERVES, ["uint256", "uint256"],
        )
        return int(reserve_a), int(reserve_b)

    async def discover_pools(self, factory_address: str) -> list[Pool]:
        """Enumerate every pair created by the factory."""
        (count,) = await self._call_words(factory_address, _SEL_ALL_PAIRS_LENGTH, ["uint256"])
        log.info("Factory %s reports %d pairs", factory_address, count)

        pools: list[Pool] = []
        for i in range(int(count)):
            call_data = _SEL_ALL_PAIRS + encode(["uint256"], [i]).hex()
            (address,) = await self._call_words(factory_address, call_data, ["address"])
            (asset_a,) = await self._call_words(address, _SEL_TOKEN_A, ["address"])
            (asset_b,) = await self._call_words(address, _SEL_TOKEN_B, ["address"])
            pools.append(Pool(address=address, asset_a=asset_a, asset_b=asset_b))
        return pools
