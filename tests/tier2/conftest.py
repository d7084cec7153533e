"""Tier 2 fixtures: a real JSON-RPC node (anvil, hardhat, geth...)."""

from __future__ import annotations

import os

import httpx
import pytest

from swapfeed.chain.reader import JsonRpcLedgerReader

LIVE_RPC_URL = os.environ.get("SWAPFEED_RPC_URL", "http://127.0.0.1:8545")


@pytest.fixture(scope="session")
def node_available():
    """Check that a node answers eth_blockNumber. Skip tier2 tests if not."""
    try:
        r = httpx.post(
            LIVE_RPC_URL,
            json={"jsonrpc": "2.0", "id": 1, "method": "eth_blockNumber", "params": []},
            timeout=3,
        )
        if r.status_code == 200 and "result" in r.json():
            return True
        pytest.skip(f"No JSON-RPC node at {LIVE_RPC_URL}")
    except (httpx.ConnectError, httpx.TimeoutException):
        pytest.skip(f"No JSON-RPC node at {LIVE_RPC_URL}")


@pytest.fixture
async def live_reader(node_available):
    """Real JsonRpcLedgerReader for Tier 2 tests."""
    reader = JsonRpcLedgerReader(LIVE_RPC_URL, timeout=5)
    yield reader
    await reader.close()
