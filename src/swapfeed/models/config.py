"""Configuration models for the daemon."""

from __future__ import annotations

from dataclasses import dataclass, field

from swapfeed.models.events import Pool


@dataclass
class DaemonConfig:
    """Complete daemon configuration."""

    # Daemon
    poll_interval: int = 10  # seconds between scheduler ticks
    max_concurrent_pools: int = 4
    max_block_range: int = 0  # 0 = fetch cursor+1..head in one request
    start_block_offset: int = 5  # blocks behind head for a pool with no cursor
    log_level: str = "info"

    # Chain
    rpc_url: str = "http://127.0.0.1:8545"
    factory_address: str = ""  # pools are discovered from the factory when set
    request_timeout: float = 10.0  # seconds per JSON-RPC call
    start_block: int | None = None  # overrides start_block_offset

    # Storage
    db_path: str = "~/.swapfeed/state.db"
    feed_retention: int = 0  # latest N entries per subscriber, 0 = unbounded

    # Statically registered pools
    pools: list[Pool] = field(default_factory=list)
