"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from swapfeed.models.config import DaemonConfig
from swapfeed.models.events import Pool


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "SWAPFEED_",
) -> DaemonConfig:
    """Load daemon configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (SWAPFEED_RPC_URL, etc.)
        2. TOML config file
        3. Defaults from DaemonConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = DaemonConfig()

    # ── Daemon section ─────────────────────────────────────
    daemon = raw.get("daemon", {})
    if v := daemon.get("poll_interval"):
        cfg.poll_interval = int(v)
    if v := daemon.get("max_concurrent_pools"):
        cfg.max_concurrent_pools = int(v)
    if (v := daemon.get("max_block_range")) is not None:
        cfg.max_block_range = int(v)
    if (v := daemon.get("start_block_offset")) is not None:
        cfg.start_block_offset = int(v)
    if v := daemon.get("log_level"):
        cfg.log_level = str(v)

    # ── Chain section ──────────────────────────────────────
    chain = raw.get("chain", {})
    if v := chain.get("rpc_url"):
        cfg.rpc_url = str(v)
    if v := chain.get("factory_address"):
        cfg.factory_address = str(v)
    if v := chain.get("request_timeout"):
        cfg.request_timeout = float(v)
    if (v := chain.get("start_block")) is not None:
        cfg.start_block = int(v)

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if v := storage.get("db_path"):
        cfg.db_path = str(v)
    if (v := storage.get("feed_retention")) is not None:
        cfg.feed_retention = int(v)

    # ── Pools ──────────────────────────────────────────────
    for entry in raw.get("pools", []):
        try:
            cfg.pools.append(Pool(
                address=str(entry["address"]),
                asset_a=str(entry["asset_a"]),
                asset_b=str(entry["asset_b"]),
            ))
        except KeyError as exc:
            raise ValueError(f"pool entry is missing {exc}: {entry!r}") from exc

    # ── Environment variable overrides (highest priority) ──
    if rpc := os.environ.get(f"{env_prefix}RPC_URL"):
        cfg.rpc_url = rpc
    if factory := os.environ.get(f"{env_prefix}FACTORY_ADDRESS"):
        cfg.factory_address = factory
    if db_path := os.environ.get(f"{env_prefix}DB_PATH"):
        cfg.db_path = db_path
    if interval := os.environ.get(f"{env_prefix}POLL_INTERVAL"):
        cfg.poll_interval = int(interval)

    _validate(cfg)

    # Expand ~ in paths
    if cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())

    return cfg


def _validate(cfg: DaemonConfig) -> None:
    if cfg.poll_interval <= 0:
        raise ValueError(f"poll_interval must be positive, got {cfg.poll_interval}")
    if cfg.max_concurrent_pools < 1:
        raise ValueError(f"max_concurrent_pools must be at least 1, got {cfg.max_concurrent_pools}")
    if cfg.max_block_range < 0:
        raise ValueError(f"max_block_range must be >= 0, got {cfg.max_block_range}")
    if cfg.feed_retention < 0:
        raise ValueError(f"feed_retention must be >= 0, got {cfg.feed_retention}")
