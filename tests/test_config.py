"""Configuration loading: TOML file, env overrides and validation."""

from __future__ import annotations

import pytest

from swapfeed.config import load_config

from tests.factories import POOL_1, TOKEN_A, TOKEN_B


def _write(tmp_path, text: str):
    path = tmp_path / "swapfeed.toml"
    path.write_text(text)
    return path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("RPC_URL", "FACTORY_ADDRESS", "DB_PATH", "POLL_INTERVAL"):
        monkeypatch.delenv(f"SWAPFEED_{name}", raising=False)


def test_defaults_without_file():
    cfg = load_config(None)
    assert cfg.poll_interval == 10
    assert cfg.max_concurrent_pools == 4
    assert cfg.start_block_offset == 5
    assert cfg.max_block_range == 0
    assert cfg.pools == []
    assert not cfg.db_path.startswith("~")


def test_missing_file_uses_defaults(tmp_path):
    cfg = load_config(tmp_path / "absent.toml")
    assert cfg.rpc_url == "http://127.0.0.1:8545"


def test_full_file(tmp_path):
    path = _write(tmp_path, f"""
[daemon]
poll_interval = 3
max_concurrent_pools = 8
max_block_range = 2000
start_block_offset = 0

[chain]
rpc_url = "http://node:8545"
factory_address = "0xfactory"
request_timeout = 2.5
start_block = 1234

[storage]
db_path = ":memory:"
feed_retention = 500

[[pools]]
address = "{POOL_1.upper().replace('0X', '0x')}"
asset_a = "{TOKEN_B}"
asset_b = "{TOKEN_A}"
""")
    cfg = load_config(path)

    assert cfg.poll_interval == 3
    assert cfg.max_concurrent_pools == 8
    assert cfg.max_block_range == 2000
    assert cfg.start_block_offset == 0
    assert cfg.rpc_url == "http://node:8545"
    assert cfg.factory_address == "0xfactory"
    assert cfg.request_timeout == 2.5
    assert cfg.start_block == 1234
    assert cfg.db_path == ":memory:"
    assert cfg.feed_retention == 500
    assert len(cfg.pools) == 1
    assert cfg.pools[0].address == POOL_1
    assert cfg.pools[0].canonical_assets() == (TOKEN_A, TOKEN_B)


def test_env_overrides_file(tmp_path, monkeypatch):
    path = _write(tmp_path, '[chain]\nrpc_url = "http://file:8545"\n[daemon]\npoll_interval = 3\n')
    monkeypatch.setenv("SWAPFEED_RPC_URL", "http://env:8545")
    monkeypatch.setenv("SWAPFEED_POLL_INTERVAL", "7")
    monkeypatch.setenv("SWAPFEED_DB_PATH", ":memory:")
    monkeypatch.setenv("SWAPFEED_FACTORY_ADDRESS", "0xenvfactory")

    cfg = load_config(path)

    assert cfg.rpc_url == "http://env:8545"
    assert cfg.poll_interval == 7
    assert cfg.db_path == ":memory:"
    assert cfg.factory_address == "0xenvfactory"


def test_db_path_expanded(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    path = _write(tmp_path, '[storage]\ndb_path = "~/feeds/state.db"\n')
    cfg = load_config(path)
    assert cfg.db_path == str(tmp_path / "feeds" / "state.db")


def test_pool_entry_missing_key(tmp_path):
    path = _write(tmp_path, f'[[pools]]\naddress = "{POOL_1}"\nasset_a = "{TOKEN_A}"\n')
    with pytest.raises(ValueError, match="asset_b"):
        load_config(path)


@pytest.mark.parametrize("section,key,value", [
    ("daemon", "poll_interval", -1),
    ("daemon", "max_concurrent_pools", -2),
    ("daemon", "max_block_range", -1),
    ("storage", "feed_retention", -5),
])
def test_invalid_values_rejected(tmp_path, section, key, value):
    path = _write(tmp_path, f"[{section}]\n{key} = {value}\n")
    with pytest.raises(ValueError):
        load_config(path)
