"""Chain-side models: pools, undecoded logs and decoded swap events."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Pool:
    """A trading-pair contract holding two asset reserves."""

    address: str
    asset_a: str
    asset_b: str

    def __post_init__(self) -> None:
        # Frozen: normalize through object.__setattr__
        object.__setattr__(self, "address", self.address.lower())
        object.__setattr__(self, "asset_a", self.asset_a.lower())
        object.__setattr__(self, "asset_b", self.asset_b.lower())

    def canonical_assets(self) -> tuple[str, str]:
        """Asset pair in lexicographic order (the order reserves are stored in)."""
        return tuple(sorted((self.asset_a, self.asset_b)))  # type: ignore[return-value]

    def has_asset(self, asset: str) -> bool:
        return asset.lower() in (self.asset_a, self.asset_b)


@dataclass(frozen=True)
class RawEvent:
    """An undecoded contract log as returned by a ledger reader."""

    address: str
    topics: tuple[str, ...]
    data: str  # 0x-prefixed hex
    block_number: int
    log_index: int
    tx_hash: str

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.block_number, self.log_index)


@dataclass(frozen=True)
class SwapEvent:
    """One executed trade (Swapped topic)."""

    pool: str
    actor: str
    input_asset: str
    output_asset: str
    input_amount: int  # smallest token unit
    output_amount: int
    block_number: int
    log_index: int
    tx_hash: str
    block_timestamp: int = 0  # unix seconds
