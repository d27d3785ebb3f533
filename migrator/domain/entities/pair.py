from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Asset:
    address: str
    decimals: int
    symbol: str = ""


@dataclass(frozen=True)
class TokenPair:
    token0: Asset
    token1: Asset

    def __post_init__(self) -> None:
        if self.token0.address.lower() >= self.token1.address.lower():
            raise ValueError("token0 must sort before token1.")


@dataclass(frozen=True)
class PoolReserves:
    reserve0: int
    reserve1: int
    total_supply: int


@dataclass(frozen=True)
class ValuedAmounts:
    amount0: int
    amount1: int
