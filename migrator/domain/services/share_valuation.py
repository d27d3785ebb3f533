from __future__ import annotations

from fractions import Fraction

from migrator.domain.entities.pair import PoolReserves, ValuedAmounts
from migrator.domain.exceptions import InsufficientSupplyError, ShareValuationInputError


def valuate(balance: int, reserves: PoolReserves) -> ValuedAmounts:
    """Pro-rata share of the pair reserves, floored like the pair's burn()."""
    if reserves.total_supply == 0:
        raise InsufficientSupplyError("Pair total supply is zero.")
    if min(balance, reserves.reserve0, reserves.reserve1, reserves.total_supply) < 0:
        raise ShareValuationInputError("Balance, reserves and total supply must be non-negative.")
    if balance > reserves.total_supply:
        raise ShareValuationInputError("Balance exceeds total supply.")

    return ValuedAmounts(
        amount0=balance * reserves.reserve0 // reserves.total_supply,
        amount1=balance * reserves.reserve1 // reserves.total_supply,
    )


def source_spot_price(reserves: PoolReserves) -> Fraction | None:
    # token1 per token0, raw units
    if reserves.reserve0 <= 0 or reserves.reserve1 < 0:
        return None
    return Fraction(reserves.reserve1, reserves.reserve0)
