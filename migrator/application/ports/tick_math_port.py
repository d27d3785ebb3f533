from __future__ import annotations

from fractions import Fraction
from typing import Protocol

from migrator.domain.entities.position import PoolPriceState, ProjectedPosition


class TickMathPort(Protocol):
    def price_to_tick(self, price: Fraction) -> int:
        ...

    def sqrt_ratio_at_tick(self, tick: int) -> int:
        ...

    def project_amounts(
        self,
        *,
        price_state: PoolPriceState,
        tick_lower: int,
        tick_upper: int,
        amount0_max: int,
        amount1_max: int,
    ) -> ProjectedPosition:
        ...
