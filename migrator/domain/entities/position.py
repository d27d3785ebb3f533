from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from fractions import Fraction


MIN_TICK = -887272
MAX_TICK = 887272


class FeeTier(int, Enum):
    LOW = 500
    MEDIUM = 3000
    HIGH = 10000

    @property
    def tick_spacing(self) -> int:
        return _TICK_SPACINGS[self]

    @property
    def min_usable_tick(self) -> int:
        return -((-MIN_TICK) // self.tick_spacing) * self.tick_spacing

    @property
    def max_usable_tick(self) -> int:
        return (MAX_TICK // self.tick_spacing) * self.tick_spacing


_TICK_SPACINGS = {
    FeeTier.LOW: 10,
    FeeTier.MEDIUM: 60,
    FeeTier.HIGH: 200,
}


@dataclass(frozen=True)
class PriceRange:
    """Tick bounds chosen by the range picker. Both None selects the full range."""

    tick_lower: int | None = None
    tick_upper: int | None = None

    @property
    def is_full_range(self) -> bool:
        return self.tick_lower is None and self.tick_upper is None

    @property
    def is_invalid(self) -> bool:
        if self.is_full_range:
            return False
        if self.tick_lower is None or self.tick_upper is None:
            return True
        return self.tick_lower >= self.tick_upper

    def resolve(self, fee_tier: FeeTier) -> tuple[int, int]:
        if self.is_full_range:
            return fee_tier.min_usable_tick, fee_tier.max_usable_tick
        return self.tick_lower, self.tick_upper  # type: ignore[return-value]


class DestinationPoolStatus(str, Enum):
    NOT_EXISTS = "not_exists"
    EXISTS_UNINITIALIZED = "exists_uninitialized"
    EXISTS = "exists"


@dataclass(frozen=True)
class PoolPriceState:
    tick_current: int
    sqrt_price_x96: int

    @property
    def spot_price(self) -> Fraction:
        return Fraction(self.sqrt_price_x96 * self.sqrt_price_x96, 2**192)


@dataclass(frozen=True)
class DestinationPoolState:
    status: DestinationPoolStatus
    price: PoolPriceState | None = None

    @classmethod
    def not_exists(cls) -> "DestinationPoolState":
        return cls(status=DestinationPoolStatus.NOT_EXISTS)

    @classmethod
    def uninitialized(cls) -> "DestinationPoolState":
        return cls(status=DestinationPoolStatus.EXISTS_UNINITIALIZED)

    @classmethod
    def with_price(cls, *, tick_current: int, sqrt_price_x96: int) -> "DestinationPoolState":
        return cls(
            status=DestinationPoolStatus.EXISTS,
            price=PoolPriceState(tick_current=tick_current, sqrt_price_x96=sqrt_price_x96),
        )

    @property
    def needs_initialization(self) -> bool:
        return self.status != DestinationPoolStatus.EXISTS

    @property
    def spot_price(self) -> Fraction | None:
        if self.status != DestinationPoolStatus.EXISTS or self.price is None:
            return None
        return self.price.spot_price


@dataclass(frozen=True)
class ProjectedPosition:
    amount0: int
    amount1: int


@dataclass(frozen=True)
class Projection:
    position: ProjectedPosition
    price_state: PoolPriceState
    tick_lower: int
    tick_upper: int
    out_of_range: bool


@dataclass(frozen=True)
class MinimumAmounts:
    amount0_min: int
    amount1_min: int


@dataclass(frozen=True)
class RefundAmounts:
    refund0: int
    refund1: int


@dataclass(frozen=True)
class PriceDivergence:
    percent: Fraction
    is_large: bool
