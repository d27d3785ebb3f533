from __future__ import annotations

from fractions import Fraction
from typing import TYPE_CHECKING

from migrator.domain.entities.pair import ValuedAmounts
from migrator.domain.entities.position import (
    MAX_TICK,
    MIN_TICK,
    DestinationPoolState,
    DestinationPoolStatus,
    FeeTier,
    PoolPriceState,
    PriceRange,
    Projection,
)
from migrator.domain.exceptions import (
    InvalidRangeError,
    InvariantViolationError,
    MissingSourcePriceError,
)

if TYPE_CHECKING:
    from migrator.application.ports.tick_math_port import TickMathPort


def price_range_error(price_range: PriceRange, fee_tier: FeeTier) -> str | None:
    if price_range.is_full_range:
        return None
    if price_range.is_invalid:
        return "tick_lower must be lower than tick_upper."
    if price_range.tick_lower < MIN_TICK or price_range.tick_upper > MAX_TICK:
        return f"Ticks must be within [{MIN_TICK}, {MAX_TICK}]."
    spacing = fee_tier.tick_spacing
    if price_range.tick_lower % spacing or price_range.tick_upper % spacing:
        return f"Ticks must be multiples of the tick spacing {spacing}."
    return None


def resolve_price_state(
    destination: DestinationPoolState,
    source_spot_price: Fraction | None,
    tick_math: "TickMathPort",
) -> PoolPriceState:
    if destination.status == DestinationPoolStatus.EXISTS and destination.price is not None:
        return destination.price

    # New pool: seed it at the source venue's price, snapped to the tick grid.
    if source_spot_price is None or source_spot_price <= 0:
        raise MissingSourcePriceError("Source pool has no price to initialize the destination pool.")
    try:
        tick = tick_math.price_to_tick(source_spot_price)
    except ValueError as exc:
        raise MissingSourcePriceError(str(exc)) from exc
    return PoolPriceState(tick_current=tick, sqrt_price_x96=tick_math.sqrt_ratio_at_tick(tick))


def project_position(
    *,
    valued: ValuedAmounts,
    price_range: PriceRange,
    fee_tier: FeeTier,
    destination: DestinationPoolState,
    source_spot_price: Fraction | None,
    tick_math: "TickMathPort",
) -> Projection:
    range_error = price_range_error(price_range, fee_tier)
    if range_error is not None:
        raise InvalidRangeError(range_error)

    tick_lower, tick_upper = price_range.resolve(fee_tier)
    price_state = resolve_price_state(destination, source_spot_price, tick_math)

    position = tick_math.project_amounts(
        price_state=price_state,
        tick_lower=tick_lower,
        tick_upper=tick_upper,
        amount0_max=valued.amount0,
        amount1_max=valued.amount1,
    )
    if position.amount0 < 0 or position.amount1 < 0:
        raise InvariantViolationError("Projected position has a negative amount.")
    if position.amount0 > valued.amount0 or position.amount1 > valued.amount1:
        raise InvariantViolationError("Projected position exceeds the valued amounts.")

    out_of_range = price_state.tick_current < tick_lower or price_state.tick_current >= tick_upper
    return Projection(
        position=position,
        price_state=price_state,
        tick_lower=tick_lower,
        tick_upper=tick_upper,
        out_of_range=out_of_range,
    )
