from __future__ import annotations

import math
from fractions import Fraction

from migrator.domain.entities.position import MAX_TICK, MIN_TICK, PoolPriceState, ProjectedPosition


Q96 = 2**96
Q192 = 2**192
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342

# TickMath.getSqrtRatioAtTick magic factors, one per bit of |tick| above bit 0.
_TICK_FACTORS = (
    (0x2, 0xFFF97272373D413259A46990580E213A),
    (0x4, 0xFFF2E50F5F656932EF12357CF3C7FDCC),
    (0x8, 0xFFE5CACA7E10E4E61C3624EAA0941CD0),
    (0x10, 0xFFCB9843D60F6159C9DB58835C926644),
    (0x20, 0xFF973B41FA98C081472E6896DFB254C0),
    (0x40, 0xFF2EA16466C96A3843EC78B326B52861),
    (0x80, 0xFE5DEE046A99A2A811C461F1969C3053),
    (0x100, 0xFCBE86C7900A88AEDCFFC83B479AA3A4),
    (0x200, 0xF987A7253AC413176F2B074CF7815E54),
    (0x400, 0xF3392B0822B70005940C7A398E4B70F3),
    (0x800, 0xE7159475A2C29B7443B29C7FA6E889D9),
    (0x1000, 0xD097F3BDFD2022B8845AD8F792AA5825),
    (0x2000, 0xA9F746462D870FDF8A65DC1F90E061E5),
    (0x4000, 0x70D869A156D2A1B890BB3DF62BAF32F7),
    (0x8000, 0x31BE135F97D08FD981231505542FCFA6),
    (0x10000, 0x9AA508B5B7A84E1C677DE54F3E99BC9),
    (0x20000, 0x5D6AF8DEDB81196699C329225EE604),
    (0x40000, 0x2216E584F5FA1EA926041BEDFE98),
    (0x80000, 0x48A170391F7DC42444E8FA2),
)


def get_sqrt_ratio_at_tick(tick: int) -> int:
    if tick < MIN_TICK or tick > MAX_TICK:
        raise ValueError(f"Tick out of range: {tick}.")

    abs_tick = abs(tick)
    ratio = 0xFFFCB933BD6FAD37AA2D162D1A594001 if abs_tick & 0x1 else 1 << 128
    for bit, factor in _TICK_FACTORS:
        if abs_tick & bit:
            ratio = (ratio * factor) >> 128
    if tick > 0:
        ratio = (2**256 - 1) // ratio

    # Q128.128 -> Q64.96, rounding up
    return (ratio >> 32) + (1 if ratio % (1 << 32) else 0)


def get_tick_at_sqrt_ratio(sqrt_price_x96: int) -> int:
    """Greatest tick whose sqrt ratio is <= sqrt_price_x96."""
    if sqrt_price_x96 < MIN_SQRT_RATIO or sqrt_price_x96 >= MAX_SQRT_RATIO:
        raise ValueError(f"sqrt_price_x96 out of range: {sqrt_price_x96}.")

    low, high = MIN_TICK, MAX_TICK
    while low < high:
        mid = (low + high + 1) // 2
        if get_sqrt_ratio_at_tick(mid) <= sqrt_price_x96:
            low = mid
        else:
            high = mid - 1
    return low


def encode_sqrt_ratio_x96(amount1: int, amount0: int) -> int:
    if amount0 <= 0 or amount1 <= 0:
        raise ValueError("Price amounts must be positive.")
    return math.isqrt((amount1 << 192) // amount0)


def price_at_tick(tick: int) -> Fraction:
    sqrt_ratio = get_sqrt_ratio_at_tick(tick)
    return Fraction(sqrt_ratio * sqrt_ratio, Q192)


def get_amount0_delta(sqrt_a: int, sqrt_b: int, liquidity: int) -> int:
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    return ((liquidity << 96) * (sqrt_b - sqrt_a) // sqrt_b) // sqrt_a


def get_amount1_delta(sqrt_a: int, sqrt_b: int, liquidity: int) -> int:
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    return liquidity * (sqrt_b - sqrt_a) // Q96


def max_liquidity_for_amount0(sqrt_a: int, sqrt_b: int, amount0: int) -> int:
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    return amount0 * sqrt_a * sqrt_b // (Q96 * (sqrt_b - sqrt_a))


def max_liquidity_for_amount1(sqrt_a: int, sqrt_b: int, amount1: int) -> int:
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    return amount1 * Q96 // (sqrt_b - sqrt_a)


def max_liquidity_for_amounts(sqrt_p: int, sqrt_a: int, sqrt_b: int, amount0: int, amount1: int) -> int:
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    if sqrt_p <= sqrt_a:
        return max_liquidity_for_amount0(sqrt_a, sqrt_b, amount0)
    if sqrt_p < sqrt_b:
        return min(
            max_liquidity_for_amount0(sqrt_p, sqrt_b, amount0),
            max_liquidity_for_amount1(sqrt_a, sqrt_p, amount1),
        )
    return max_liquidity_for_amount1(sqrt_a, sqrt_b, amount1)


class ExactTickMathOracle:
    """Integer tick math with the rounding of the periphery contracts (amounts round down)."""

    def price_to_tick(self, price: Fraction) -> int:
        if price <= 0:
            raise ValueError("Price must be positive.")
        sqrt_ratio = encode_sqrt_ratio_x96(price.numerator, price.denominator)
        if sqrt_ratio < MIN_SQRT_RATIO or sqrt_ratio >= MAX_SQRT_RATIO:
            raise ValueError("Price is outside the tick range.")

        tick = get_tick_at_sqrt_ratio(sqrt_ratio)
        # isqrt floors, so the floor tick may be one short
        if tick < MAX_TICK and price >= price_at_tick(tick + 1):
            tick += 1
        if tick >= MAX_TICK:
            return tick

        below = price - price_at_tick(tick)
        above = price_at_tick(tick + 1) - price
        return tick + 1 if above < below else tick

    def sqrt_ratio_at_tick(self, tick: int) -> int:
        return get_sqrt_ratio_at_tick(tick)

    def project_amounts(
        self,
        *,
        price_state: PoolPriceState,
        tick_lower: int,
        tick_upper: int,
        amount0_max: int,
        amount1_max: int,
    ) -> ProjectedPosition:
        sqrt_a = get_sqrt_ratio_at_tick(tick_lower)
        sqrt_b = get_sqrt_ratio_at_tick(tick_upper)
        sqrt_p = price_state.sqrt_price_x96
        liquidity = max_liquidity_for_amounts(sqrt_p, sqrt_a, sqrt_b, amount0_max, amount1_max)

        if price_state.tick_current < tick_lower:
            return ProjectedPosition(amount0=get_amount0_delta(sqrt_a, sqrt_b, liquidity), amount1=0)
        if price_state.tick_current < tick_upper:
            return ProjectedPosition(
                amount0=get_amount0_delta(sqrt_p, sqrt_b, liquidity),
                amount1=get_amount1_delta(sqrt_a, sqrt_p, liquidity),
            )
        return ProjectedPosition(amount0=0, amount1=get_amount1_delta(sqrt_a, sqrt_b, liquidity))
