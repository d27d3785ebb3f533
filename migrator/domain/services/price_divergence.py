from __future__ import annotations

from fractions import Fraction

from migrator.domain.entities.position import PriceDivergence


LARGE_PRICE_DIFFERENCE_PERCENT = Fraction(2)


def price_divergence(
    source_spot_price: Fraction | None,
    destination_spot_price: Fraction | None,
    *,
    threshold_percent: Fraction = LARGE_PRICE_DIFFERENCE_PERCENT,
) -> PriceDivergence | None:
    """Absolute percent difference of the destination price relative to the source price.

    Not symmetric: the source price is the denominator, so swapping the arguments
    generally yields a different percent. Advisory only, a large divergence never
    blocks the migration.
    """
    if destination_spot_price is None or source_spot_price is None:
        return None
    if source_spot_price <= 0:
        return None

    percent = abs((destination_spot_price / source_spot_price - 1) * 100)
    return PriceDivergence(percent=percent, is_large=percent >= threshold_percent)
