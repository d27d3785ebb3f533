from __future__ import annotations

from migrator.domain.entities.position import MinimumAmounts, ProjectedPosition
from migrator.domain.exceptions import InvalidToleranceError


BPS_DENOMINATOR = 10_000


def minimum_amounts(position: ProjectedPosition, tolerance_bps: int) -> MinimumAmounts:
    if isinstance(tolerance_bps, bool) or not isinstance(tolerance_bps, int):
        raise InvalidToleranceError("Slippage tolerance must be an integer number of basis points.")
    if tolerance_bps < 0 or tolerance_bps > BPS_DENOMINATOR:
        raise InvalidToleranceError("Slippage tolerance must be between 0 and 10000 bps.")

    keep = BPS_DENOMINATOR - tolerance_bps
    return MinimumAmounts(
        amount0_min=position.amount0 * keep // BPS_DENOMINATOR,
        amount1_min=position.amount1 * keep // BPS_DENOMINATOR,
    )
