from __future__ import annotations

from fractions import Fraction

from migrator.application.dto.migration import MigrationCalculation, MigrationInputs
from migrator.application.ports.tick_math_port import TickMathPort
from migrator.domain.exceptions import InputError
from migrator.domain.services.position_projection import price_range_error, project_position
from migrator.domain.services.price_divergence import LARGE_PRICE_DIFFERENCE_PERCENT, price_divergence
from migrator.domain.services.refund import refund_amounts
from migrator.domain.services.share_valuation import source_spot_price, valuate
from migrator.domain.services.slippage import minimum_amounts


class ComputeMigrationSnapshotUseCase:
    """Stateless recomputation of every derived amount from one input snapshot.

    Input errors stop the pipeline at the failing stage and are recorded on the
    result; invariant violations propagate.
    """

    def __init__(
        self,
        *,
        tick_math: TickMathPort,
        large_difference_percent: Fraction = LARGE_PRICE_DIFFERENCE_PERCENT,
    ):
        self._tick_math = tick_math
        self._large_difference_percent = large_difference_percent

    def execute(self, inputs: MigrationInputs) -> MigrationCalculation:
        spot = source_spot_price(inputs.reserves)
        divergence = price_divergence(
            spot,
            inputs.destination.spot_price,
            threshold_percent=self._large_difference_percent,
        )
        partial = {
            "destination": inputs.destination,
            "source_spot_price": spot,
            "divergence": divergence,
            "invalid_range": price_range_error(inputs.price_range, inputs.fee_tier) is not None,
        }

        try:
            valued = valuate(inputs.share_balance, inputs.reserves)
        except InputError as exc:
            return MigrationCalculation(**partial, error=exc)
        partial["valued"] = valued

        try:
            projection = project_position(
                valued=valued,
                price_range=inputs.price_range,
                fee_tier=inputs.fee_tier,
                destination=inputs.destination,
                source_spot_price=spot,
                tick_math=self._tick_math,
            )
        except InputError as exc:
            return MigrationCalculation(**partial, error=exc)
        partial["projection"] = projection
        partial["refunds"] = refund_amounts(valued, projection.position)

        try:
            minimums = minimum_amounts(projection.position, inputs.slippage_bps)
        except InputError as exc:
            return MigrationCalculation(**partial, error=exc)

        return MigrationCalculation(**partial, minimums=minimums)
