from __future__ import annotations

from migrator.domain.entities.pair import ValuedAmounts
from migrator.domain.entities.position import ProjectedPosition, RefundAmounts
from migrator.domain.exceptions import InvariantViolationError


def refund_amounts(valued: ValuedAmounts, position: ProjectedPosition) -> RefundAmounts:
    refund0 = valued.amount0 - position.amount0
    refund1 = valued.amount1 - position.amount1
    if refund0 < 0 or refund1 < 0:
        raise InvariantViolationError(
            f"Negative refund: refund0={refund0} refund1={refund1}."
        )
    return RefundAmounts(refund0=refund0, refund1=refund1)
