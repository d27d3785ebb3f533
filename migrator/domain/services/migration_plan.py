from __future__ import annotations

from dataclasses import replace

from migrator.domain.entities.approval import PermitSignature
from migrator.domain.entities.migration_plan import (
    InitializePoolAction,
    MigrateAction,
    MigrateParams,
    MigrationAction,
    MigrationPlan,
    PermitAction,
)
from migrator.domain.entities.position import DestinationPoolState
from migrator.domain.exceptions import InvariantViolationError


def effective_deadline(user_deadline: int, permit: PermitSignature | None) -> int:
    if permit is None:
        return user_deadline
    return min(user_deadline, permit.deadline)


def build_migration_plan(
    *,
    permit: PermitSignature | None,
    destination: DestinationPoolState,
    initial_sqrt_price_x96: int | None,
    params: MigrateParams,
) -> MigrationPlan:
    """Ordered actions for one atomic multicall: permit, pool init, migrate.

    The permit action keeps the deadline it was signed with; the migrate call
    uses the tighter of the user deadline and the permit deadline.
    """
    actions: list[MigrationAction] = []

    if permit is not None:
        actions.append(
            PermitAction(
                token=params.pair,
                amount=permit.amount,
                deadline=permit.deadline,
                v=permit.v,
                r=permit.r,
                s=permit.s,
            )
        )

    if destination.needs_initialization:
        if initial_sqrt_price_x96 is None or initial_sqrt_price_x96 <= 0:
            raise InvariantViolationError("New destination pool requires an initial sqrt price.")
        actions.append(
            InitializePoolAction(
                token0=params.token0,
                token1=params.token1,
                fee=params.fee,
                sqrt_price_x96=initial_sqrt_price_x96,
            )
        )

    actions.append(
        MigrateAction(params=replace(params, deadline=effective_deadline(params.deadline, permit)))
    )
    return MigrationPlan(actions=tuple(actions))
