from __future__ import annotations

from migrator.application.dto.migration import MigrationCalculation, MigrationInputs
from migrator.application.use_cases.compute_migration_snapshot import ComputeMigrationSnapshotUseCase
from migrator.domain.entities.approval import PermitSignature
from migrator.domain.entities.execution import NetworkContext
from migrator.domain.entities.migration_plan import MigrateParams, MigrationPlan
from migrator.domain.exceptions import MigrationNotReadyError
from migrator.domain.services.migration_plan import build_migration_plan


class BuildMigrationPlanUseCase:
    def __init__(self, *, compute: ComputeMigrationSnapshotUseCase, deadline_window_seconds: int):
        self._compute = compute
        self._deadline_window_seconds = deadline_window_seconds

    def user_deadline(self, context: NetworkContext) -> int:
        return context.block_timestamp + self._deadline_window_seconds

    def execute(
        self,
        inputs: MigrationInputs,
        context: NetworkContext,
        *,
        permit: PermitSignature | None = None,
        calculation: MigrationCalculation | None = None,
    ) -> MigrationPlan:
        if calculation is None:
            calculation = self._compute.execute(inputs)
        projection, minimums = calculation.require_submittable()
        if permit is not None and permit.deadline < context.block_timestamp:
            raise MigrationNotReadyError("Permit signature has expired, sign a new one.")

        params = MigrateParams(
            pair=inputs.pair,
            liquidity_to_migrate=inputs.share_balance,
            token0=inputs.tokens.token0.address,
            token1=inputs.tokens.token1.address,
            fee=int(inputs.fee_tier),
            tick_lower=projection.tick_lower,
            tick_upper=projection.tick_upper,
            amount0_min=minimums.amount0_min,
            amount1_min=minimums.amount1_min,
            recipient=context.account,
            deadline=self.user_deadline(context),
        )
        return build_migration_plan(
            permit=permit,
            destination=inputs.destination,
            initial_sqrt_price_x96=projection.price_state.sqrt_price_x96,
            params=params,
        )
