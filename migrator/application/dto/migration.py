from __future__ import annotations

from dataclasses import dataclass, field
from fractions import Fraction

from migrator.domain.entities.approval import ApprovalState
from migrator.domain.entities.execution import MigrationExecutionState
from migrator.domain.entities.pair import PoolReserves, TokenPair, ValuedAmounts
from migrator.domain.entities.position import (
    DestinationPoolState,
    FeeTier,
    MinimumAmounts,
    PriceDivergence,
    PriceRange,
    Projection,
    ProjectedPosition,
    RefundAmounts,
)
from migrator.domain.exceptions import InputError, MigrationNotReadyError


@dataclass(frozen=True)
class MigrationInputs:
    pair: str
    tokens: TokenPair
    is_canonical_source: bool
    reserves: PoolReserves
    share_balance: int
    destination: DestinationPoolState
    fee_tier: FeeTier = FeeTier.MEDIUM
    price_range: PriceRange = field(default_factory=PriceRange)
    slippage_bps: int = 50


@dataclass(frozen=True)
class LoadMigrationInputsInput:
    pair: str
    account: str
    fee_tier: FeeTier = FeeTier.MEDIUM
    price_range: PriceRange = field(default_factory=PriceRange)
    slippage_bps: int = 50


@dataclass(frozen=True)
class MigrationCalculation:
    destination: DestinationPoolState
    valued: ValuedAmounts | None = None
    source_spot_price: Fraction | None = None
    divergence: PriceDivergence | None = None
    projection: Projection | None = None
    minimums: MinimumAmounts | None = None
    refunds: RefundAmounts | None = None
    invalid_range: bool = False
    error: InputError | None = field(default=None, compare=False)

    @property
    def position(self) -> ProjectedPosition | None:
        return self.projection.position if self.projection is not None else None

    @property
    def out_of_range(self) -> bool:
        return self.projection is not None and self.projection.out_of_range

    @property
    def input_error(self) -> str | None:
        return str(self.error) if self.error is not None else None

    @property
    def is_submittable(self) -> bool:
        return (
            self.error is None
            and self.projection is not None
            and self.minimums is not None
            and self.refunds is not None
        )

    def require_submittable(self) -> tuple[Projection, MinimumAmounts]:
        if self.error is not None:
            raise self.error
        if self.projection is None or self.minimums is None or self.refunds is None:
            raise MigrationNotReadyError("Migration amounts are not computed.")
        return self.projection, self.minimums


@dataclass(frozen=True)
class MigrationSnapshot:
    calculation: MigrationCalculation
    approval_state: ApprovalState
    execution_state: MigrationExecutionState
    is_canonical_source: bool
    last_failure_reason: str | None = None
