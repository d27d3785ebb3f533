from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from migrator.domain.exceptions import InvariantViolationError


# Full withdrawal of the migrated share balance.
PERCENTAGE_TO_MIGRATE = 100


@dataclass(frozen=True)
class PermitAction:
    token: str
    amount: int
    deadline: int
    v: int
    r: bytes
    s: bytes


@dataclass(frozen=True)
class InitializePoolAction:
    token0: str
    token1: str
    fee: int
    sqrt_price_x96: int


@dataclass(frozen=True)
class MigrateParams:
    pair: str
    liquidity_to_migrate: int
    token0: str
    token1: str
    fee: int
    tick_lower: int
    tick_upper: int
    amount0_min: int
    amount1_min: int
    recipient: str
    deadline: int
    percentage_to_migrate: int = PERCENTAGE_TO_MIGRATE
    refund_as_eth: bool = True


@dataclass(frozen=True)
class MigrateAction:
    params: MigrateParams


MigrationAction = Union[PermitAction, InitializePoolAction, MigrateAction]


@dataclass(frozen=True)
class MigrationPlan:
    actions: tuple[MigrationAction, ...]

    def __post_init__(self) -> None:
        migrates = [i for i, action in enumerate(self.actions) if isinstance(action, MigrateAction)]
        if len(migrates) != 1 or migrates[0] != len(self.actions) - 1:
            raise InvariantViolationError("Plan must end with exactly one migrate action.")
        for idx, action in enumerate(self.actions):
            if isinstance(action, PermitAction) and idx != 0:
                raise InvariantViolationError("Permit action must be the first action.")

    @property
    def migrate(self) -> MigrateParams:
        return self.actions[-1].params  # type: ignore[union-attr]

    @property
    def has_permit(self) -> bool:
        return any(isinstance(action, PermitAction) for action in self.actions)

    @property
    def initializes_pool(self) -> bool:
        return any(isinstance(action, InitializePoolAction) for action in self.actions)
