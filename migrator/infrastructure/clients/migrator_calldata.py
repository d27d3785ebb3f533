from __future__ import annotations

from typing import Any, Sequence

from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector

from migrator.domain.entities.migration_plan import (
    InitializePoolAction,
    MigrateAction,
    MigrationAction,
    MigrationPlan,
    PermitAction,
)


SELF_PERMIT = "selfPermit(address,uint256,uint256,uint8,bytes32,bytes32)"
CREATE_AND_INITIALIZE_POOL = "createAndInitializePoolIfNecessary(address,address,uint24,uint160)"
MIGRATE_PARAMS_TYPE = (
    "(address,uint256,uint8,address,address,uint24,int24,int24,uint256,uint256,address,uint256,bool)"
)
MIGRATE = f"migrate({MIGRATE_PARAMS_TYPE})"
MULTICALL = "multicall(bytes[])"


def encode_call(signature: str, arg_types: Sequence[str] = (), args: Sequence[Any] = ()) -> bytes:
    selector = function_signature_to_4byte_selector(signature)
    if not arg_types:
        return selector
    return selector + encode(list(arg_types), list(args))


class MigratorCalldataEncoder:
    """Encodes a migration plan as one multicall on the migrator contract."""

    def encode_action(self, action: MigrationAction) -> bytes:
        if isinstance(action, PermitAction):
            return encode_call(
                SELF_PERMIT,
                ["address", "uint256", "uint256", "uint8", "bytes32", "bytes32"],
                [action.token, action.amount, action.deadline, action.v, action.r, action.s],
            )
        if isinstance(action, InitializePoolAction):
            return encode_call(
                CREATE_AND_INITIALIZE_POOL,
                ["address", "address", "uint24", "uint160"],
                [action.token0, action.token1, action.fee, action.sqrt_price_x96],
            )
        if isinstance(action, MigrateAction):
            params = action.params
            return encode_call(
                MIGRATE,
                [MIGRATE_PARAMS_TYPE],
                [
                    (
                        params.pair,
                        params.liquidity_to_migrate,
                        params.percentage_to_migrate,
                        params.token0,
                        params.token1,
                        params.fee,
                        params.tick_lower,
                        params.tick_upper,
                        params.amount0_min,
                        params.amount1_min,
                        params.recipient,
                        params.deadline,
                        params.refund_as_eth,
                    )
                ],
            )
        raise TypeError(f"Unsupported migration action: {type(action).__name__}")

    def encode_actions(self, plan: MigrationPlan) -> list[bytes]:
        return [self.encode_action(action) for action in plan.actions]

    def encode_multicall(self, plan: MigrationPlan) -> bytes:
        return encode_call(MULTICALL, ["bytes[]"], [self.encode_actions(plan)])
