from __future__ import annotations

import logging

from eth_abi import decode
from eth_abi.exceptions import DecodingError

from migrator.domain.entities.position import DestinationPoolState, FeeTier
from migrator.domain.exceptions import TransientExternalFailureError
from migrator.infrastructure.clients.json_rpc_client import JsonRpcClient, JsonRpcError
from migrator.infrastructure.clients.migrator_calldata import encode_call


logger = logging.getLogger(__name__)


class RpcV3PoolClient:
    def __init__(self, rpc: JsonRpcClient, *, factory_address: str):
        self._rpc = rpc
        self._factory_address = factory_address

    def get_pool_state(self, *, token0: str, token1: str, fee_tier: FeeTier) -> DestinationPoolState:
        try:
            raw = self._rpc.eth_call(
                to=self._factory_address,
                data=encode_call(
                    "getPool(address,address,uint24)",
                    ["address", "address", "uint24"],
                    [token0, token1, int(fee_tier)],
                ),
            )
            pool = decode(["address"], raw)[0]
            if int(pool, 16) == 0:
                logger.info(
                    "v3_pool_client: pool_not_found token0=%s token1=%s fee=%s",
                    token0,
                    token1,
                    int(fee_tier),
                )
                return DestinationPoolState.not_exists()

            slot0 = self._rpc.eth_call(to=pool, data=encode_call("slot0()"))
            sqrt_price_x96, tick, *_ = decode(
                ["uint160", "int24", "uint16", "uint16", "uint16", "uint8", "bool"],
                slot0,
            )
        except (JsonRpcError, DecodingError) as exc:
            raise TransientExternalFailureError(f"Pool state read failed: {exc}") from exc

        if sqrt_price_x96 == 0:
            return DestinationPoolState.uninitialized()
        return DestinationPoolState.with_price(tick_current=tick, sqrt_price_x96=sqrt_price_x96)
