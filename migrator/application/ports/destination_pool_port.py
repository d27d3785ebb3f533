from __future__ import annotations

from typing import Protocol

from migrator.domain.entities.position import DestinationPoolState, FeeTier


class DestinationPoolPort(Protocol):
    def get_pool_state(self, *, token0: str, token1: str, fee_tier: FeeTier) -> DestinationPoolState:
        ...
