from __future__ import annotations

from typing import Protocol

from migrator.domain.entities.pair import PoolReserves, TokenPair


class PairStatePort(Protocol):
    def get_pair_tokens(self, *, pair: str) -> TokenPair | None:
        ...

    def get_factory(self, *, pair: str) -> str:
        ...

    def get_reserves(self, *, pair: str) -> PoolReserves:
        ...

    def get_share_balance(self, *, account: str, pair: str) -> int:
        ...
