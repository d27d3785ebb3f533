from __future__ import annotations

from eth_utils import is_address, to_checksum_address

from migrator.application.dto.migration import LoadMigrationInputsInput, MigrationInputs
from migrator.application.ports.destination_pool_port import DestinationPoolPort
from migrator.application.ports.pair_state_port import PairStatePort
from migrator.domain.exceptions import PairNotFoundError


class LoadMigrationInputsUseCase:
    def __init__(
        self,
        *,
        pair_port: PairStatePort,
        destination_port: DestinationPoolPort,
        canonical_factory: str,
    ):
        self._pair_port = pair_port
        self._destination_port = destination_port
        self._canonical_factory = canonical_factory

    def execute(self, command: LoadMigrationInputsInput) -> MigrationInputs:
        if not is_address(command.pair):
            raise PairNotFoundError("Invalid pair address.")
        if not is_address(command.account):
            raise PairNotFoundError("Invalid account address.")
        pair = to_checksum_address(command.pair)
        account = to_checksum_address(command.account)

        tokens = self._pair_port.get_pair_tokens(pair=pair)
        if tokens is None:
            raise PairNotFoundError("Pair not found.")

        factory = self._pair_port.get_factory(pair=pair)
        reserves = self._pair_port.get_reserves(pair=pair)
        balance = self._pair_port.get_share_balance(account=account, pair=pair)
        destination = self._destination_port.get_pool_state(
            token0=tokens.token0.address,
            token1=tokens.token1.address,
            fee_tier=command.fee_tier,
        )

        return MigrationInputs(
            pair=pair,
            tokens=tokens,
            is_canonical_source=factory.lower() == self._canonical_factory.lower(),
            reserves=reserves,
            share_balance=balance,
            destination=destination,
            fee_tier=command.fee_tier,
            price_range=command.price_range,
            slippage_bps=command.slippage_bps,
        )
