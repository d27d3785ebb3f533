from __future__ import annotations

import logging

from eth_utils import encode_hex

from migrator.domain.entities.execution import TransactionStatus
from migrator.domain.entities.migration_plan import MigrationPlan
from migrator.domain.exceptions import ExternalRejectionError, TransientExternalFailureError
from migrator.infrastructure.clients.json_rpc_client import JsonRpcClient, JsonRpcError
from migrator.infrastructure.clients.migrator_calldata import MigratorCalldataEncoder


logger = logging.getLogger(__name__)


class RpcSubmissionClient:
    """Sends the whole plan as a single multicall transaction to the migrator."""

    def __init__(
        self,
        rpc: JsonRpcClient,
        *,
        sender: str,
        migrator_address: str,
        encoder: MigratorCalldataEncoder | None = None,
    ):
        self._rpc = rpc
        self._sender = sender
        self._migrator_address = migrator_address
        self._encoder = encoder or MigratorCalldataEncoder()

    def submit(self, plan: MigrationPlan) -> str:
        data = self._encoder.encode_multicall(plan)
        try:
            tx_hash = self._rpc.call(
                "eth_sendTransaction",
                [
                    {
                        "from": self._sender,
                        "to": self._migrator_address,
                        "data": encode_hex(data),
                        "value": "0x0",
                    }
                ],
            )
        except JsonRpcError as exc:
            raise ExternalRejectionError(exc.message, code=exc.code) from exc

        logger.info(
            "submission_client: multicall_sent migrator=%s actions=%s tx=%s",
            self._migrator_address,
            len(plan.actions),
            tx_hash,
        )
        return tx_hash

    def observe(self, tx_hash: str) -> TransactionStatus:
        status = observe_transaction(self._rpc, tx_hash)
        if status in (TransactionStatus.REVERTED, TransactionStatus.DROPPED):
            logger.warning("submission_client: failed tx=%s status=%s", tx_hash, status.value)
        return status


def observe_transaction(rpc: JsonRpcClient, tx_hash: str) -> TransactionStatus:
    """Receipt status of a sent transaction; no receipt and no mempool entry means it was dropped."""
    try:
        receipt = rpc.call("eth_getTransactionReceipt", [tx_hash])
        if not receipt:
            if rpc.call("eth_getTransactionByHash", [tx_hash]) is None:
                return TransactionStatus.DROPPED
            return TransactionStatus.PENDING
    except JsonRpcError as exc:
        raise TransientExternalFailureError(f"Receipt read failed: {exc}") from exc

    if int(receipt.get("status", "0x0"), 16) == 1:
        return TransactionStatus.CONFIRMED
    return TransactionStatus.REVERTED
