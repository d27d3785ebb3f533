from __future__ import annotations

import json
import logging

from eth_abi import decode
from eth_utils import decode_hex, encode_hex

from migrator.domain.entities.approval import PermitResult, PermitSignature
from migrator.domain.entities.execution import TransactionStatus
from migrator.domain.exceptions import ExternalRejectionError, TransientExternalFailureError
from migrator.infrastructure.clients.json_rpc_client import JsonRpcClient, JsonRpcError
from migrator.infrastructure.clients.migrator_calldata import encode_call
from migrator.infrastructure.clients.submission_client import observe_transaction


logger = logging.getLogger(__name__)


# EIP-712 domain of the canonical V2 pair share token
PERMIT_DOMAIN_NAME = "Uniswap V2"
PERMIT_DOMAIN_VERSION = "1"


class RpcApprovalClient:
    """Allowance transactions and permit signatures through the account's node or wallet RPC."""

    def __init__(self, rpc: JsonRpcClient, *, owner: str, chain_id: int):
        self._rpc = rpc
        self._owner = owner
        self._chain_id = chain_id

    def approve(self, *, token: str, spender: str, amount: int) -> str:
        try:
            tx_hash = self._rpc.call(
                "eth_sendTransaction",
                [
                    {
                        "from": self._owner,
                        "to": token,
                        "data": encode_hex(
                            encode_call("approve(address,uint256)", ["address", "uint256"], [spender, amount])
                        ),
                    }
                ],
            )
        except JsonRpcError as exc:
            raise ExternalRejectionError(exc.message, code=exc.code) from exc
        logger.info("approval_client: approve_sent token=%s spender=%s tx=%s", token, spender, tx_hash)
        return tx_hash

    def allowance(self, *, token: str, spender: str) -> int:
        try:
            raw = self._rpc.eth_call(
                to=token,
                data=encode_call("allowance(address,address)", ["address", "address"], [self._owner, spender]),
            )
        except JsonRpcError as exc:
            raise TransientExternalFailureError(f"Allowance read failed: {exc}") from exc
        return decode(["uint256"], raw)[0]

    def observe(self, tx_hash: str) -> TransactionStatus:
        return observe_transaction(self._rpc, tx_hash)

    def sign_permit(self, *, token: str, spender: str, amount: int, deadline: int) -> PermitResult:
        try:
            nonce = decode(
                ["uint256"],
                self._rpc.eth_call(
                    to=token,
                    data=encode_call("nonces(address)", ["address"], [self._owner]),
                ),
            )[0]
            signature = self._rpc.call(
                "eth_signTypedData_v4",
                [self._owner, json.dumps(self._permit_typed_data(token, spender, amount, nonce, deadline))],
            )
        except ExternalRejectionError as exc:
            return PermitResult.user_rejected(exc.reason)
        except (JsonRpcError, TransientExternalFailureError) as exc:
            logger.warning("approval_client: permit_failed token=%s error=%s", token, exc)
            return PermitResult.failed(str(exc))

        raw = decode_hex(signature)
        if len(raw) != 65:
            return PermitResult.failed(f"Unexpected signature length {len(raw)}.")
        v = raw[64]
        if v < 27:
            v += 27
        return PermitResult.signed(
            PermitSignature(v=v, r=raw[:32], s=raw[32:64], deadline=deadline, amount=amount)
        )

    def _permit_typed_data(self, token: str, spender: str, amount: int, nonce: int, deadline: int) -> dict:
        return {
            "types": {
                "EIP712Domain": [
                    {"name": "name", "type": "string"},
                    {"name": "version", "type": "string"},
                    {"name": "chainId", "type": "uint256"},
                    {"name": "verifyingContract", "type": "address"},
                ],
                "Permit": [
                    {"name": "owner", "type": "address"},
                    {"name": "spender", "type": "address"},
                    {"name": "value", "type": "uint256"},
                    {"name": "nonce", "type": "uint256"},
                    {"name": "deadline", "type": "uint256"},
                ],
            },
            "domain": {
                "name": PERMIT_DOMAIN_NAME,
                "version": PERMIT_DOMAIN_VERSION,
                "chainId": self._chain_id,
                "verifyingContract": token,
            },
            "primaryType": "Permit",
            "message": {
                "owner": self._owner,
                "spender": spender,
                "value": str(amount),
                "nonce": str(nonce),
                "deadline": deadline,
            },
        }
