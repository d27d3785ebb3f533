from __future__ import annotations

import logging

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_utils import to_checksum_address

from migrator.domain.entities.pair import Asset, PoolReserves, TokenPair
from migrator.domain.exceptions import TransientExternalFailureError
from migrator.infrastructure.clients.json_rpc_client import JsonRpcClient, JsonRpcError
from migrator.infrastructure.clients.migrator_calldata import encode_call


logger = logging.getLogger(__name__)


class RpcPairStateClient:
    """Reads a constant-product pair and its share token through eth_call."""

    def __init__(self, rpc: JsonRpcClient):
        self._rpc = rpc

    def get_pair_tokens(self, *, pair: str) -> TokenPair | None:
        try:
            token0 = self._read_address(pair, "token0()")
            token1 = self._read_address(pair, "token1()")
        except (JsonRpcError, DecodingError) as exc:
            logger.info("pair_state_client: not_a_pair pair=%s error=%s", pair, exc)
            return None

        return TokenPair(token0=self._read_asset(token0), token1=self._read_asset(token1))

    def get_factory(self, *, pair: str) -> str:
        return self._call_checked(lambda: self._read_address(pair, "factory()"))

    def get_reserves(self, *, pair: str) -> PoolReserves:
        def read() -> PoolReserves:
            raw = self._rpc.eth_call(to=pair, data=encode_call("getReserves()"))
            reserve0, reserve1, _ = decode(["uint112", "uint112", "uint32"], raw)
            return PoolReserves(
                reserve0=reserve0,
                reserve1=reserve1,
                total_supply=self._read_uint(pair, "totalSupply()"),
            )

        reserves = self._call_checked(read)
        logger.info(
            "pair_state_client: reserves pair=%s reserve0=%s reserve1=%s total_supply=%s",
            pair,
            reserves.reserve0,
            reserves.reserve1,
            reserves.total_supply,
        )
        return reserves

    def get_share_balance(self, *, account: str, pair: str) -> int:
        def read() -> int:
            raw = self._rpc.eth_call(
                to=pair,
                data=encode_call("balanceOf(address)", ["address"], [account]),
            )
            return decode(["uint256"], raw)[0]

        return self._call_checked(read)

    def _read_asset(self, token: str) -> Asset:
        raw = self._call_checked(lambda: self._rpc.eth_call(to=token, data=encode_call("decimals()")))
        decimals = self._call_checked(lambda: decode(["uint8"], raw)[0])
        return Asset(address=token, decimals=decimals, symbol=self._read_symbol(token))

    def _read_symbol(self, token: str) -> str:
        raw = self._call_checked(lambda: self._rpc.eth_call(to=token, data=encode_call("symbol()")))
        try:
            return decode(["string"], raw)[0]
        except DecodingError:
            # some older tokens return bytes32
            return raw[:32].rstrip(b"\x00").decode("utf-8", errors="ignore")

    def _read_address(self, contract: str, signature: str) -> str:
        raw = self._rpc.eth_call(to=contract, data=encode_call(signature))
        return to_checksum_address(decode(["address"], raw)[0])

    def _read_uint(self, contract: str, signature: str) -> int:
        raw = self._rpc.eth_call(to=contract, data=encode_call(signature))
        return decode(["uint256"], raw)[0]

    @staticmethod
    def _call_checked(read):
        try:
            return read()
        except (JsonRpcError, DecodingError) as exc:
            raise TransientExternalFailureError(f"Chain read failed: {exc}") from exc
