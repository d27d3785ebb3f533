from __future__ import annotations

from dataclasses import dataclass
import itertools
import logging
from threading import Lock
import time
from typing import Any

import httpx
from eth_utils import decode_hex, encode_hex

from migrator.domain.exceptions import ExternalRejectionError, TransientExternalFailureError


logger = logging.getLogger(__name__)


# EIP-1193 "User Rejected Request"
USER_REJECTED_CODE = 4001


class JsonRpcError(RuntimeError):
    """Error object returned by the node. Deterministic, not retried."""

    def __init__(self, code: int | None, message: str):
        super().__init__(f"JSON-RPC error {code}: {message}")
        self.code = code
        self.message = message


@dataclass(frozen=True)
class JsonRpcClientSettings:
    rpc_url: str
    timeout_seconds: float
    max_retries: int
    min_interval_ms: int


class JsonRpcClient:
    def __init__(self, settings: JsonRpcClientSettings, *, transport: httpx.BaseTransport | None = None):
        self._settings = settings
        self._transport = transport
        self._lock = Lock()
        self._last_request_at = 0.0
        self._ids = itertools.count(1)

    def call(self, method: str, params: list[Any]) -> Any:
        attempts = max(1, self._settings.max_retries)
        delay = 0.25
        last_exc: Exception | None = None

        for attempt in range(1, attempts + 1):
            self._respect_rate_limit()
            try:
                with httpx.Client(timeout=self._settings.timeout_seconds, transport=self._transport) as client:
                    response = client.post(
                        self._settings.rpc_url,
                        json={"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params},
                    )
                    response.raise_for_status()
                    payload = response.json()
            except (httpx.HTTPError, ValueError) as exc:
                last_exc = exc
                if attempt == attempts:
                    break
                logger.warning(
                    "json_rpc_client: retry method=%s attempt=%s/%s error=%s",
                    method,
                    attempt,
                    attempts,
                    exc,
                )
                time.sleep(delay)
                delay *= 2
                continue

            error = payload.get("error")
            if error:
                code = error.get("code")
                message = str(error.get("message", error))
                if code == USER_REJECTED_CODE:
                    raise ExternalRejectionError(message, code=code)
                raise JsonRpcError(code, message)
            return payload.get("result")

        raise TransientExternalFailureError(
            f"JSON-RPC {method} failed after retries: {last_exc}"
        ) from last_exc

    def eth_call(self, *, to: str, data: bytes, block: str = "latest") -> bytes:
        result = self.call("eth_call", [{"to": to, "data": encode_hex(data)}, block])
        return decode_hex(result or "0x")

    def _respect_rate_limit(self) -> None:
        min_interval = max(0, self._settings.min_interval_ms) / 1000.0
        if min_interval <= 0:
            return

        with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_request_at
            if elapsed < min_interval:
                time.sleep(min_interval - elapsed)
            self._last_request_at = time.monotonic()
