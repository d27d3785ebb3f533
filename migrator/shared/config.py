from __future__ import annotations

import json
import os
from dataclasses import dataclass
from fractions import Fraction

from dotenv import load_dotenv


load_dotenv()


# Mainnet deployments
DEFAULT_V2_FACTORY = "0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f"
DEFAULT_V3_FACTORY_ADDRESSES = {"1": "0x1F98431c8aD98523631AE4a59f267346ea31F984"}
DEFAULT_V3_MIGRATOR_ADDRESSES = {"1": "0xA5644E29708357803b5A882D272c41cC0dF92B34"}


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _json(name: str, default: dict) -> dict:
    value = _env(name)
    if not value:
        return dict(default)
    return json.loads(value)


@dataclass(frozen=True)
class Settings:
    rpc_url: str
    rpc_timeout_seconds: float
    rpc_max_retries: int
    rpc_min_interval_ms: int
    chain_id: int
    v2_factory_address: str
    v3_factory_addresses: dict
    v3_migrator_addresses: dict
    deadline_window_seconds: int
    default_slippage_bps: int
    large_price_difference_percent: Fraction

    @property
    def v3_factory_address(self) -> str:
        return self.v3_factory_addresses[str(self.chain_id)]

    @property
    def v3_migrator_address(self) -> str:
        return self.v3_migrator_addresses[str(self.chain_id)]


def get_settings() -> Settings:
    return Settings(
        rpc_url=_env("RPC_URL", "http://localhost:8545"),
        rpc_timeout_seconds=float(_env("RPC_TIMEOUT_SECONDS", "10")),
        rpc_max_retries=int(_env("RPC_MAX_RETRIES", "3")),
        rpc_min_interval_ms=int(_env("RPC_MIN_INTERVAL_MS", "0")),
        chain_id=int(_env("CHAIN_ID", "1")),
        v2_factory_address=_env("V2_FACTORY_ADDRESS", DEFAULT_V2_FACTORY),
        v3_factory_addresses=_json("V3_FACTORY_ADDRESSES", DEFAULT_V3_FACTORY_ADDRESSES),
        v3_migrator_addresses=_json("V3_MIGRATOR_ADDRESSES", DEFAULT_V3_MIGRATOR_ADDRESSES),
        deadline_window_seconds=int(_env("DEADLINE_WINDOW_SECONDS", "1200")),
        default_slippage_bps=int(_env("DEFAULT_SLIPPAGE_BPS", "50")),
        large_price_difference_percent=Fraction(_env("LARGE_PRICE_DIFFERENCE_PERCENT", "2")),
    )
