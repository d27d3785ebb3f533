from __future__ import annotations

from fractions import Fraction

from eth_utils import function_signature_to_4byte_selector
from fastapi.testclient import TestClient

from migrator.api.deps import (
    get_app_settings,
    get_build_plan_use_case,
    get_compute_snapshot_use_case,
    get_load_inputs_use_case,
)
from migrator.application.use_cases.build_migration_plan import BuildMigrationPlanUseCase
from migrator.application.use_cases.compute_migration_snapshot import ComputeMigrationSnapshotUseCase
from migrator.domain.entities.position import PoolPriceState, ProjectedPosition
from migrator.domain.exceptions import PairNotFoundError, TransientExternalFailureError
from migrator.main import app
from migrator.shared.config import Settings

PAIR = "0x3333333333333333333333333333333333333333"
ACCOUNT = "0x4444444444444444444444444444444444444444"
MIGRATOR = "0x5555555555555555555555555555555555555555"


class FakeTickMath:
    def __init__(self, *, overshoot: int = 0):
        self.overshoot = overshoot

    def price_to_tick(self, price: Fraction) -> int:
        _ = price
        return 6932

    def sqrt_ratio_at_tick(self, tick: int) -> int:
        _ = tick
        return 112045541949572279837463876454

    def project_amounts(
        self,
        *,
        price_state: PoolPriceState,
        tick_lower: int,
        tick_upper: int,
        amount0_max: int,
        amount1_max: int,
    ) -> ProjectedPosition:
        _ = (price_state, tick_lower, tick_upper)
        return ProjectedPosition(amount0=amount0_max + self.overshoot, amount1=amount1_max)


class FakeLoadInputsUseCase:
    def __init__(self, error: Exception):
        self._error = error

    def execute(self, _command):
        raise self._error


def _settings() -> Settings:
    return Settings(
        rpc_url="http://node.local",
        rpc_timeout_seconds=1,
        rpc_max_retries=1,
        rpc_min_interval_ms=0,
        chain_id=1,
        v2_factory_address="0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f",
        v3_factory_addresses={"1": "0x1F98431c8aD98523631AE4a59f267346ea31F984"},
        v3_migrator_addresses={"1": MIGRATOR},
        deadline_window_seconds=1200,
        default_slippage_bps=50,
        large_price_difference_percent=Fraction(2),
    )


def _client(tick_math: FakeTickMath | None = None) -> TestClient:
    compute = ComputeMigrationSnapshotUseCase(tick_math=tick_math or FakeTickMath())
    app.dependency_overrides[get_app_settings] = _settings
    app.dependency_overrides[get_compute_snapshot_use_case] = lambda: compute
    app.dependency_overrides[get_build_plan_use_case] = lambda: BuildMigrationPlanUseCase(
        compute=compute, deadline_window_seconds=1200
    )
    return TestClient(app)


def _payload(**overrides) -> dict:
    payload = {
        "pair": PAIR,
        "token0_address": "0x1111111111111111111111111111111111111111",
        "token1_address": "0x2222222222222222222222222222222222222222",
        "reserve0": 1_000_000,
        "reserve1": 2_000_000,
        "total_supply": 1000,
        "share_balance": 10,
        "destination": {
            "status": "exists",
            "tick_current": 6931,
            "sqrt_price_x96": 112045541949572279837463876454,
        },
    }
    payload.update(overrides)
    return payload


def test_preview_returns_amounts_as_strings():
    client = _client()

    response = client.post("/v1/migrations/preview", json=_payload())

    assert response.status_code == 200
    body = response.json()
    assert (body["valued_amount0"], body["valued_amount1"]) == ("10000", "20000")
    assert (body["amount0_min"], body["amount1_min"]) == ("9950", "19900")
    assert (body["refund0"], body["refund1"]) == ("0", "0")
    assert (body["tick_lower"], body["tick_upper"]) == (-887220, 887220)
    assert body["destination_status"] == "exists"
    assert body["initial_sqrt_price_x96"] is None
    assert body["large_price_difference"] is False
    assert body["input_error"] is None

    app.dependency_overrides.clear()


def test_preview_reports_input_errors_in_body():
    client = _client()

    response = client.post("/v1/migrations/preview", json=_payload(tick_lower=600, tick_upper=60))

    assert response.status_code == 200
    body = response.json()
    assert body["invalid_range"] is True
    assert body["input_error"] == "tick_lower must be lower than tick_upper."
    assert body["position_amount0"] is None

    app.dependency_overrides.clear()


def test_preview_reports_ticks_outside_the_window_in_body():
    client = _client()

    response = client.post("/v1/migrations/preview", json=_payload(tick_lower=-900_000, tick_upper=60))

    assert response.status_code == 200
    body = response.json()
    assert body["invalid_range"] is True
    assert body["input_error"] == "Ticks must be within [-887272, 887272]."

    app.dependency_overrides.clear()


def test_preview_rejects_unsupported_fee_tier():
    client = _client()

    response = client.post("/v1/migrations/preview", json=_payload(fee_tier=100))

    assert response.status_code == 400

    app.dependency_overrides.clear()


def test_preview_invariant_violation_is_a_server_error():
    client = _client(FakeTickMath(overshoot=1))

    response = client.post("/v1/migrations/preview", json=_payload())

    assert response.status_code == 500
    assert response.json()["detail"].startswith("Migration aborted")

    app.dependency_overrides.clear()


def test_plan_for_new_pool_with_permit():
    client = _client()

    response = client.post(
        "/v1/migrations/plan",
        json=_payload(
            destination={"status": "not_exists"},
            account=ACCOUNT,
            block_timestamp=1_000_000,
            permit={
                "v": 27,
                "r": "0x" + "01" * 32,
                "s": "0x" + "02" * 32,
                "deadline": 1_000_600,
                "amount": 10,
            },
        ),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["target"] == MIGRATOR
    assert body["deadline"] == 1_000_600
    assert [action["type"] for action in body["actions"]] == ["permit", "initialize_pool", "migrate"]
    assert body["calldata"].startswith("0x" + function_signature_to_4byte_selector("multicall(bytes[])").hex())

    app.dependency_overrides.clear()


def test_plan_with_expired_permit_is_bad_request():
    client = _client()

    response = client.post(
        "/v1/migrations/plan",
        json=_payload(
            account=ACCOUNT,
            block_timestamp=1_000_000,
            permit={
                "v": 27,
                "r": "0x" + "01" * 32,
                "s": "0x" + "02" * 32,
                "deadline": 999_999,
                "amount": 10,
            },
        ),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Permit signature has expired, sign a new one."

    app.dependency_overrides.clear()


def test_plan_with_input_error_is_bad_request():
    client = _client()

    response = client.post(
        "/v1/migrations/plan",
        json=_payload(slippage_bps=20_000, account=ACCOUNT, block_timestamp=1_000_000),
    )

    assert response.status_code == 400

    app.dependency_overrides.clear()


def test_get_migration_maps_missing_pair_to_404():
    client = _client()
    app.dependency_overrides[get_load_inputs_use_case] = lambda: FakeLoadInputsUseCase(
        PairNotFoundError("Pair not found.")
    )

    response = client.get(f"/v1/migrations/{PAIR}", params={"account": ACCOUNT})

    assert response.status_code == 404

    app.dependency_overrides.clear()


def test_get_migration_maps_rpc_failure_to_502():
    client = _client()
    app.dependency_overrides[get_load_inputs_use_case] = lambda: FakeLoadInputsUseCase(
        TransientExternalFailureError("node unavailable")
    )

    response = client.get(f"/v1/migrations/{PAIR}", params={"account": ACCOUNT})

    assert response.status_code == 502

    app.dependency_overrides.clear()
