from __future__ import annotations

from functools import lru_cache

from migrator.application.dto.migration import MigrationInputs
from migrator.application.use_cases.approval_state_machine import ApprovalStateMachine
from migrator.application.use_cases.build_migration_plan import BuildMigrationPlanUseCase
from migrator.application.use_cases.compute_migration_snapshot import ComputeMigrationSnapshotUseCase
from migrator.application.use_cases.load_migration_inputs import LoadMigrationInputsUseCase
from migrator.application.use_cases.migration_controller import MigrationExecutionController
from migrator.infrastructure.clients.approval_client import RpcApprovalClient
from migrator.infrastructure.clients.json_rpc_client import JsonRpcClient, JsonRpcClientSettings
from migrator.infrastructure.clients.migrator_calldata import MigratorCalldataEncoder
from migrator.infrastructure.clients.pair_state_client import RpcPairStateClient
from migrator.infrastructure.clients.submission_client import RpcSubmissionClient
from migrator.infrastructure.clients.tick_math_oracle import ExactTickMathOracle
from migrator.infrastructure.clients.v3_pool_client import RpcV3PoolClient
from migrator.shared.config import Settings, get_settings


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


@lru_cache(maxsize=1)
def _get_json_rpc_client() -> JsonRpcClient:
    settings = get_app_settings()
    return JsonRpcClient(
        JsonRpcClientSettings(
            rpc_url=settings.rpc_url,
            timeout_seconds=settings.rpc_timeout_seconds,
            max_retries=settings.rpc_max_retries,
            min_interval_ms=settings.rpc_min_interval_ms,
        )
    )


def get_calldata_encoder() -> MigratorCalldataEncoder:
    return MigratorCalldataEncoder()


def get_compute_snapshot_use_case() -> ComputeMigrationSnapshotUseCase:
    settings = get_app_settings()
    return ComputeMigrationSnapshotUseCase(
        tick_math=ExactTickMathOracle(),
        large_difference_percent=settings.large_price_difference_percent,
    )


def get_build_plan_use_case() -> BuildMigrationPlanUseCase:
    settings = get_app_settings()
    return BuildMigrationPlanUseCase(
        compute=get_compute_snapshot_use_case(),
        deadline_window_seconds=settings.deadline_window_seconds,
    )


def get_load_inputs_use_case() -> LoadMigrationInputsUseCase:
    settings = get_app_settings()
    rpc = _get_json_rpc_client()
    return LoadMigrationInputsUseCase(
        pair_port=RpcPairStateClient(rpc),
        destination_port=RpcV3PoolClient(rpc, factory_address=settings.v3_factory_address),
        canonical_factory=settings.v2_factory_address,
    )


def build_migration_controller(inputs: MigrationInputs, *, account: str) -> MigrationExecutionController:
    """One migration session for `account`, signing and sending through the configured node."""
    settings = get_app_settings()
    rpc = _get_json_rpc_client()
    approval_client = RpcApprovalClient(rpc, owner=account, chain_id=settings.chain_id)
    compute = get_compute_snapshot_use_case()
    return MigrationExecutionController(
        approval=ApprovalStateMachine(
            token=inputs.pair,
            spender=settings.v3_migrator_address,
            is_canonical_source=inputs.is_canonical_source,
            approval_port=approval_client,
            permit_port=approval_client,
        ),
        submission=RpcSubmissionClient(
            rpc,
            sender=account,
            migrator_address=settings.v3_migrator_address,
            encoder=get_calldata_encoder(),
        ),
        compute=compute,
        plan_builder=BuildMigrationPlanUseCase(
            compute=compute,
            deadline_window_seconds=settings.deadline_window_seconds,
        ),
    )
