from __future__ import annotations

from decimal import Decimal
from fractions import Fraction

from eth_utils import decode_hex, encode_hex
from fastapi import APIRouter, Depends, HTTPException

from migrator.api.deps import (
    get_app_settings,
    get_build_plan_use_case,
    get_calldata_encoder,
    get_compute_snapshot_use_case,
    get_load_inputs_use_case,
)
from migrator.api.schemas.migrations import (
    DestinationPoolRequest,
    MigrationActionResponse,
    MigrationPlanRequest,
    MigrationPlanResponse,
    MigrationPreviewRequest,
    MigrationPreviewResponse,
)
from migrator.application.dto.migration import (
    LoadMigrationInputsInput,
    MigrationCalculation,
    MigrationInputs,
)
from migrator.application.use_cases.build_migration_plan import BuildMigrationPlanUseCase
from migrator.application.use_cases.compute_migration_snapshot import ComputeMigrationSnapshotUseCase
from migrator.application.use_cases.load_migration_inputs import LoadMigrationInputsUseCase
from migrator.domain.entities.approval import PermitSignature
from migrator.domain.entities.execution import NetworkContext
from migrator.domain.entities.migration_plan import InitializePoolAction, MigrateAction, PermitAction
from migrator.domain.entities.pair import Asset, PoolReserves, TokenPair
from migrator.domain.entities.position import DestinationPoolState, FeeTier, PriceRange
from migrator.domain.exceptions import (
    InputError,
    InvariantViolationError,
    PairNotFoundError,
    TransientExternalFailureError,
)
from migrator.infrastructure.clients.migrator_calldata import MigratorCalldataEncoder
from migrator.shared.config import Settings

router = APIRouter()

_PERCENT_QUANTUM = Decimal("0.0001")


def _int_to_str_or_none(value: int | None) -> str | None:
    return str(value) if value is not None else None


def _percent_to_str(value: Fraction) -> str:
    return str((Decimal(value.numerator) / Decimal(value.denominator)).quantize(_PERCENT_QUANTUM))


def _fee_tier(value: int) -> FeeTier:
    try:
        return FeeTier(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Unsupported fee tier: {value}.") from exc


def _destination_state(req: DestinationPoolRequest) -> DestinationPoolState:
    if req.status == "not_exists":
        return DestinationPoolState.not_exists()
    if req.status == "exists_uninitialized":
        return DestinationPoolState.uninitialized()
    if req.tick_current is None or not req.sqrt_price_x96:
        raise HTTPException(
            status_code=400,
            detail="tick_current and sqrt_price_x96 are required for an existing pool.",
        )
    return DestinationPoolState.with_price(
        tick_current=req.tick_current,
        sqrt_price_x96=req.sqrt_price_x96,
    )


def _to_inputs(req: MigrationPreviewRequest, settings: Settings) -> MigrationInputs:
    try:
        tokens = TokenPair(
            token0=Asset(address=req.token0_address, decimals=req.token0_decimals, symbol=req.token0_symbol),
            token1=Asset(address=req.token1_address, decimals=req.token1_decimals, symbol=req.token1_symbol),
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return MigrationInputs(
        pair=req.pair,
        tokens=tokens,
        is_canonical_source=req.is_canonical_source,
        reserves=PoolReserves(
            reserve0=req.reserve0,
            reserve1=req.reserve1,
            total_supply=req.total_supply,
        ),
        share_balance=req.share_balance,
        destination=_destination_state(req.destination),
        fee_tier=_fee_tier(req.fee_tier),
        price_range=PriceRange(tick_lower=req.tick_lower, tick_upper=req.tick_upper),
        slippage_bps=req.slippage_bps if req.slippage_bps is not None else settings.default_slippage_bps,
    )


def _compute(use_case: ComputeMigrationSnapshotUseCase, inputs: MigrationInputs) -> MigrationCalculation:
    try:
        return use_case.execute(inputs)
    except InvariantViolationError as exc:
        raise HTTPException(status_code=500, detail=f"Migration aborted: {exc}") from exc


def _preview_response(inputs: MigrationInputs, calculation: MigrationCalculation) -> MigrationPreviewResponse:
    valued = calculation.valued
    position = calculation.position
    minimums = calculation.minimums
    refunds = calculation.refunds
    projection = calculation.projection
    divergence = calculation.divergence
    initial_sqrt_price = None
    if projection is not None and inputs.destination.needs_initialization:
        initial_sqrt_price = projection.price_state.sqrt_price_x96

    return MigrationPreviewResponse(
        pair=inputs.pair,
        is_canonical_source=inputs.is_canonical_source,
        destination_status=inputs.destination.status.value,
        valued_amount0=_int_to_str_or_none(valued.amount0 if valued else None),
        valued_amount1=_int_to_str_or_none(valued.amount1 if valued else None),
        position_amount0=_int_to_str_or_none(position.amount0 if position else None),
        position_amount1=_int_to_str_or_none(position.amount1 if position else None),
        amount0_min=_int_to_str_or_none(minimums.amount0_min if minimums else None),
        amount1_min=_int_to_str_or_none(minimums.amount1_min if minimums else None),
        refund0=_int_to_str_or_none(refunds.refund0 if refunds else None),
        refund1=_int_to_str_or_none(refunds.refund1 if refunds else None),
        tick_lower=projection.tick_lower if projection else None,
        tick_upper=projection.tick_upper if projection else None,
        initial_sqrt_price_x96=_int_to_str_or_none(initial_sqrt_price),
        price_difference_percent=_percent_to_str(divergence.percent) if divergence else None,
        large_price_difference=bool(divergence and divergence.is_large),
        out_of_range=calculation.out_of_range,
        invalid_range=calculation.invalid_range,
        input_error=calculation.input_error,
    )


def _action_type(action) -> str:
    if isinstance(action, PermitAction):
        return "permit"
    if isinstance(action, InitializePoolAction):
        return "initialize_pool"
    if isinstance(action, MigrateAction):
        return "migrate"
    raise TypeError(f"Unsupported migration action: {type(action).__name__}")


@router.post("/v1/migrations/preview", response_model=MigrationPreviewResponse)
def preview_migration(
    req: MigrationPreviewRequest,
    settings: Settings = Depends(get_app_settings),
    use_case: ComputeMigrationSnapshotUseCase = Depends(get_compute_snapshot_use_case),
):
    inputs = _to_inputs(req, settings)
    calculation = _compute(use_case, inputs)
    return _preview_response(inputs, calculation)


@router.post("/v1/migrations/plan", response_model=MigrationPlanResponse)
def plan_migration(
    req: MigrationPlanRequest,
    settings: Settings = Depends(get_app_settings),
    use_case: BuildMigrationPlanUseCase = Depends(get_build_plan_use_case),
    encoder: MigratorCalldataEncoder = Depends(get_calldata_encoder),
):
    inputs = _to_inputs(req, settings)
    permit = None
    if req.permit is not None:
        try:
            permit = PermitSignature(
                v=req.permit.v,
                r=decode_hex(req.permit.r),
                s=decode_hex(req.permit.s),
                deadline=req.permit.deadline,
                amount=req.permit.amount,
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=f"Invalid permit signature: {exc}") from exc

    context = NetworkContext(
        account=req.account,
        chain_id=settings.chain_id,
        block_timestamp=req.block_timestamp,
    )
    try:
        plan = use_case.execute(inputs, context, permit=permit)
    except InvariantViolationError as exc:
        raise HTTPException(status_code=500, detail=f"Migration aborted: {exc}") from exc
    except InputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return MigrationPlanResponse(
        target=settings.v3_migrator_address,
        calldata=encode_hex(encoder.encode_multicall(plan)),
        deadline=plan.migrate.deadline,
        actions=[
            MigrationActionResponse(type=_action_type(action), calldata=encode_hex(encoder.encode_action(action)))
            for action in plan.actions
        ],
    )


@router.get("/v1/migrations/{pair}", response_model=MigrationPreviewResponse)
def get_migration(
    pair: str,
    account: str,
    fee_tier: int = 3000,
    tick_lower: int | None = None,
    tick_upper: int | None = None,
    slippage_bps: int | None = None,
    settings: Settings = Depends(get_app_settings),
    load_use_case: LoadMigrationInputsUseCase = Depends(get_load_inputs_use_case),
    compute_use_case: ComputeMigrationSnapshotUseCase = Depends(get_compute_snapshot_use_case),
):
    try:
        inputs = load_use_case.execute(
            LoadMigrationInputsInput(
                pair=pair,
                account=account,
                fee_tier=_fee_tier(fee_tier),
                price_range=PriceRange(tick_lower=tick_lower, tick_upper=tick_upper),
                slippage_bps=slippage_bps if slippage_bps is not None else settings.default_slippage_bps,
            )
        )
    except PairNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except TransientExternalFailureError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    calculation = _compute(compute_use_case, inputs)
    return _preview_response(inputs, calculation)
