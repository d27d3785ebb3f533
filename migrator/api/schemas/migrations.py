from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class DestinationPoolRequest(BaseModel):
    status: Literal["not_exists", "exists_uninitialized", "exists"] = Field(
        ..., description="State of the destination pool for the chosen fee tier."
    )
    tick_current: int | None = Field(None, description="Current tick when the pool exists.")
    sqrt_price_x96: int | None = Field(None, description="Current sqrt price (Q64.96) when the pool exists.")


class MigrationPreviewRequest(BaseModel):
    pair: str = Field(..., description="Source pair (share token) address.")
    token0_address: str
    token0_decimals: int = 18
    token0_symbol: str = ""
    token1_address: str
    token1_decimals: int = 18
    token1_symbol: str = ""
    is_canonical_source: bool = Field(True, description="False for pairs deployed by another factory.")
    reserve0: int = Field(..., ge=0)
    reserve1: int = Field(..., ge=0)
    total_supply: int = Field(..., ge=0)
    share_balance: int = Field(..., ge=0)
    fee_tier: int = Field(3000, description="Destination fee tier (500, 3000, 10000).")
    tick_lower: int | None = Field(None, description="Lower tick; omit both ticks for full range.")
    tick_upper: int | None = Field(None, description="Upper tick; omit both ticks for full range.")
    slippage_bps: int | None = Field(None, description="Slippage tolerance in basis points.")
    destination: DestinationPoolRequest


class PermitSignatureRequest(BaseModel):
    v: int
    r: str
    s: str
    deadline: int
    amount: int


class MigrationPlanRequest(MigrationPreviewRequest):
    account: str = Field(..., description="Recipient of the new position.")
    block_timestamp: int = Field(..., description="Latest block timestamp, base of the deadline.")
    permit: PermitSignatureRequest | None = None


class MigrationPreviewResponse(BaseModel):
    pair: str
    is_canonical_source: bool
    destination_status: str
    valued_amount0: str | None
    valued_amount1: str | None
    position_amount0: str | None
    position_amount1: str | None
    amount0_min: str | None
    amount1_min: str | None
    refund0: str | None
    refund1: str | None
    tick_lower: int | None
    tick_upper: int | None
    initial_sqrt_price_x96: str | None
    price_difference_percent: str | None
    large_price_difference: bool
    out_of_range: bool
    invalid_range: bool
    input_error: str | None


class MigrationActionResponse(BaseModel):
    type: Literal["permit", "initialize_pool", "migrate"]
    calldata: str


class MigrationPlanResponse(BaseModel):
    target: str
    calldata: str
    deadline: int
    actions: list[MigrationActionResponse]
