from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ExecutionStatus(str, Enum):
    IDLE = "idle"
    AWAITING_APPROVAL = "awaiting_approval"
    CONFIRMING = "confirming"
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"
    DROPPED = "dropped"


@dataclass(frozen=True)
class MigrationExecutionState:
    status: ExecutionStatus = ExecutionStatus.IDLE
    tx_hash: str | None = None
    reason: str | None = None


@dataclass(frozen=True)
class NetworkContext:
    account: str
    chain_id: int
    block_timestamp: int
