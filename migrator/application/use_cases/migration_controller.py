from __future__ import annotations

import logging
from threading import Lock

from migrator.application.dto.migration import MigrationCalculation, MigrationInputs, MigrationSnapshot
from migrator.application.ports.submission_port import SubmissionPort
from migrator.application.use_cases.approval_state_machine import ApprovalStateMachine
from migrator.application.use_cases.build_migration_plan import BuildMigrationPlanUseCase
from migrator.application.use_cases.compute_migration_snapshot import ComputeMigrationSnapshotUseCase
from migrator.domain.entities.approval import PermitResult
from migrator.domain.entities.execution import (
    ExecutionStatus,
    MigrationExecutionState,
    NetworkContext,
    TransactionStatus,
)
from migrator.domain.exceptions import (
    ExternalRejectionError,
    InvariantViolationError,
    MigrationInProgressError,
    MigrationNotReadyError,
    TransientExternalFailureError,
)


logger = logging.getLogger(__name__)


IN_FLIGHT_STATUSES = frozenset({ExecutionStatus.PENDING, ExecutionStatus.SUCCEEDED})


class MigrationExecutionController:
    """Lifecycle of one migration session for one share position.

    Idle -> AwaitingApproval -> Confirming -> Pending -> Succeeded | Failed.
    Every call recomputes from the inputs it is given; the approval machine and
    the execution state are the only state kept between calls.
    """

    def __init__(
        self,
        *,
        approval: ApprovalStateMachine,
        submission: SubmissionPort,
        compute: ComputeMigrationSnapshotUseCase,
        plan_builder: BuildMigrationPlanUseCase,
    ):
        self._approval = approval
        self._submission = submission
        self._compute = compute
        self._plan_builder = plan_builder
        self._state = MigrationExecutionState()
        self._last_failure_reason: str | None = None
        self._aborted = False
        self._submit_lock = Lock()

    @property
    def state(self) -> MigrationExecutionState:
        return self._state

    @property
    def approval(self) -> ApprovalStateMachine:
        return self._approval

    def refresh(self, inputs: MigrationInputs) -> MigrationSnapshot:
        if self._state.status not in IN_FLIGHT_STATUSES and inputs.share_balance > 0:
            self._approval.refresh_allowance(amount=inputs.share_balance)
        try:
            calculation = self._compute.execute(inputs)
        except InvariantViolationError as exc:
            self._abort(exc)
            raise
        self._advance(inputs, calculation)
        return self._snapshot(inputs, calculation)

    def request_approval(self, inputs: MigrationInputs) -> str:
        return self._approval.request_approval(amount=inputs.share_balance)

    def request_permit(self, inputs: MigrationInputs, context: NetworkContext) -> PermitResult | None:
        return self._approval.request_permit(
            amount=inputs.share_balance,
            deadline=self._plan_builder.user_deadline(context),
        )

    def submit_migration(self, inputs: MigrationInputs, context: NetworkContext) -> str:
        if not self._submit_lock.acquire(blocking=False):
            raise MigrationInProgressError("A migration submission is already in flight.")
        try:
            return self._submit(inputs, context)
        finally:
            self._submit_lock.release()

    def _submit(self, inputs: MigrationInputs, context: NetworkContext) -> str:
        if self._state.status != ExecutionStatus.CONFIRMING:
            raise MigrationNotReadyError(
                f"Migration cannot be submitted in state {self._state.status.value}."
            )
        if not self._approval.is_ready():
            raise MigrationNotReadyError("Share token allowance is not ready.")
        permit = self._approval.outcome()
        if permit is not None and permit.deadline < context.block_timestamp:
            logger.warning(
                "migration_controller: permit_expired pair=%s deadline=%s block_timestamp=%s",
                inputs.pair,
                permit.deadline,
                context.block_timestamp,
            )
            self._approval.discard_permit()
            self._transition(MigrationExecutionState(status=ExecutionStatus.AWAITING_APPROVAL))
            raise MigrationNotReadyError("Permit signature has expired, sign a new one.")

        self._transition(MigrationExecutionState(status=ExecutionStatus.PENDING))
        try:
            plan = self._plan_builder.execute(inputs, context, permit=permit)
        except InvariantViolationError as exc:
            self._abort(exc)
            raise
        except Exception:
            self._transition(MigrationExecutionState(status=ExecutionStatus.CONFIRMING))
            raise

        try:
            tx_hash = self._submission.submit(plan)
        except ExternalRejectionError as exc:
            logger.warning("migration_controller: submission_rejected pair=%s reason=%s", inputs.pair, exc.reason)
            self._last_failure_reason = exc.reason
            self._transition(MigrationExecutionState(status=ExecutionStatus.FAILED, reason=exc.reason))
            raise
        except TransientExternalFailureError:
            self._transition(MigrationExecutionState(status=ExecutionStatus.CONFIRMING))
            raise

        logger.info(
            "migration_controller: submitted pair=%s tx=%s actions=%s",
            inputs.pair,
            tx_hash,
            len(plan.actions),
        )
        self._transition(MigrationExecutionState(status=ExecutionStatus.PENDING, tx_hash=tx_hash))
        return tx_hash

    def _advance(self, inputs: MigrationInputs, calculation: MigrationCalculation) -> None:
        status = self._state.status
        if status == ExecutionStatus.SUCCEEDED or self._aborted:
            return

        if status == ExecutionStatus.PENDING:
            self._observe_pending(inputs)
            status = self._state.status
            if status != ExecutionStatus.FAILED:
                return

        if status == ExecutionStatus.FAILED:
            status = (
                ExecutionStatus.AWAITING_APPROVAL if self._approval.is_ready() else ExecutionStatus.IDLE
            )
            self._transition(MigrationExecutionState(status=status))

        ready = self._approval.is_ready() and calculation.is_submittable
        if status == ExecutionStatus.IDLE and inputs.share_balance > 0:
            status = ExecutionStatus.AWAITING_APPROVAL
            self._transition(MigrationExecutionState(status=status))
        if status == ExecutionStatus.AWAITING_APPROVAL and ready:
            self._transition(MigrationExecutionState(status=ExecutionStatus.CONFIRMING))
        elif status == ExecutionStatus.CONFIRMING and not ready:
            self._transition(MigrationExecutionState(status=ExecutionStatus.AWAITING_APPROVAL))

    def _observe_pending(self, inputs: MigrationInputs) -> None:
        tx_hash = self._state.tx_hash
        if tx_hash is None:
            return
        tx_status = self._submission.observe(tx_hash)
        if tx_status == TransactionStatus.CONFIRMED and inputs.share_balance == 0:
            self._transition(MigrationExecutionState(status=ExecutionStatus.SUCCEEDED, tx_hash=tx_hash))
        elif tx_status in (TransactionStatus.REVERTED, TransactionStatus.DROPPED):
            reason = f"Migration transaction {tx_status.value}."
            self._last_failure_reason = reason
            self._transition(
                MigrationExecutionState(status=ExecutionStatus.FAILED, tx_hash=tx_hash, reason=reason)
            )

    def _abort(self, exc: InvariantViolationError) -> None:
        logger.error("migration_controller: invariant_violation error=%s", exc)
        self._aborted = True
        self._last_failure_reason = str(exc)
        self._transition(MigrationExecutionState(status=ExecutionStatus.FAILED, reason=str(exc)))

    def _snapshot(self, inputs: MigrationInputs, calculation: MigrationCalculation) -> MigrationSnapshot:
        return MigrationSnapshot(
            calculation=calculation,
            approval_state=self._approval.state,
            execution_state=self._state,
            is_canonical_source=inputs.is_canonical_source,
            last_failure_reason=self._last_failure_reason,
        )

    def _transition(self, state: MigrationExecutionState) -> None:
        if state.status != self._state.status:
            logger.info(
                "migration_controller: transition from=%s to=%s",
                self._state.status.value,
                state.status.value,
            )
        self._state = state
