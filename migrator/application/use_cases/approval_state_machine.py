from __future__ import annotations

import logging

from migrator.application.ports.approval_port import ApprovalPort, PermitPort
from migrator.domain.entities.approval import (
    ApprovalState,
    PermitResult,
    PermitSignature,
    PermitStatus,
)
from migrator.domain.entities.execution import TransactionStatus
from migrator.domain.exceptions import (
    ApprovalStateError,
    ExternalRejectionError,
    TransientExternalFailureError,
)


logger = logging.getLogger(__name__)


READY_STATES = frozenset({ApprovalState.APPROVED, ApprovalState.SIGNED_PERMIT})


class ApprovalStateMachine:
    """Allowance acquisition for the migrator contract on the share token.

    Canonical pairs try an off-chain permit first and fall back to an on-chain
    approval unless the user declined the signature. Pairs from other factories
    are not guaranteed to implement permit and always use the approval path.
    """

    def __init__(
        self,
        *,
        token: str,
        spender: str,
        is_canonical_source: bool,
        approval_port: ApprovalPort,
        permit_port: PermitPort,
    ):
        self._token = token
        self._spender = spender
        self._is_canonical_source = is_canonical_source
        self._approval_port = approval_port
        self._permit_port = permit_port
        self._state = ApprovalState.NOT_APPROVED
        self._signature: PermitSignature | None = None
        self._approval_tx_hash: str | None = None

    @property
    def state(self) -> ApprovalState:
        return self._state

    def is_ready(self) -> bool:
        return self._state in READY_STATES

    def outcome(self) -> PermitSignature | None:
        if self._state == ApprovalState.SIGNED_PERMIT:
            return self._signature
        return None

    def request_approval(self, *, amount: int) -> str:
        self._require_not_approved("request_approval")
        self._transition(ApprovalState.PENDING)
        try:
            tx_hash = self._approval_port.approve(
                token=self._token,
                spender=self._spender,
                amount=amount,
            )
        except ExternalRejectionError as exc:
            logger.warning("approval: rejected token=%s reason=%s", self._token, exc.reason)
            self._transition(ApprovalState.NOT_APPROVED)
            raise
        except TransientExternalFailureError:
            self._transition(ApprovalState.NOT_APPROVED)
            raise

        self._approval_tx_hash = tx_hash
        logger.info("approval: submitted token=%s tx=%s", self._token, tx_hash)
        return tx_hash

    def request_permit(self, *, amount: int, deadline: int) -> PermitResult | None:
        self._require_not_approved("request_permit")
        if not self._is_canonical_source:
            logger.info("approval: permit_skipped_non_canonical token=%s", self._token)
            self.request_approval(amount=amount)
            return None

        result = self._permit_port.sign_permit(
            token=self._token,
            spender=self._spender,
            amount=amount,
            deadline=deadline,
        )
        if result.status == PermitStatus.SIGNED and result.signature is not None:
            self._signature = result.signature
            self._transition(ApprovalState.SIGNED_PERMIT)
        elif result.status == PermitStatus.USER_REJECTED:
            logger.info("approval: permit_declined token=%s", self._token)
        else:
            logger.warning(
                "approval: permit_failed_fallback_to_approve token=%s message=%s",
                self._token,
                result.message,
            )
            self.request_approval(amount=amount)
        return result

    def on_approval_confirmed(self) -> None:
        if self._state == ApprovalState.PENDING:
            self._transition(ApprovalState.APPROVED)

    def on_approval_reverted(self) -> None:
        if self._state == ApprovalState.PENDING:
            self._approval_tx_hash = None
            self._transition(ApprovalState.NOT_APPROVED)

    def discard_permit(self) -> None:
        if self._state == ApprovalState.SIGNED_PERMIT:
            self._signature = None
            self._transition(ApprovalState.NOT_APPROVED)

    def observe_approval(self) -> None:
        if self._state != ApprovalState.PENDING or self._approval_tx_hash is None:
            return
        status = self._approval_port.observe(self._approval_tx_hash)
        if status == TransactionStatus.CONFIRMED:
            self.on_approval_confirmed()
        elif status in (TransactionStatus.REVERTED, TransactionStatus.DROPPED):
            logger.warning(
                "approval: not_mined token=%s tx=%s status=%s",
                self._token,
                self._approval_tx_hash,
                status.value,
            )
            self.on_approval_reverted()

    def refresh_allowance(self, *, amount: int) -> None:
        if self._state == ApprovalState.SIGNED_PERMIT:
            return
        self.observe_approval()
        allowance = self._approval_port.allowance(token=self._token, spender=self._spender)
        self.sync_allowance(allowance=allowance, amount=amount)

    def sync_allowance(self, *, allowance: int, amount: int) -> None:
        if self._state == ApprovalState.SIGNED_PERMIT:
            return
        if amount > 0 and allowance >= amount:
            if self._state != ApprovalState.APPROVED:
                self._transition(ApprovalState.APPROVED)
        elif self._state == ApprovalState.APPROVED:
            self._transition(ApprovalState.NOT_APPROVED)

    def _require_not_approved(self, command: str) -> None:
        if self._state != ApprovalState.NOT_APPROVED:
            raise ApprovalStateError(f"{command} is not allowed in state {self._state.value}.")

    def _transition(self, state: ApprovalState) -> None:
        if state != self._state:
            logger.info(
                "approval: transition token=%s from=%s to=%s",
                self._token,
                self._state.value,
                state.value,
            )
        self._state = state
