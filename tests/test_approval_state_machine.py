from __future__ import annotations

import pytest

from migrator.application.use_cases.approval_state_machine import ApprovalStateMachine
from migrator.domain.entities.approval import ApprovalState, PermitResult, PermitSignature, PermitStatus
from migrator.domain.entities.execution import TransactionStatus
from migrator.domain.exceptions import ApprovalStateError, ExternalRejectionError

PAIR = "0x3333333333333333333333333333333333333333"
MIGRATOR = "0x5555555555555555555555555555555555555555"


class FakeApprovalPort:
    def __init__(self, *, allowance: int = 0, error: Exception | None = None):
        self.approve_calls = []
        self._allowance = allowance
        self._error = error
        self.status = TransactionStatus.PENDING
        self.observed = []

    def approve(self, *, token: str, spender: str, amount: int) -> str:
        self.approve_calls.append((token, spender, amount))
        if self._error is not None:
            raise self._error
        return "0xapprove"

    def allowance(self, *, token: str, spender: str) -> int:
        _ = (token, spender)
        return self._allowance

    def observe(self, tx_hash: str) -> TransactionStatus:
        self.observed.append(tx_hash)
        return self.status


class FakePermitPort:
    def __init__(self, result: PermitResult):
        self.sign_calls = []
        self._result = result

    def sign_permit(self, *, token: str, spender: str, amount: int, deadline: int) -> PermitResult:
        self.sign_calls.append((token, spender, amount, deadline))
        return self._result


SIGNATURE = PermitSignature(v=27, r=b"\x01" * 32, s=b"\x02" * 32, deadline=1_500, amount=10)


def _machine(*, canonical: bool = True, permit: PermitResult | None = None, approval=None):
    approval_port = approval or FakeApprovalPort()
    permit_port = FakePermitPort(permit or PermitResult.signed(SIGNATURE))
    machine = ApprovalStateMachine(
        token=PAIR,
        spender=MIGRATOR,
        is_canonical_source=canonical,
        approval_port=approval_port,
        permit_port=permit_port,
    )
    return machine, approval_port, permit_port


def test_signed_permit_needs_no_approval_transaction():
    machine, approval_port, permit_port = _machine()

    result = machine.request_permit(amount=10, deadline=1_500)

    assert result.status == PermitStatus.SIGNED
    assert machine.state == ApprovalState.SIGNED_PERMIT
    assert machine.is_ready() is True
    assert machine.outcome() == SIGNATURE
    assert permit_port.sign_calls == [(PAIR, MIGRATOR, 10, 1_500)]
    assert approval_port.approve_calls == []


def test_user_rejected_permit_does_not_fall_back():
    machine, approval_port, _ = _machine(permit=PermitResult.user_rejected())

    result = machine.request_permit(amount=10, deadline=1_500)

    assert result.status == PermitStatus.USER_REJECTED
    assert machine.state == ApprovalState.NOT_APPROVED
    assert approval_port.approve_calls == []


def test_failed_permit_falls_back_to_exactly_one_approval():
    machine, approval_port, _ = _machine(permit=PermitResult.failed("eth_signTypedData_v4 unsupported"))

    result = machine.request_permit(amount=10, deadline=1_500)

    assert result.status == PermitStatus.FAILED
    assert machine.state == ApprovalState.PENDING
    assert approval_port.approve_calls == [(PAIR, MIGRATOR, 10)]


def test_non_canonical_source_never_signs():
    machine, approval_port, permit_port = _machine(canonical=False)

    result = machine.request_permit(amount=10, deadline=1_500)

    assert result is None
    assert permit_port.sign_calls == []
    assert approval_port.approve_calls == [(PAIR, MIGRATOR, 10)]
    assert machine.state == ApprovalState.PENDING


def test_rejected_approval_returns_to_not_approved():
    approval = FakeApprovalPort(error=ExternalRejectionError("User denied transaction signature.", code=4001))
    machine, _, _ = _machine(approval=approval)

    with pytest.raises(ExternalRejectionError):
        machine.request_approval(amount=10)

    assert machine.state == ApprovalState.NOT_APPROVED


def test_confirmed_approval_becomes_ready():
    machine, _, _ = _machine()
    machine.request_approval(amount=10)

    machine.on_approval_confirmed()

    assert machine.state == ApprovalState.APPROVED
    assert machine.outcome() is None


def test_reverted_approval_can_be_retried():
    machine, approval_port, _ = _machine()
    machine.request_approval(amount=10)

    machine.on_approval_reverted()
    machine.request_approval(amount=10)

    assert len(approval_port.approve_calls) == 2


def test_approval_commands_rejected_outside_not_approved():
    machine, _, _ = _machine()
    machine.request_approval(amount=10)

    with pytest.raises(ApprovalStateError):
        machine.request_approval(amount=10)
    with pytest.raises(ApprovalStateError):
        machine.request_permit(amount=10, deadline=1_500)


def test_existing_allowance_counts_as_approved():
    machine, _, _ = _machine(approval=FakeApprovalPort(allowance=10))

    machine.refresh_allowance(amount=10)

    assert machine.state == ApprovalState.APPROVED

    machine.sync_allowance(allowance=9, amount=10)

    assert machine.state == ApprovalState.NOT_APPROVED


def test_signed_permit_ignores_allowance_reads():
    machine, _, _ = _machine(approval=FakeApprovalPort(allowance=0))
    machine.request_permit(amount=10, deadline=1_500)

    machine.refresh_allowance(amount=10)

    assert machine.state == ApprovalState.SIGNED_PERMIT


def test_confirmed_approval_transaction_is_observed_on_refresh():
    approval = FakeApprovalPort(allowance=10)
    machine, _, _ = _machine(approval=approval)
    machine.request_approval(amount=10)

    approval.status = TransactionStatus.CONFIRMED
    machine.refresh_allowance(amount=10)

    assert approval.observed == ["0xapprove"]
    assert machine.state == ApprovalState.APPROVED


def test_reverted_approval_transaction_is_observed_on_refresh():
    approval = FakeApprovalPort(allowance=0)
    machine, _, _ = _machine(approval=approval)
    machine.request_approval(amount=10)

    machine.refresh_allowance(amount=10)
    assert machine.state == ApprovalState.PENDING

    approval.status = TransactionStatus.REVERTED
    machine.refresh_allowance(amount=10)

    assert machine.state == ApprovalState.NOT_APPROVED
    machine.request_approval(amount=10)
    assert len(approval.approve_calls) == 2


def test_discarded_permit_returns_to_not_approved():
    machine, _, _ = _machine()
    machine.request_permit(amount=10, deadline=1_500)

    machine.discard_permit()

    assert machine.state == ApprovalState.NOT_APPROVED
    assert machine.outcome() is None
    assert machine.is_ready() is False
