from __future__ import annotations

from typing import Protocol

from migrator.domain.entities.approval import PermitResult
from migrator.domain.entities.execution import TransactionStatus


class ApprovalPort(Protocol):
    def approve(self, *, token: str, spender: str, amount: int) -> str:
        """Sends the approval transaction and returns its hash."""
        ...

    def allowance(self, *, token: str, spender: str) -> int:
        ...

    def observe(self, tx_hash: str) -> TransactionStatus:
        ...


class PermitPort(Protocol):
    def sign_permit(self, *, token: str, spender: str, amount: int, deadline: int) -> PermitResult:
        ...
