from __future__ import annotations

from typing import Protocol

from migrator.domain.entities.execution import TransactionStatus
from migrator.domain.entities.migration_plan import MigrationPlan


class SubmissionPort(Protocol):
    def submit(self, plan: MigrationPlan) -> str:
        ...

    def observe(self, tx_hash: str) -> TransactionStatus:
        ...
