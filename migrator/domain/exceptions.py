from __future__ import annotations


class DomainError(Exception):
    """Base for domain errors."""


class InputError(DomainError):
    """Caller-fixable input problem. Never retried internally."""


class InvalidRangeError(InputError):
    """Range bounds the destination pool cannot mint."""


class InvalidToleranceError(InputError):
    """Slippage tolerance outside [0, 10000] basis points."""


class InsufficientSupplyError(InputError):
    """Share token total supply is zero, the pool has no valuation."""


class ShareValuationInputError(InputError):
    """Negative amounts or balance above total supply."""


class MissingSourcePriceError(InputError):
    """Source pool has no spot price to seed a new destination pool."""


class PairNotFoundError(InputError):
    """Invalid pair address or the address is not a pair."""


class ApprovalStateError(InputError):
    """Approval command issued from a state that does not accept it."""


class MigrationNotReadyError(InputError):
    """Submission requested outside the confirming state."""


class MigrationInProgressError(InputError):
    """Another submission for the same balance is already in flight."""


class ExternalRejectionError(DomainError):
    """User declined a signature or a transaction."""

    def __init__(self, reason: str, *, code: int | None = None):
        super().__init__(reason)
        self.reason = reason
        self.code = code


class TransientExternalFailureError(DomainError):
    """Chain read or RPC failure. The caller is expected to re-poll."""


class InvariantViolationError(DomainError):
    """Inconsistent numbers. Indicates a logic defect, abort the migration flow."""
