from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ApprovalState(str, Enum):
    NOT_APPROVED = "not_approved"
    PENDING = "pending"
    APPROVED = "approved"
    SIGNED_PERMIT = "signed_permit"


class PermitStatus(str, Enum):
    SIGNED = "signed"
    USER_REJECTED = "user_rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class PermitSignature:
    v: int
    r: bytes
    s: bytes
    deadline: int
    amount: int


@dataclass(frozen=True)
class PermitResult:
    status: PermitStatus
    signature: PermitSignature | None = None
    message: str = ""

    @classmethod
    def signed(cls, signature: PermitSignature) -> "PermitResult":
        return cls(status=PermitStatus.SIGNED, signature=signature)

    @classmethod
    def user_rejected(cls, message: str = "User rejected the signature request.") -> "PermitResult":
        return cls(status=PermitStatus.USER_REJECTED, message=message)

    @classmethod
    def failed(cls, message: str) -> "PermitResult":
        return cls(status=PermitStatus.FAILED, message=message)
