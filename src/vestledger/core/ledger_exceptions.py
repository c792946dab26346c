"""
Exception hierarchy for vestledger.

Provides typed exceptions for vesting and token operations so callers and
automation agents can tell a retry-later condition (nothing due yet) from a
permanent rejection (wrong amount, wrong caller).
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class LedgerError(Exception):
    """Base exception for all vestledger errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the operation can succeed if resubmitted later
    """

    recoverable = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if recoverable is not None:
            self.recoverable = recoverable


# ==================== Token Errors ====================


class TokenError(LedgerError):
    """Raised by the token ledger when a transfer, approval or mint fails.

    Examples: insufficient balance, insufficient allowance, zero address.
    """
    pass


# ==================== Concurrency Errors ====================


class ReentrantCall(LedgerError):
    """Raised when a guarded operation is entered while already in progress."""
    pass


# ==================== Vesting Errors ====================


class VestingError(LedgerError):
    """Base class for vesting ledger rejections.

    Every vesting error leaves ledger state exactly as it was before the call.
    """
    pass


class AlreadyDeposited(VestingError):
    """Raised when a deposit is attempted after the pool was funded."""
    pass


class AlreadyActivated(VestingError):
    """Raised when the schedule is already active."""
    pass


class NotDeposited(VestingError):
    """Raised when explicit activation is attempted before funding."""
    pass


class AmountMismatch(VestingError):
    """Raised when a deposit does not equal the deposit limit exactly."""

    def __init__(self, message: str, expected: int = 0, actual: int = 0, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.expected = expected
        self.actual = actual


class InsufficientAuthorization(VestingError):
    """Raised when the depositor has not approved enough tokens to the ledger."""
    pass


class NotActivated(VestingError):
    """Raised when claiming against a schedule that is not active."""
    pass


class NothingDue(VestingError):
    """Raised when no unclaimed installment is currently unlocked."""
    recoverable = True  # Becomes claimable once the next period starts


class VestingNotStarted(NothingDue):
    """Raised when claiming before the first installment timestamp."""
    pass


class InstallmentNotUnlocked(NothingDue):
    """Raised when an automation trigger asks for installments still locked."""
    pass


class InvalidPerformData(VestingError):
    """Raised when keeper perform data is not a well-formed installment count."""
    pass


class StaleInstallmentCount(VestingError):
    """Raised when an automation trigger carries no new progress.

    Duplicate or replayed perform requests land here; the agent should poll
    again instead of resubmitting the same count.
    """
    recoverable = True


class Unauthorized(VestingError):
    """Raised when the caller is not permitted to run the operation."""
    pass


class DirectValueTransferRejected(VestingError):
    """Raised for any attempt to send native currency to the ledger."""
    pass


__all__ = [
    "LedgerError",
    "TokenError",
    "ReentrantCall",
    "VestingError",
    "AlreadyDeposited",
    "AlreadyActivated",
    "NotDeposited",
    "AmountMismatch",
    "InsufficientAuthorization",
    "NotActivated",
    "NothingDue",
    "VestingNotStarted",
    "InstallmentNotUnlocked",
    "StaleInstallmentCount",
    "InvalidPerformData",
    "Unauthorized",
    "DirectValueTransferRejected",
]
