"""
Installment schedule math.

Pure functions shared by the ledger, the keeper interface and the CLI. All
amounts are integer base units; all times are integer Unix seconds.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..constants import (
    ABI_WORD_BYTES,
    INSTALLMENT_PERIOD_SECONDS,
    TOTAL_INSTALLMENTS,
)


class DepositState(Enum):
    EMPTY = "empty"
    DEPOSITED = "deposited"


class ScheduleState(Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"


class ActivationMode(Enum):
    """How the schedule becomes active after funding.

    EAGER: deposit activates the schedule in the same call.
    EXPLICIT: the beneficiary activates with a separate call.
    """
    EAGER = "eager"
    EXPLICIT = "explicit"


def entitled_installments(
    now: int,
    schedule_start: int,
    total_installments: int = TOTAL_INSTALLMENTS,
    period_seconds: int = INSTALLMENT_PERIOD_SECONDS,
) -> int:
    """
    Number of installments unlocked at time now.

    Reaching schedule_start unlocks the first installment immediately, and
    each further full period unlocks one more, capped at total_installments.
    """
    if now < schedule_start:
        return 0
    periods_elapsed = (now - schedule_start) // period_seconds
    return min(periods_elapsed + 1, total_installments)


def installment_unlock_time(
    index: int,
    schedule_start: int,
    period_seconds: int = INSTALLMENT_PERIOD_SECONDS,
) -> int:
    """Timestamp at which the 1-based installment index unlocks."""
    if index < 1:
        raise ValueError("Installment index is 1-based")
    return schedule_start + (index - 1) * period_seconds


@dataclass(frozen=True)
class InstallmentSlot:
    """One row of the release calendar."""

    index: int
    unlocks_at: int
    amount: int


def build_calendar(
    deposit_amount: int,
    schedule_start: int,
    total_installments: int = TOTAL_INSTALLMENTS,
    period_seconds: int = INSTALLMENT_PERIOD_SECONDS,
) -> list[InstallmentSlot]:
    """Release calendar for a deposit; remainder of the division is never scheduled."""
    per_installment = deposit_amount // total_installments
    return [
        InstallmentSlot(
            index=i,
            unlocks_at=installment_unlock_time(i, schedule_start, period_seconds),
            amount=per_installment,
        )
        for i in range(1, total_installments + 1)
    ]


# ==================== Keeper perform data ====================


def encode_installment_count(count: int) -> bytes:
    """ABI-encode an installment count as a single uint256 word."""
    if count < 0:
        raise ValueError("Installment count cannot be negative")
    return count.to_bytes(ABI_WORD_BYTES, "big")


def decode_installment_count(perform_data: bytes) -> int:
    """Decode perform data produced by encode_installment_count."""
    if len(perform_data) != ABI_WORD_BYTES:
        raise ValueError(
            f"Perform data must be exactly {ABI_WORD_BYTES} bytes, got {len(perform_data)}"
        )
    return int.from_bytes(perform_data, "big")
