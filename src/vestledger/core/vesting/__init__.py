"""
Fixed-schedule vesting.

- Ledger: Deposit, activation, claim and keeper entry points
- Schedule: Pure installment math and keeper perform-data encoding
- Upkeep: Poll/act driver for automation agents
"""

from .ledger import VestingEvent, VestingLedger
from .schedule import (
    ActivationMode,
    DepositState,
    InstallmentSlot,
    ScheduleState,
    build_calendar,
    decode_installment_count,
    encode_installment_count,
    entitled_installments,
    installment_unlock_time,
)
from .upkeep import UpkeepAgent, UpkeepResult

__all__ = [
    "VestingLedger",
    "VestingEvent",
    "ActivationMode",
    "DepositState",
    "ScheduleState",
    "InstallmentSlot",
    "build_calendar",
    "entitled_installments",
    "installment_unlock_time",
    "encode_installment_count",
    "decode_installment_count",
    "UpkeepAgent",
    "UpkeepResult",
]
