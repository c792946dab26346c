"""
Keeper-side driver for the check_due / perform_due pair.

A keeper polls check_due at any cadence and, when work is due, submits the
returned perform data. Duplicate submissions are harmless: the ledger
rejects them as stale and the keeper simply polls again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..ledger_exceptions import NothingDue, StaleInstallmentCount
from .schedule import decode_installment_count

if TYPE_CHECKING:
    from .ledger import VestingLedger

logger = logging.getLogger(__name__)


@dataclass
class UpkeepResult:
    performed: bool
    installments: int = 0
    amount: int = 0
    reason: str = ""


@dataclass
class UpkeepAgent:
    """Poll/act agent bound to one ledger."""

    ledger: "VestingLedger"
    agent_address: str = "0xkeeper"
    history: list[UpkeepResult] = field(default_factory=list)

    def run_once(self) -> UpkeepResult:
        due, perform_data = self.ledger.check_due()
        if not due:
            result = UpkeepResult(performed=False, reason="not_due")
            self.history.append(result)
            return result

        count = decode_installment_count(perform_data)
        try:
            amount = self.ledger.perform_due(perform_data, caller=self.agent_address)
        except (StaleInstallmentCount, NothingDue) as exc:
            # Another submitter won the race or the window moved; poll again later
            logger.info(
                "Upkeep skipped: %s",
                exc.message,
                extra={"event": "upkeep.skipped", "installments": count},
            )
            result = UpkeepResult(performed=False, installments=count, reason=type(exc).__name__)
            self.history.append(result)
            return result

        logger.info(
            "Upkeep performed",
            extra={"event": "upkeep.performed", "installments": count, "amount": amount},
        )
        result = UpkeepResult(performed=True, installments=count, amount=amount)
        self.history.append(result)
        return result

    @property
    def total_paid(self) -> int:
        return sum(r.amount for r in self.history if r.performed)
