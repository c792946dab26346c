"""
Test configuration and fixtures
"""
import sys
from pathlib import Path

# Add project root and src to Python path
project_root = Path(__file__).parent.parent
src_path = project_root / "src"

sys.path.insert(0, str(project_root))
sys.path.insert(0, str(src_path))
sys.path.insert(0, str(Path(__file__).parent))

import pytest

from vestledger.core.clock import ManualClock
from vestledger.core.contracts.erc20 import ERC20Token
from vestledger.core.vesting.ledger import VestingLedger
from vestledger.core.vesting.schedule import ActivationMode

from vesting_constants import (
    DAY,
    DEPOSIT_LIMIT,
    DEPOSITOR,
    FIRST_INSTALLMENT_TIMESTAMP,
    OWNER,
)


@pytest.fixture
def clock():
    return ManualClock(FIRST_INSTALLMENT_TIMESTAMP - 10 * DAY)


@pytest.fixture
def token():
    token = ERC20Token(name="Test Token", symbol="TEST", owner=OWNER)
    token.mint(OWNER, DEPOSITOR, DEPOSIT_LIMIT)
    return token


@pytest.fixture
def make_ledger(token, clock):
    """Deploy a ledger and approve the full deposit from DEPOSITOR."""

    def _make(mode: ActivationMode = ActivationMode.EAGER, **kwargs) -> VestingLedger:
        kwargs.setdefault("deposit_limit", DEPOSIT_LIMIT)
        kwargs.setdefault("schedule_start", FIRST_INSTALLMENT_TIMESTAMP)
        ledger = VestingLedger(
            beneficiary=OWNER,
            token=kwargs.pop("token", token),
            activation_mode=mode,
            time_provider=clock,
            **kwargs,
        )
        ledger.token.approve(DEPOSITOR, ledger.address, ledger.deposit_limit)
        return ledger

    return _make


@pytest.fixture
def ledger(make_ledger):
    """Deployed, not yet funded (eager activation)."""
    return make_ledger()


@pytest.fixture
def funded_ledger(ledger):
    """Funded and active (eager activation)."""
    ledger.deposit(DEPOSITOR, DEPOSIT_LIMIT)
    return ledger
