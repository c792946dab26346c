"""
Unit tests for VestingLedger funding and activation.

Coverage targets:
- Exact-amount, single-shot deposits
- Allowance checks and state left untouched on failure
- Eager vs explicit activation
- Native currency rejection
"""

import pytest

from vestledger.core.contracts.erc20 import ERC20Token
from vestledger.core.ledger_exceptions import (
    AlreadyActivated,
    AlreadyDeposited,
    AmountMismatch,
    DirectValueTransferRejected,
    InsufficientAuthorization,
    NotActivated,
    NotDeposited,
    TokenError,
    Unauthorized,
)
from vestledger.core.vesting.schedule import ActivationMode, DepositState, ScheduleState

from vesting_constants import (
    ANOTHER_USER,
    DEPOSIT_LIMIT,
    DEPOSITOR,
    FIRST_INSTALLMENT_TIMESTAMP,
    OWNER,
    PER_INSTALLMENT,
)


def _assert_empty(ledger):
    assert ledger.deposit_state is DepositState.EMPTY
    assert ledger.schedule_state is ScheduleState.UNINITIALIZED
    assert ledger.total_deposited == 0
    assert ledger.amount_per_installment == 0
    assert ledger.custody_balance == 0


class TestDeployment:
    def test_sets_asset_and_beneficiary(self, ledger, token):
        assert ledger.asset_id == token.address
        assert ledger.beneficiary == OWNER
        assert ledger.TOTAL_INSTALLMENTS == 12
        _assert_empty(ledger)

    def test_rejects_invalid_parameters(self, token):
        from vestledger.core.vesting.ledger import VestingLedger

        with pytest.raises(ValueError):
            VestingLedger(beneficiary="", token=token)
        with pytest.raises(ValueError):
            VestingLedger(beneficiary=OWNER, token=token, deposit_limit=0)
        with pytest.raises(ValueError):
            VestingLedger(beneficiary=OWNER, token=token, schedule_start=-1)

    def test_accepts_mode_by_name(self, make_ledger):
        ledger = make_ledger(mode="explicit")
        assert ledger.activation_mode is ActivationMode.EXPLICIT


class TestEagerDeposit:
    def test_exact_deposit_funds_and_activates(self, ledger, token):
        assert ledger.deposit(DEPOSITOR, DEPOSIT_LIMIT) is True

        assert ledger.total_deposited == DEPOSIT_LIMIT
        assert ledger.amount_per_installment == PER_INSTALLMENT
        assert ledger.deposit_state is DepositState.DEPOSITED
        assert ledger.schedule_state is ScheduleState.ACTIVE
        assert token.balance_of(ledger.address) == DEPOSIT_LIMIT
        assert token.balance_of(DEPOSITOR) == 0
        assert token.allowance(DEPOSITOR, ledger.address) == 0

        deposited, initialized = ledger.events
        assert deposited.event_type == "TokensDeposited"
        assert deposited.args == {"depositor": DEPOSITOR, "amount": DEPOSIT_LIMIT}
        assert initialized.event_type == "VestingInitialized"
        assert initialized.args == {
            "schedule_start": FIRST_INSTALLMENT_TIMESTAMP,
            "amount_per_installment": PER_INSTALLMENT,
        }

    @pytest.mark.parametrize(
        "amount", [DEPOSIT_LIMIT // 2, DEPOSIT_LIMIT - 1, DEPOSIT_LIMIT + 1, 0]
    )
    def test_wrong_amount_is_rejected(self, ledger, amount):
        with pytest.raises(AmountMismatch) as exc_info:
            ledger.deposit(DEPOSITOR, amount)
        assert exc_info.value.expected == DEPOSIT_LIMIT
        assert exc_info.value.actual == amount
        _assert_empty(ledger)

    def test_second_deposit_is_rejected(self, funded_ledger, token):
        token.mint(OWNER, DEPOSITOR, DEPOSIT_LIMIT)
        token.approve(DEPOSITOR, funded_ledger.address, DEPOSIT_LIMIT)

        with pytest.raises(AlreadyDeposited):
            funded_ledger.deposit(DEPOSITOR, DEPOSIT_LIMIT)
        assert funded_ledger.total_deposited == DEPOSIT_LIMIT
        assert token.balance_of(funded_ledger.address) == DEPOSIT_LIMIT

    def test_short_allowance_is_rejected(self, ledger, token):
        token.approve(DEPOSITOR, ledger.address, DEPOSIT_LIMIT - 1)
        with pytest.raises(InsufficientAuthorization):
            ledger.deposit(DEPOSITOR, DEPOSIT_LIMIT)
        _assert_empty(ledger)

    def test_deposit_from_unfunded_account_restores_state(self, ledger, token):
        token.approve(ANOTHER_USER, ledger.address, DEPOSIT_LIMIT)
        with pytest.raises(TokenError):
            ledger.deposit(ANOTHER_USER, DEPOSIT_LIMIT)
        _assert_empty(ledger)
        assert ledger.events == []

    def test_deposit_of_a_different_token_is_not_seen(self, ledger):
        wrong_token = ERC20Token(name="Wrong Token", symbol="WRONG", owner=DEPOSITOR)
        wrong_token.mint(DEPOSITOR, DEPOSITOR, DEPOSIT_LIMIT)
        wrong_token.approve(DEPOSITOR, ledger.address, DEPOSIT_LIMIT)

        ledger.token.approve(DEPOSITOR, ledger.address, 0)
        with pytest.raises(InsufficientAuthorization):
            ledger.deposit(DEPOSITOR, DEPOSIT_LIMIT)
        assert wrong_token.balance_of(DEPOSITOR) == DEPOSIT_LIMIT

    def test_activate_is_rejected_once_eagerly_active(self, funded_ledger):
        with pytest.raises(AlreadyActivated):
            funded_ledger.activate_schedule(OWNER)

    def test_rounding_remainder_stays_in_custody(self, make_ledger, token):
        ledger = make_ledger(deposit_limit=1000)
        ledger.deposit(DEPOSITOR, 1000)
        assert ledger.amount_per_installment == 83
        assert ledger.total_deposited == 1000
        assert ledger.custody_balance == 1000


class TestExplicitActivation:
    def test_two_phase_flow(self, make_ledger):
        ledger = make_ledger(ActivationMode.EXPLICIT)
        ledger.deposit(DEPOSITOR, DEPOSIT_LIMIT)

        assert ledger.deposit_state is DepositState.DEPOSITED
        assert ledger.schedule_state is ScheduleState.UNINITIALIZED
        assert [e.event_type for e in ledger.events] == ["TokensDeposited"]
        assert ledger.current_entitled_installments(FIRST_INSTALLMENT_TIMESTAMP) == 0

        assert ledger.activate_schedule(OWNER) is True
        assert ledger.schedule_state is ScheduleState.ACTIVE
        assert ledger.events[-1].event_type == "VestingInitialized"
        assert ledger.events[-1].args["amount_per_installment"] == PER_INSTALLMENT

    def test_reinitialization_is_rejected(self, make_ledger):
        ledger = make_ledger(ActivationMode.EXPLICIT)
        ledger.deposit(DEPOSITOR, DEPOSIT_LIMIT)
        ledger.activate_schedule(OWNER)
        with pytest.raises(AlreadyActivated):
            ledger.activate_schedule(OWNER)

    def test_activation_requires_deposit(self, make_ledger):
        ledger = make_ledger(ActivationMode.EXPLICIT)
        with pytest.raises(NotDeposited):
            ledger.activate_schedule(OWNER)
        assert ledger.schedule_state is ScheduleState.UNINITIALIZED

    def test_activation_is_owner_only(self, make_ledger):
        ledger = make_ledger(ActivationMode.EXPLICIT)
        ledger.deposit(DEPOSITOR, DEPOSIT_LIMIT)
        with pytest.raises(Unauthorized):
            ledger.activate_schedule(DEPOSITOR)
        assert ledger.schedule_state is ScheduleState.UNINITIALIZED

    def test_deposit_after_activation_is_rejected(self, make_ledger):
        ledger = make_ledger(ActivationMode.EXPLICIT)
        ledger.deposit(DEPOSITOR, DEPOSIT_LIMIT)
        ledger.activate_schedule(OWNER)
        with pytest.raises(AlreadyDeposited):
            ledger.deposit(DEPOSITOR, DEPOSIT_LIMIT)

    def test_claim_before_activation_fails(self, make_ledger, clock):
        ledger = make_ledger(ActivationMode.EXPLICIT)
        ledger.deposit(DEPOSITOR, DEPOSIT_LIMIT)
        clock.set(FIRST_INSTALLMENT_TIMESTAMP)
        assert ledger.releasable_amount() == 0
        with pytest.raises(NotActivated):
            ledger.claim(OWNER)


def test_native_value_transfers_are_rejected(ledger):
    with pytest.raises(DirectValueTransferRejected, match="does not accept Ether"):
        ledger.receive_native(DEPOSITOR, 10**18)
    _assert_empty(ledger)
