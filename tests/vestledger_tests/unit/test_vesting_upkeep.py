"""
Unit tests for the keeper interface (check_due / perform_due) and UpkeepAgent.
"""

import pytest

from vestledger.core.defi.access_control import AllowListAccessGuard
from vestledger.core.ledger_exceptions import (
    InstallmentNotUnlocked,
    InvalidPerformData,
    NotActivated,
    StaleInstallmentCount,
    Unauthorized,
)
from vestledger.core.vesting.schedule import (
    ActivationMode,
    decode_installment_count,
    encode_installment_count,
)
from vestledger.core.vesting.upkeep import UpkeepAgent

from vesting_constants import (
    ANOTHER_USER,
    DEPOSIT_LIMIT,
    DEPOSITOR,
    FIRST_INSTALLMENT_TIMESTAMP as START,
    KEEPER,
    OWNER,
    PER_INSTALLMENT,
    PERIOD,
)


class TestCheckDue:
    def test_nothing_due_before_start(self, funded_ledger):
        assert funded_ledger.check_due() == (False, b"")

    def test_nothing_due_before_deposit(self, ledger, clock):
        clock.set(START + PERIOD)
        assert ledger.check_due() == (False, b"")

    def test_due_returns_entitled_count(self, funded_ledger, clock):
        clock.set(START + 2 * PERIOD + 1)
        due, data = funded_ledger.check_due()
        assert due is True
        assert decode_installment_count(data) == 3

    def test_not_due_once_caught_up(self, funded_ledger, clock):
        clock.set(START)
        funded_ledger.claim(OWNER)
        assert funded_ledger.check_due() == (False, b"")

    def test_check_due_does_not_mutate(self, funded_ledger, clock):
        clock.set(START + PERIOD)
        funded_ledger.check_due()
        funded_ledger.check_due()
        assert funded_ledger.claimed_installments == 0
        assert funded_ledger.total_released == 0


class TestPerformDue:
    def test_catch_up_then_replay_is_stale(self, funded_ledger, token, clock):
        clock.set(START + 5 * PERIOD)
        assert funded_ledger.perform_due(5) == 5 * PER_INSTALLMENT
        assert funded_ledger.claimed_installments == 5
        assert token.balance_of(OWNER) == 5 * PER_INSTALLMENT

        with pytest.raises(StaleInstallmentCount):
            funded_ledger.perform_due(5)
        assert token.balance_of(OWNER) == 5 * PER_INSTALLMENT

        clock.set(START + 5 * PERIOD + PERIOD)
        assert funded_ledger.perform_due(6) == PER_INSTALLMENT
        assert funded_ledger.claimed_installments == 6

    def test_accepts_encoded_perform_data(self, funded_ledger, clock):
        clock.set(START + PERIOD)
        _, data = funded_ledger.check_due()
        assert funded_ledger.perform_due(data) == 2 * PER_INSTALLMENT
        event = funded_ledger.events[-1]
        assert event.event_type == "UpkeepPerformed"
        assert event.args == {"installments": 2, "amount": 2 * PER_INSTALLMENT}

    def test_partial_count_releases_only_that_many(self, funded_ledger, clock):
        clock.set(START + 3 * PERIOD)
        assert funded_ledger.perform_due(encode_installment_count(2)) == 2 * PER_INSTALLMENT
        assert funded_ledger.releasable_amount() == 2 * PER_INSTALLMENT

    def test_count_beyond_entitlement_is_rejected(self, funded_ledger, token, clock):
        clock.set(START + PERIOD)
        with pytest.raises(InstallmentNotUnlocked):
            funded_ledger.perform_due(3)
        assert funded_ledger.claimed_installments == 0
        assert token.balance_of(OWNER) == 0

    def test_zero_count_is_stale(self, funded_ledger, clock):
        clock.set(START)
        with pytest.raises(StaleInstallmentCount):
            funded_ledger.perform_due(0)

    def test_before_activation(self, make_ledger, clock):
        ledger = make_ledger(ActivationMode.EXPLICIT)
        ledger.deposit(DEPOSITOR, DEPOSIT_LIMIT)
        clock.set(START + PERIOD)
        with pytest.raises(NotActivated):
            ledger.perform_due(1)

    def test_any_caller_pays_the_beneficiary(self, funded_ledger, token, clock):
        clock.set(START)
        funded_ledger.perform_due(1, caller=ANOTHER_USER)
        assert token.balance_of(ANOTHER_USER) == 0
        assert token.balance_of(OWNER) == PER_INSTALLMENT

    def test_keeper_guard_restricts_submitters(self, make_ledger, token, clock):
        ledger = make_ledger(keeper_guard=AllowListAccessGuard.of([KEEPER]))
        ledger.deposit(DEPOSITOR, DEPOSIT_LIMIT)
        clock.set(START)

        with pytest.raises(Unauthorized):
            ledger.perform_due(1, caller=ANOTHER_USER)
        with pytest.raises(Unauthorized):
            ledger.perform_due(1)
        assert ledger.perform_due(1, caller=KEEPER.upper().replace("0X", "0x")) == PER_INSTALLMENT

    @pytest.mark.parametrize("perform_data", [2.9, True, "2", None, b"\x02", bytearray(31)])
    def test_malformed_perform_data_is_rejected(self, funded_ledger, token, clock, perform_data):
        clock.set(START + 3 * PERIOD)
        with pytest.raises(InvalidPerformData):
            funded_ledger.perform_due(perform_data)
        assert funded_ledger.claimed_installments == 0
        assert token.balance_of(OWNER) == 0
        assert not funded_ledger.critical_section.locked

    def test_bytearray_word_is_accepted(self, funded_ledger, clock):
        clock.set(START + PERIOD)
        assert funded_ledger.perform_due(bytearray(encode_installment_count(2))) == 2 * PER_INSTALLMENT

    def test_claim_and_keeper_share_the_claimed_count(self, funded_ledger, token, clock):
        clock.set(START + PERIOD)
        _, data = funded_ledger.check_due()
        funded_ledger.claim(OWNER)
        with pytest.raises(StaleInstallmentCount):
            funded_ledger.perform_due(data)
        assert token.balance_of(OWNER) == 2 * PER_INSTALLMENT


class TestUpkeepAgent:
    def test_not_due(self, funded_ledger):
        agent = UpkeepAgent(funded_ledger, agent_address=KEEPER)
        result = agent.run_once()
        assert result.performed is False
        assert result.reason == "not_due"

    def test_pays_each_month(self, funded_ledger, token, clock):
        agent = UpkeepAgent(funded_ledger, agent_address=KEEPER)
        for month in range(12):
            clock.set(START + month * PERIOD)
            result = agent.run_once()
            assert result.performed is True
            assert result.installments == month + 1
            assert result.amount == PER_INSTALLMENT

        assert agent.total_paid == DEPOSIT_LIMIT
        assert funded_ledger.is_fully_claimed
        assert agent.run_once().reason == "not_due"

    def test_duplicate_submission_is_skipped(self, funded_ledger, token, clock):
        agent = UpkeepAgent(funded_ledger, agent_address=KEEPER)
        clock.set(START + PERIOD)
        _, stale_data = funded_ledger.check_due()
        assert agent.run_once().amount == 2 * PER_INSTALLMENT

        # A second agent that polled before the first one acted
        other = UpkeepAgent(funded_ledger, agent_address=ANOTHER_USER)
        funded_ledger.check_due = lambda at=None: (True, stale_data)
        result = other.run_once()
        assert result.performed is False
        assert result.reason == "StaleInstallmentCount"
        assert token.balance_of(OWNER) == 2 * PER_INSTALLMENT
