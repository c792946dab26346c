"""
Fixed-Schedule Vesting Ledger.

Single-beneficiary, single-asset escrow that releases a fixed deposit in
twelve equal monthly installments. Entitlement is a pure function of the
injected clock, so the same timestamp always yields the same answer.

Lifecycle:
    EMPTY/UNINITIALIZED --deposit--> DEPOSITED/UNINITIALIZED
        --activate (eager or explicit)--> DEPOSITED/ACTIVE
        --(claim | perform_due)*--> fully claimed

Security features:
- Exact-amount, single-shot deposit
- Owner-only claim and explicit activation
- Claimed count committed before the outbound transfer
- Reentrancy guard held for every transfer-performing call
- Stale keeper triggers rejected by installment count
- Native currency transfers rejected
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from ..clock import system_time
from ..constants import (
    DEFAULT_DEPOSIT_LIMIT,
    DEFAULT_SCHEDULE_START,
    INSTALLMENT_PERIOD_SECONDS,
    TOTAL_INSTALLMENTS,
)
from ..defi.access_control import OwnerAccessGuard
from ..defi.reentrancy import ReentrancyGuard
from ..ledger_exceptions import (
    AlreadyActivated,
    AlreadyDeposited,
    AmountMismatch,
    DirectValueTransferRejected,
    InstallmentNotUnlocked,
    InsufficientAuthorization,
    InvalidPerformData,
    NotActivated,
    NotDeposited,
    NothingDue,
    StaleInstallmentCount,
    Unauthorized,
    VestingNotStarted,
)
from ..structured_logger import truncate_address
from .schedule import (
    ActivationMode,
    DepositState,
    ScheduleState,
    decode_installment_count,
    encode_installment_count,
    entitled_installments,
)

if TYPE_CHECKING:
    from ..collaborators import AccessGuard, CriticalSection, TokenLedger
    from ..config import VestingConfig

logger = logging.getLogger(__name__)


@dataclass
class VestingEvent:
    """Notification recorded by the ledger."""

    event_type: str  # TokensDeposited, VestingInitialized, TokensClaimed, UpkeepPerformed
    args: dict[str, Any]
    timestamp: int = 0


@dataclass
class _Snapshot:
    total_deposited: int
    amount_per_installment: int
    claimed_installments: int
    total_released: int
    deposit_state: DepositState
    schedule_state: ScheduleState


@dataclass
class VestingLedger:
    """
    Twelve-installment vesting escrow for one beneficiary.

    Collaborators are injected; defaults are an owner-only access guard for
    the beneficiary, a non-blocking reentrancy guard and wall-clock time.

    Usage:
        ledger = VestingLedger(beneficiary="0xowner", token=token)
        token.approve("0xdepositor", ledger.address, ledger.deposit_limit)
        ledger.deposit("0xdepositor", ledger.deposit_limit)
        payout = ledger.claim("0xowner")
    """

    beneficiary: str
    token: "TokenLedger"
    deposit_limit: int = DEFAULT_DEPOSIT_LIMIT
    schedule_start: int = DEFAULT_SCHEDULE_START
    activation_mode: ActivationMode = ActivationMode.EAGER

    access_guard: "AccessGuard | None" = None
    critical_section: "CriticalSection | None" = None
    # None means any caller may submit keeper work
    keeper_guard: "AccessGuard | None" = None
    time_provider: Callable[[], int] | None = None

    # Custody address
    address: str = ""

    events: list[VestingEvent] = field(default_factory=list)

    _total_deposited: int = field(default=0, init=False, repr=False)
    _amount_per_installment: int = field(default=0, init=False, repr=False)
    _claimed_installments: int = field(default=0, init=False, repr=False)
    _total_released: int = field(default=0, init=False, repr=False)
    _deposit_state: DepositState = field(default=DepositState.EMPTY, init=False, repr=False)
    _schedule_state: ScheduleState = field(
        default=ScheduleState.UNINITIALIZED, init=False, repr=False
    )

    TOTAL_INSTALLMENTS: int = field(default=TOTAL_INSTALLMENTS, init=False, repr=False)
    INSTALLMENT_PERIOD: int = field(default=INSTALLMENT_PERIOD_SECONDS, init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.beneficiary:
            raise ValueError("Beneficiary address cannot be empty")
        if not isinstance(self.deposit_limit, int) or self.deposit_limit <= 0:
            raise ValueError("Deposit limit must be a positive integer")
        if not isinstance(self.schedule_start, int) or self.schedule_start < 0:
            raise ValueError("Schedule start must be a non-negative integer timestamp")
        if isinstance(self.activation_mode, str):
            self.activation_mode = ActivationMode(self.activation_mode)

        self.beneficiary = self.beneficiary.lower()
        if self.access_guard is None:
            self.access_guard = OwnerAccessGuard(self.beneficiary)
        if self.critical_section is None:
            self.critical_section = ReentrancyGuard()
        if self.time_provider is None:
            self.time_provider = system_time
        if not self.address:
            addr_hash = hashlib.sha3_256(
                f"vesting:{self.beneficiary}:{self.token.address}:{time.time()}".encode()
            ).digest()
            self.address = f"0x{addr_hash[-20:].hex()}"
        self.address = self.address.lower()

        logger.info(
            "Vesting ledger created",
            extra={
                "event": "vesting.created",
                "address": self.address,
                "beneficiary": truncate_address(self.beneficiary),
                "asset": self.token.address,
                "deposit_limit": self.deposit_limit,
                "schedule_start": self.schedule_start,
                "activation_mode": self.activation_mode.value,
            }
        )

    @classmethod
    def from_config(
        cls,
        config: "VestingConfig",
        beneficiary: str,
        token: "TokenLedger",
        **collaborators: Any,
    ) -> "VestingLedger":
        """Build a ledger from a validated VestingConfig."""
        return cls(
            beneficiary=beneficiary,
            token=token,
            deposit_limit=config.deposit_limit,
            schedule_start=config.schedule_start,
            activation_mode=config.activation_mode,
            **collaborators,
        )

    # ==================== State Accessors ====================

    @property
    def asset_id(self) -> str:
        return self.token.address

    @property
    def total_deposited(self) -> int:
        return self._total_deposited

    @property
    def amount_per_installment(self) -> int:
        return self._amount_per_installment

    @property
    def claimed_installments(self) -> int:
        return self._claimed_installments

    @property
    def total_released(self) -> int:
        return self._total_released

    @property
    def deposit_state(self) -> DepositState:
        return self._deposit_state

    @property
    def schedule_state(self) -> ScheduleState:
        return self._schedule_state

    @property
    def is_active(self) -> bool:
        return self._schedule_state is ScheduleState.ACTIVE

    @property
    def is_fully_claimed(self) -> bool:
        return self._claimed_installments == self.TOTAL_INSTALLMENTS

    @property
    def custody_balance(self) -> int:
        return self.token.balance_of(self.address)

    # ==================== View Functions ====================

    def current_entitled_installments(self, at: int | None = None) -> int:
        """
        Installments unlocked at time at (defaults to the clock).

        Returns 0 until the schedule is active and schedule_start is reached.
        """
        if not self.is_active:
            return 0
        now = self._current_time() if at is None else int(at)
        return entitled_installments(
            now, self.schedule_start, self.TOTAL_INSTALLMENTS, self.INSTALLMENT_PERIOD
        )

    def releasable_amount(self, at: int | None = None) -> int:
        """Unlocked but unclaimed amount; never negative."""
        due = self.current_entitled_installments(at) - self._claimed_installments
        return max(due, 0) * self._amount_per_installment

    def check_due(self, at: int | None = None) -> tuple[bool, bytes]:
        """
        Keeper poll step.

        Returns:
            (True, perform_data) when unclaimed installments are unlocked,
            where perform_data encodes the current entitled count;
            (False, b"") otherwise.
        """
        entitled = self.current_entitled_installments(at)
        if self.is_active and entitled > self._claimed_installments:
            return True, encode_installment_count(entitled)
        return False, b""

    # ==================== State-Changing Functions ====================

    def deposit(self, depositor: str, amount: int) -> bool:
        """
        Fund the ledger with exactly deposit_limit tokens.

        The depositor must have approved the ledger address for at least
        amount beforehand.

        Args:
            depositor: Address whose tokens are pulled (msg.sender)
            amount: Amount to deposit, must equal deposit_limit

        Returns:
            True if successful

        Raises:
            AlreadyDeposited: If the ledger was already funded
            AlreadyActivated: If the schedule is already active
            AmountMismatch: If amount != deposit_limit
            InsufficientAuthorization: If the approval is short
        """
        with self.critical_section.guard("deposit"):
            now = self._current_time()

            if self._deposit_state is not DepositState.EMPTY:
                raise AlreadyDeposited("Tokens already deposited")
            if self._schedule_state is not ScheduleState.UNINITIALIZED:
                raise AlreadyActivated("Vesting already initialized")
            if (
                not isinstance(amount, int)
                or isinstance(amount, bool)
                or amount != self.deposit_limit
            ):
                raise AmountMismatch(
                    "Deposit must match the required amount",
                    expected=self.deposit_limit,
                    actual=amount if isinstance(amount, int) else 0,
                )

            approved = self.token.allowance(depositor, self.address)
            if approved < amount:
                raise InsufficientAuthorization(
                    f"Insufficient token allowance ({approved} < {amount})",
                    details={"depositor": depositor, "approved": approved, "required": amount},
                )

            snapshot = self._snapshot()
            self._total_deposited = amount
            self._amount_per_installment = amount // self.TOTAL_INSTALLMENTS
            self._deposit_state = DepositState.DEPOSITED
            if self.activation_mode is ActivationMode.EAGER:
                self._schedule_state = ScheduleState.ACTIVE

            try:
                self.token.transfer_from(self.address, depositor, self.address, amount)
            except Exception:
                self._restore(snapshot)
                logger.error(
                    "Deposit transfer failed, state restored",
                    extra={"event": "vesting.deposit_failed", "depositor": truncate_address(depositor)},
                    exc_info=True,
                )
                raise

            self._emit("TokensDeposited", now, depositor=depositor.lower(), amount=amount)
            logger.info(
                "Tokens deposited",
                extra={
                    "event": "vesting.deposited",
                    "depositor": truncate_address(depositor),
                    "amount": amount,
                    "per_installment": self._amount_per_installment,
                    "remainder": amount - self._amount_per_installment * self.TOTAL_INSTALLMENTS,
                }
            )
            if self.is_active:
                self._emit_activation(now)
        return True

    def activate_schedule(self, caller: str) -> bool:
        """
        Activate a funded schedule (explicit activation mode).

        Raises:
            Unauthorized: If caller is not authorized by the access guard
            NotDeposited: If the ledger has not been funded yet
            AlreadyActivated: If the schedule is already active
        """
        self._require_authorized(caller, "activate_schedule")
        now = self._current_time()

        if self._schedule_state is not ScheduleState.UNINITIALIZED:
            raise AlreadyActivated("Vesting has already been initialized")
        if self._deposit_state is not DepositState.DEPOSITED:
            raise NotDeposited("Tokens must be deposited before initialization")

        self._schedule_state = ScheduleState.ACTIVE
        self._emit_activation(now)
        return True

    def claim(self, caller: str) -> int:
        """
        Release every unlocked, unclaimed installment to the beneficiary.

        Args:
            caller: Address invoking the claim (msg.sender)

        Returns:
            Amount released

        Raises:
            Unauthorized: If caller is not the beneficiary
            NotActivated: If the schedule is not active
            VestingNotStarted: If schedule_start has not been reached
            NothingDue: If every unlocked installment was already claimed
        """
        with self.critical_section.guard("claim"):
            self._require_authorized(caller, "claim")
            now = self._current_time()

            if not self.is_active:
                raise NotActivated("Vesting has not been initialized")
            if now < self.schedule_start:
                raise VestingNotStarted(
                    "Vesting has not started",
                    details={"now": now, "schedule_start": self.schedule_start},
                )

            entitled = entitled_installments(
                now, self.schedule_start, self.TOTAL_INSTALLMENTS, self.INSTALLMENT_PERIOD
            )
            if entitled <= self._claimed_installments:
                raise NothingDue(
                    "No tokens available to claim",
                    details={"entitled": entitled, "claimed": self._claimed_installments},
                )

            payout = self._release(entitled, "claim")
            self._emit("TokensClaimed", now, beneficiary=self.beneficiary, amount=payout)
        return payout

    def perform_due(self, perform_data: bytes | int, caller: str | None = None) -> int:
        """
        Keeper act step: release installments up to the supplied count.

        Any caller may submit unless a keeper_guard is configured. Tokens
        always go to the beneficiary.

        Args:
            perform_data: Encoded count from check_due, or the count itself
            caller: Submitting agent, checked against keeper_guard if set

        Returns:
            Amount released

        Raises:
            Unauthorized: If keeper_guard rejects caller
            InvalidPerformData: If perform_data is not a 32-byte word or an int
            NotActivated: If the schedule is not active
            StaleInstallmentCount: If count does not exceed the claimed count
            InstallmentNotUnlocked: If count exceeds the current entitlement
        """
        if self.keeper_guard is not None and not self.keeper_guard.is_authorized(caller or ""):
            logger.warning(
                "Keeper submission rejected",
                extra={"event": "vesting.keeper_rejected", "caller": truncate_address(caller or "")},
            )
            raise Unauthorized("Caller is not a permitted automation agent")

        count = _parse_perform_data(perform_data)

        with self.critical_section.guard("perform_due"):
            now = self._current_time()

            if not self.is_active:
                raise NotActivated("Vesting has not been initialized")
            if count <= self._claimed_installments:
                raise StaleInstallmentCount(
                    f"Installment count {count} already claimed",
                    details={"count": count, "claimed": self._claimed_installments},
                )
            entitled = entitled_installments(
                now, self.schedule_start, self.TOTAL_INSTALLMENTS, self.INSTALLMENT_PERIOD
            )
            if count > entitled:
                raise InstallmentNotUnlocked(
                    f"Installment count {count} exceeds unlocked {entitled}",
                    details={"count": count, "entitled": entitled},
                )

            payout = self._release(count, "perform_due")
            self._emit("UpkeepPerformed", now, installments=count, amount=payout)
        return payout

    def receive_native(self, sender: str, value: int) -> None:
        """Reject native currency sent straight to the ledger."""
        logger.warning(
            "Native value transfer rejected",
            extra={"event": "vesting.native_rejected", "sender": truncate_address(sender), "value": value},
        )
        raise DirectValueTransferRejected("Contract does not accept Ether")

    # ==================== Internals ====================

    def _release(self, target_count: int, operation: str) -> int:
        previous = self._claimed_installments
        payout = (target_count - previous) * self._amount_per_installment

        # Commit before the external transfer; a nested call sees nothing due
        self._claimed_installments = target_count
        self._total_released += payout
        try:
            self.token.transfer(self.address, self.beneficiary, payout)
        except Exception:
            self._claimed_installments = previous
            self._total_released -= payout
            logger.error(
                "Release transfer failed, claimed count restored",
                extra={
                    "event": "vesting.release_failed",
                    "operation": operation,
                    "claimed": previous,
                    "payout": payout,
                },
                exc_info=True,
            )
            raise

        logger.info(
            "Installments released",
            extra={
                "event": "vesting.released",
                "operation": operation,
                "from_installment": previous,
                "to_installment": target_count,
                "amount": payout,
            }
        )
        return payout

    def _require_authorized(self, caller: str, operation: str) -> None:
        if isinstance(self.access_guard, OwnerAccessGuard):
            self.access_guard.require(caller, operation)
            return
        if not self.access_guard.is_authorized(caller):
            logger.warning(
                "Access denied",
                extra={"event": "vesting.unauthorized", "operation": operation, "caller": truncate_address(caller)},
            )
            raise Unauthorized("Caller is not authorized", details={"operation": operation})

    def _current_time(self) -> int:
        timestamp = self.time_provider()
        try:
            return int(timestamp)
        except (TypeError, ValueError) as exc:
            raise ValueError("time_provider must return an integer timestamp") from exc

    def _emit_activation(self, now: int) -> None:
        self._emit(
            "VestingInitialized",
            now,
            schedule_start=self.schedule_start,
            amount_per_installment=self._amount_per_installment,
        )
        logger.info(
            "Vesting schedule activated",
            extra={
                "event": "vesting.activated",
                "schedule_start": self.schedule_start,
                "per_installment": self._amount_per_installment,
                "mode": self.activation_mode.value,
            }
        )

    def _emit(self, event_type: str, now: int, **args: Any) -> None:
        self.events.append(VestingEvent(event_type=event_type, args=args, timestamp=now))

    def _snapshot(self) -> _Snapshot:
        return _Snapshot(
            total_deposited=self._total_deposited,
            amount_per_installment=self._amount_per_installment,
            claimed_installments=self._claimed_installments,
            total_released=self._total_released,
            deposit_state=self._deposit_state,
            schedule_state=self._schedule_state,
        )

    def _restore(self, snapshot: _Snapshot) -> None:
        self._total_deposited = snapshot.total_deposited
        self._amount_per_installment = snapshot.amount_per_installment
        self._claimed_installments = snapshot.claimed_installments
        self._total_released = snapshot.total_released
        self._deposit_state = snapshot.deposit_state
        self._schedule_state = snapshot.schedule_state

    # ==================== Serialization ====================

    def get_state(self, at: int | None = None) -> dict[str, Any]:
        """Serializable snapshot of the ledger."""
        now = self._current_time() if at is None else int(at)
        return {
            "address": self.address,
            "beneficiary": self.beneficiary,
            "asset_id": self.asset_id,
            "activation_mode": self.activation_mode.value,
            "total_installments": self.TOTAL_INSTALLMENTS,
            "deposit_limit": self.deposit_limit,
            "schedule_start": self.schedule_start,
            "total_deposited": self._total_deposited,
            "amount_per_installment": self._amount_per_installment,
            "claimed_installments": self._claimed_installments,
            "total_released": self._total_released,
            "deposit_state": self._deposit_state.value,
            "schedule_state": self._schedule_state.value,
            "entitled_installments": self.current_entitled_installments(now),
            "releasable_amount": self.releasable_amount(now),
            "custody_balance": self.custody_balance,
            "as_of": now,
        }


def _parse_perform_data(perform_data: Any) -> int:
    if isinstance(perform_data, (bytes, bytearray)):
        try:
            return decode_installment_count(bytes(perform_data))
        except ValueError as exc:
            raise InvalidPerformData(str(exc), details={"length": len(perform_data)}) from exc
    if isinstance(perform_data, int) and not isinstance(perform_data, bool):
        return perform_data
    raise InvalidPerformData(
        "Perform data must be an encoded installment count or an int",
        details={"type": type(perform_data).__name__},
    )
