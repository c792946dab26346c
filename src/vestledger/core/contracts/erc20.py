"""
In-memory ERC20 token used as vesting custody.

Depositors approve the vesting ledger, which pulls the deposit with
transfer_from and pays installments out with transfer. Besides the usual
balance, allowance and mint bookkeeping the token supports recipient hooks:
a callback run after an account is credited, in the manner of ERC777
tokensReceived. A hook that raises reverts the whole transfer.
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from ..constants import TOKEN_DECIMALS, UINT256_MAX, ZERO_ADDRESS
from ..ledger_exceptions import TokenError
from ..structured_logger import truncate_address

logger = logging.getLogger(__name__)

# Called as hook(token, from_addr, amount) once recipient has been credited
RecipientHook = Callable[["ERC20Token", str, int], None]


@dataclass
class TokenEvent:
    """Transfer or Approval log entry."""

    event_type: str
    from_address: str
    to_address: str
    value: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ERC20Token:
    """
    Fungible token ledger satisfying the TokenLedger protocol.

    Addresses are compared case-insensitively. Allowances equal to
    UINT256_MAX are treated as unlimited.
    """

    name: str
    symbol: str
    decimals: int = TOKEN_DECIMALS
    owner: str = ""
    address: str = ""
    total_supply: int = 0

    balances: dict[str, int] = field(default_factory=dict)
    allowances: dict[str, dict[str, int]] = field(default_factory=dict)
    events: list[TokenEvent] = field(default_factory=list)
    recipient_hooks: dict[str, RecipientHook] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.address:
            seed = f"token:{self.symbol}:{self.owner}:{time.time_ns()}".encode()
            self.address = "0x" + hashlib.sha3_256(seed).digest()[-20:].hex()
        self.address = _norm(self.address)

    # ==================== Views ====================

    def balance_of(self, account: str) -> int:
        return self.balances.get(_norm(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get(_norm(owner), {}).get(_norm(spender), 0)

    # ==================== Transfers ====================

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """
        Move amount from sender to recipient, then run recipient's hook.

        Raises:
            TokenError: On a zero recipient, invalid amount or short balance
        """
        src, dst = _norm(sender), _norm(recipient)
        self._check_transfer(src, dst, amount)
        event = self._move(src, dst, amount)
        self._notify_recipient(src, dst, amount, event)
        return True

    def transfer_from(self, spender: str, from_addr: str, to_addr: str, amount: int) -> bool:
        """
        Move amount out of from_addr on spender's allowance.

        The allowance is consumed before the recipient hook runs and given
        back if the hook rejects the credit.

        Raises:
            TokenError: On a short allowance or any transfer failure
        """
        src, dst, operator = _norm(from_addr), _norm(to_addr), _norm(spender)
        self._check_transfer(src, dst, amount)

        approved = self.allowance(src, operator)
        if approved < amount:
            raise TokenError(
                f"ERC20: insufficient allowance ({approved} < {amount})",
                details={"owner": src, "spender": operator, "approved": approved},
            )
        if approved != UINT256_MAX:
            self.allowances.setdefault(src, {})[operator] = approved - amount

        event = self._move(src, dst, amount)
        try:
            self._notify_recipient(src, dst, amount, event)
        except Exception:
            if approved != UINT256_MAX:
                self.allowances[src][operator] = approved
            raise
        return True

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        holder, operator = _norm(owner), _norm(spender)
        _require_address(operator, "spender")
        _require_amount(amount)
        self.allowances.setdefault(holder, {})[operator] = amount
        self.events.append(TokenEvent("Approval", holder, operator, amount))
        return True

    def mint(self, minter: str, to: str, amount: int) -> bool:
        """Create amount new tokens for to. Only the token owner may mint."""
        if _norm(minter) != _norm(self.owner):
            raise TokenError("ERC20: caller is not owner", details={"caller": minter})
        dst = _norm(to)
        _require_address(dst, "recipient")
        _require_amount(amount)

        self.total_supply += amount
        self.balances[dst] = self.balances.get(dst, 0) + amount
        self.events.append(TokenEvent("Transfer", ZERO_ADDRESS, dst, amount))
        logger.info(
            "Tokens minted",
            extra={
                "event": "erc20.mint",
                "token": self.symbol,
                "to": truncate_address(dst),
                "amount": amount,
                "total_supply": self.total_supply,
            }
        )
        return True

    # ==================== Recipient hooks ====================

    def register_recipient_hook(self, account: str, hook: RecipientHook) -> None:
        """Run hook every time account receives tokens."""
        self.recipient_hooks[_norm(account)] = hook

    def remove_recipient_hook(self, account: str) -> None:
        self.recipient_hooks.pop(_norm(account), None)

    # ==================== Internals ====================

    def _check_transfer(self, src: str, dst: str, amount: int) -> None:
        _require_address(dst, "recipient")
        _require_amount(amount)
        available = self.balances.get(src, 0)
        if available < amount:
            raise TokenError(
                f"ERC20: transfer amount exceeds balance ({amount} > {available})",
                details={"from": src, "balance": available, "amount": amount},
            )

    def _move(self, src: str, dst: str, amount: int) -> TokenEvent:
        self.balances[src] = self.balances.get(src, 0) - amount
        self.balances[dst] = self.balances.get(dst, 0) + amount
        event = TokenEvent("Transfer", src, dst, amount)
        self.events.append(event)
        logger.debug(
            "Tokens transferred",
            extra={
                "event": "erc20.transfer",
                "token": self.symbol,
                "from": truncate_address(src),
                "to": truncate_address(dst),
                "amount": amount,
            }
        )
        return event

    def _notify_recipient(self, src: str, dst: str, amount: int, event: TokenEvent) -> None:
        hook = self.recipient_hooks.get(dst)
        if hook is None:
            return
        try:
            hook(self, src, amount)
        except Exception:
            # Undo the credit; the caller sees the hook's exception
            self.balances[dst] = self.balances.get(dst, 0) - amount
            self.balances[src] = self.balances.get(src, 0) + amount
            self.events.remove(event)
            logger.warning(
                "Recipient hook failed, transfer reverted",
                extra={"event": "erc20.hook_reverted", "token": self.symbol, "to": truncate_address(dst)},
            )
            raise


def _norm(address: str) -> str:
    return address.strip().lower()


def _require_address(address: str, role: str) -> None:
    if not address or address == ZERO_ADDRESS:
        raise TokenError(f"ERC20: {role} is zero address")


def _require_amount(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise TokenError("ERC20: amount must be an integer")
    if amount < 0:
        raise TokenError("ERC20: amount cannot be negative")
    if amount > UINT256_MAX:
        raise TokenError("ERC20: amount exceeds uint256")
