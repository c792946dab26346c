"""
Collaborator Protocol Interfaces - Decoupling the vesting ledger from its environment.

The ledger depends on these protocols instead of concrete classes:
- TokenLedger: fungible token custody and transfers
- AccessGuard: "is this caller authorized" decisions
- CriticalSection: scoped mutual exclusion around external transfers

Usage:
    ledger = VestingLedger(
        beneficiary="0xowner",
        token=ERC20Token(name="Test Token", symbol="TEST"),
        access_guard=OwnerAccessGuard("0xowner"),
        critical_section=ReentrancyGuard(),
    )
"""

from __future__ import annotations

from typing import ContextManager, Protocol, runtime_checkable


@runtime_checkable
class TokenLedger(Protocol):
    """
    Protocol for the fungible token ledger holding the vested asset.

    The vesting ledger only ever moves the exact deposited or entitled
    amounts through these calls.
    """

    @property
    def address(self) -> str:
        """Get the token contract address (the vested asset id)."""
        ...

    def allowance(self, owner: str, spender: str) -> int:
        """Get the amount owner has approved spender to pull."""
        ...

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """Move amount from sender to recipient."""
        ...

    def transfer_from(self, spender: str, from_addr: str, to_addr: str, amount: int) -> bool:
        """Move amount from from_addr to to_addr using spender's allowance."""
        ...

    def balance_of(self, account: str) -> int:
        """Get the balance of account."""
        ...


@runtime_checkable
class AccessGuard(Protocol):
    """Protocol for caller authorization."""

    def is_authorized(self, caller: str) -> bool:
        """Return True if caller may run privileged operations."""
        ...


@runtime_checkable
class CriticalSection(Protocol):
    """
    Protocol for scoped mutual exclusion.

    guard() returns a context manager that is held for the whole guarded
    call and released on every exit path, including failures.
    """

    def guard(self, operation: str) -> ContextManager[None]:
        """Enter the critical section for operation."""
        ...
