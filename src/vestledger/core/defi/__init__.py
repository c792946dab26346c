"""
Safety collaborators for the vesting ledger.

- Access Control: Owner and allow-list guards
- Reentrancy: Non-blocking critical sections around external transfers
"""

from .access_control import AllowListAccessGuard, OwnerAccessGuard
from .reentrancy import NullCriticalSection, ReentrancyGuard

__all__ = [
    "OwnerAccessGuard",
    "AllowListAccessGuard",
    "ReentrancyGuard",
    "NullCriticalSection",
]
