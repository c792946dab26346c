"""
vestledger - Fixed-schedule token vesting ledger

Releases a fixed pool of tokens to a single beneficiary in twelve equal
monthly installments, starting at a predetermined timestamp.

Main Components:
- VestingLedger: Installment accounting and release authorization
- ERC20Token: In-memory fungible token ledger used for custody and payouts
- OwnerAccessGuard / ReentrancyGuard: Access and re-entry collaborators
- CLI: Schedule inspection and end-to-end simulation
"""

__version__ = "0.1.0"
__author__ = "vestledger Development Team"

__all__ = []
