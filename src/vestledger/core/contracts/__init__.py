"""
Token contracts used by the vesting ledger.

- ERC20: Fungible token standard, in-memory reference TokenLedger
"""

from .erc20 import ERC20Token, TokenEvent

__all__ = [
    "ERC20Token",
    "TokenEvent",
]
