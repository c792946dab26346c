"""
vestledger Core Module

Core functionality for the vesting ledger including:
- Installment schedule math and the vesting state machine
- Token ledger, access control and reentrancy collaborators
- Configuration, units and structured logging
"""

__all__ = []
