"""
Access control guards for the vesting ledger.

Provides the AccessGuard implementations the ledger consults before
privileged operations:
- OwnerAccessGuard: single-owner (Ownable) check used for the beneficiary
- AllowListAccessGuard: set of permitted automation agents for perform_due

Both log every denial with a structured event so rejected calls leave an
audit trail.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Set

from ..ledger_exceptions import Unauthorized
from ..structured_logger import truncate_address

logger = logging.getLogger(__name__)


def _normalize(address: str) -> str:
    return address.strip().lower()


@dataclass
class OwnerAccessGuard:
    """
    Ownable-style guard: exactly one address is authorized.

    Usage:
        guard = OwnerAccessGuard("0xowner")
        guard.require("0xowner", "claim")  # passes
        guard.require("0xother", "claim")  # raises Unauthorized
    """

    owner: str

    def __post_init__(self) -> None:
        if not self.owner or not self.owner.strip():
            raise ValueError("Owner address cannot be empty")
        self.owner = _normalize(self.owner)

    def is_authorized(self, caller: str) -> bool:
        return bool(caller) and _normalize(caller) == self.owner

    def require(self, caller: str, operation: str) -> None:
        """
        Raise Unauthorized unless caller is the owner.

        Args:
            caller: Address invoking the operation (msg.sender)
            operation: Operation name, recorded on denial
        """
        if self.is_authorized(caller):
            return
        logger.warning(
            "Access denied: caller is not the owner",
            extra={
                "event": "access_control.not_owner",
                "operation": operation,
                "caller": truncate_address(caller or ""),
            }
        )
        raise Unauthorized(
            "Ownable: caller is not the owner",
            details={"operation": operation, "caller": caller},
        )


@dataclass
class AllowListAccessGuard:
    """Authorizes any address in a mutable allow list."""

    allowed: Set[str] = field(default_factory=set)

    def __post_init__(self) -> None:
        self.allowed = {_normalize(a) for a in self.allowed if a}

    @classmethod
    def of(cls, addresses: Iterable[str]) -> "AllowListAccessGuard":
        return cls(allowed=set(addresses))

    def is_authorized(self, caller: str) -> bool:
        return bool(caller) and _normalize(caller) in self.allowed

    def grant(self, address: str) -> None:
        self.allowed.add(_normalize(address))
        logger.info(
            "Access granted",
            extra={"event": "access_control.granted", "address": truncate_address(address)},
        )

    def revoke(self, address: str) -> None:
        self.allowed.discard(_normalize(address))
        logger.info(
            "Access revoked",
            extra={"event": "access_control.revoked", "address": truncate_address(address)},
        )
