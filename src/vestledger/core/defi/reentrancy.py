"""
Reentrancy protection for transfer-performing operations.

A guarded call holds the lock for its whole duration. A nested call made
while the lock is held (for example from a token recipient hook firing in
the middle of a payout) is rejected immediately instead of blocking, so the
outer call keeps running and the inner one fails with ReentrantCall.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from ..ledger_exceptions import ReentrantCall

logger = logging.getLogger(__name__)


class ReentrancyGuard:
    """Non-blocking mutual exclusion scope (nonReentrant modifier)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._active_operation: Optional[str] = None

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def guard(self, operation: str) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            logger.error(
                "Reentrant call rejected",
                extra={
                    "event": "reentrancy.rejected",
                    "operation": operation,
                    "active_operation": self._active_operation,
                }
            )
            raise ReentrantCall(
                "ReentrancyGuard: reentrant call",
                details={"operation": operation, "active_operation": self._active_operation},
            )
        self._active_operation = operation
        try:
            yield
        finally:
            self._active_operation = None
            self._lock.release()


class NullCriticalSection:
    """CriticalSection that never excludes anything.

    Useful for showing that the state-before-transfer ordering alone already
    stops a nested claim from paying twice.
    """

    @contextmanager
    def guard(self, operation: str) -> Iterator[None]:
        yield
