"""
Time providers for deterministic vesting math.

The ledger never samples ambient time itself; it is handed a zero-argument
callable returning integer Unix seconds.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)

TimeProvider = Callable[[], int]


def system_time() -> int:
    """Wall-clock Unix time truncated to whole seconds."""
    return int(time.time())


class ManualClock:
    """Settable clock for tests and simulations.

    Time only moves forward: rewinding raises ValueError so that entitlement
    stays monotonic for any ledger reading this clock.
    """

    def __init__(self, start_time: int):
        self.current_time = int(start_time)

    def now(self) -> int:
        return self.current_time

    __call__ = now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Cannot advance clock by a negative amount")
        self.current_time += int(seconds)
        return self.current_time

    def set(self, timestamp: int) -> int:
        timestamp = int(timestamp)
        if timestamp < self.current_time:
            raise ValueError(
                f"Clock cannot move backwards ({timestamp} < {self.current_time})"
            )
        self.current_time = timestamp
        logger.debug("Manual clock set to %d", timestamp)
        return self.current_time


class MonotonicClock:
    """Wraps a time provider and never reports a value lower than one already seen."""

    def __init__(self, time_provider: TimeProvider | None = None):
        self._time_provider = time_provider or system_time
        self._last = 0

    def __call__(self) -> int:
        timestamp = self._time_provider()
        try:
            timestamp = int(timestamp)
        except (TypeError, ValueError) as exc:
            raise ValueError("time_provider must return an integer timestamp") from exc
        if timestamp < self._last:
            logger.warning(
                "Time source went backwards, holding last value",
                extra={"event": "clock.regression", "observed": timestamp, "held": self._last},
            )
            return self._last
        self._last = timestamp
        return timestamp
