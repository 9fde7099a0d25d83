"""
Clocks and loop pacing for the control loop and the command timers.

All timers in the core take a ``clock`` callable so tests can drive them with a
VirtualClock instead of sleeping.
"""

from __future__ import annotations

import time
from typing import Callable

from common.logger import get_logger

logger = get_logger("realtime")

Clock = Callable[[], float]


def monotonic_time() -> float:
    """Return monotonic time in seconds."""
    return time.monotonic()


def monotonic_ms() -> float:
    """Return monotonic time in milliseconds."""
    return time.monotonic() * 1000.0


class VirtualClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start_ms: float = 0.0):
        self.now_ms = float(start_ms)

    def __call__(self) -> float:
        return self.now_ms

    def advance(self, ms: float) -> float:
        if ms < 0.0:
            raise ValueError("a monotonic clock cannot go backwards")
        self.now_ms += ms
        return self.now_ms


class RateKeeper:
    """
    Keep a loop at a fixed rate against a seconds clock.

    monitor_time() returns the seconds left in the current frame (negative when
    late) and logs when the loop falls behind by more than ``lag_threshold``;
    keep_time() additionally sleeps off the remainder.
    """

    def __init__(self, rate_hz: float, clock: Clock = monotonic_time, lag_threshold: float | None = 0.01):
        if rate_hz <= 0.0:
            raise ValueError("rate_hz must be positive")
        self.period = 1.0 / rate_hz
        self.clock = clock
        self.lag_threshold = lag_threshold
        self.frame = 0
        self._next = self.clock() + self.period

    def monitor_time(self) -> float:
        remaining = self._next - self.clock()
        if self.lag_threshold is not None and remaining < -self.lag_threshold:
            logger.warning(f"Control loop lagging by {-remaining * 1000:.2f} ms (frame {self.frame})")
        self._next += self.period
        self.frame += 1
        return remaining

    def keep_time(self) -> None:
        remaining = self.monitor_time()
        if remaining > 0.0:
            time.sleep(remaining)


__all__ = ["Clock", "RateKeeper", "VirtualClock", "monotonic_ms", "monotonic_time"]
