"""Trapezoidal integration over irregular millisecond timestamps."""

from __future__ import annotations

from typing import Optional, Sequence, Tuple


class ScalarIntegrator:
    """
    Integrate one scalar channel sample by sample.

    Each call returns the area added since the previous sample, i.e. the mean of the
    two endpoint values times the elapsed seconds. The first call only records the
    sample and returns 0. Timestamps are milliseconds and must not decrease; a
    backwards step yields a negative interval and is the caller's error.
    """

    def __init__(self) -> None:
        self._last_value: Optional[float] = None
        self._last_timestamp: Optional[float] = None

    def reset(self) -> None:
        self._last_value = None
        self._last_timestamp = None

    def integrate(self, value: float, timestamp: float) -> float:
        result = 0.0
        if self._last_value is not None:
            low = min(self._last_value, value)
            high = max(self._last_value, value)
            result = (low + (high - low) * 0.5) * (timestamp - self._last_timestamp) / 1000.0
        self._last_value = value
        self._last_timestamp = timestamp
        return result


class TriAxisIntegrator:
    """Three independent ScalarIntegrators, one per axis."""

    def __init__(self) -> None:
        self._axes = (ScalarIntegrator(), ScalarIntegrator(), ScalarIntegrator())

    def reset(self) -> None:
        for axis in self._axes:
            axis.reset()

    def integrate(self, value: Sequence[float], timestamp: float) -> Tuple[float, float, float]:
        x, y, z = value
        return (
            self._axes[0].integrate(x, timestamp),
            self._axes[1].integrate(y, timestamp),
            self._axes[2].integrate(z, timestamp),
        )


__all__ = ["ScalarIntegrator", "TriAxisIntegrator"]
