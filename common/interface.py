"""
Interface definitions for sensor drivers, actuator drivers, command sources and event sinks.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional

from common.types import SensorEvent, Wrench

MeasurementCallback = Callable[[SensorEvent], None]


class SensorDriver(ABC):
    """Abstract base for inertial sensor drivers that push measurements."""

    @abstractmethod
    def set_measurement_callback(self, callback: MeasurementCallback) -> None:
        """Register the handler invoked for every measurement."""

    @abstractmethod
    def enable_sensor(self, report_id: int, interval_ms: int) -> None:
        """Enable a report type at the given sampling interval."""

    def disable_sensor(self, report_id: int) -> None:
        """Disable a report type."""
        raise NotImplementedError

    def use_interrupts(self, pin: Any) -> None:
        """Configure a data-ready interrupt. Optional and driver-specific."""
        raise NotImplementedError

    def poll(self) -> None:
        """Deliver any pending measurements through the callback."""
        return None


class ActuatorDriver(ABC):
    """Abstract base for PWM/motor output drivers."""

    @abstractmethod
    def set_duty_cycle(self, channel: int, power: float) -> None:
        """Send a normalized power value to one output channel."""


class EventSink(ABC):
    """Fire-and-forget destination for telemetry events."""

    @abstractmethod
    def emit(self, topic: str, payload: Any) -> None:
        """Publish ``payload`` under ``topic``."""


class CommandSource(ABC):
    """Produces remote command names that are currently held."""

    @abstractmethod
    def read(self, dt: float) -> List[str]:
        """Return the command names active this tick."""

    def close(self) -> None:
        return None


class WrenchSource(ABC):
    """Produces a continuous local wrench target."""

    @abstractmethod
    def read(self, dt: float) -> Optional[Wrench]:
        """Return the latest wrench target, or None when there is no input."""

    def close(self) -> None:
        return None
