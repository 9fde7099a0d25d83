"""
Board interface defining the abstraction between the control core and hardware targets.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict

from common.interface import ActuatorDriver, SensorDriver


class Board(ABC):
    """
    Abstract interface that every hardware target must implement.
    The board owns the drivers; the control core talks only to this interface.
    """

    @property
    @abstractmethod
    def sensor_driver(self) -> SensorDriver:
        """Driver delivering rotation-vector and linear-acceleration reports."""

    @property
    @abstractmethod
    def actuator_driver(self) -> ActuatorDriver:
        """Driver accepting one normalized power per PWM channel."""

    def get_input_state(self) -> Dict[str, bool]:
        """Held keys, for targets with a local keyboard."""
        return {}

    def close(self) -> None:
        """Optional cleanup hook."""
        return None
