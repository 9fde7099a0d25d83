"""Dead-reckoning velocity and position estimators (world frame)."""

from __future__ import annotations

from typing import Optional

from common.math import Vector3D
from rovcore.integrate import TriAxisIntegrator


class VelocityEstimator:
    """Accumulate integrated world acceleration into a running velocity (m/s)."""

    def __init__(self, integrator: TriAxisIntegrator | None = None):
        self._integrator = integrator or TriAxisIntegrator()
        self._velocity = Vector3D()

    @property
    def velocity(self) -> Vector3D:
        return self._velocity.copy()

    def reset(self) -> None:
        self._integrator.reset()
        self._velocity = Vector3D()

    def update(self, acceleration_world: Vector3D, timestamp: int) -> Vector3D:
        dv = self._integrator.integrate(acceleration_world.tolist(), timestamp)
        self._velocity = self._velocity + Vector3D(*dv)
        return self.velocity


class PositionEstimator:
    """
    Advance a running position (m) by velocity times the time since the last update.
    The first update only sets the time baseline.
    """

    def __init__(self) -> None:
        self._position = Vector3D()
        self._last_timestamp: Optional[int] = None

    @property
    def position(self) -> Vector3D:
        return self._position.copy()

    def reset(self) -> None:
        self._position = Vector3D()
        self._last_timestamp = None

    def update(self, velocity_world: Vector3D, timestamp: int) -> Vector3D:
        if self._last_timestamp is not None:
            elapsed_s = (timestamp - self._last_timestamp) / 1000.0
            self._position = self._position + velocity_world * elapsed_s
        self._last_timestamp = timestamp
        return self.position


__all__ = ["PositionEstimator", "VelocityEstimator"]
