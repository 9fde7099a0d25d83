"""
Shared data structures for driver ↔ core ↔ telemetry boundaries.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import IntEnum
from typing import ClassVar, Optional, Sequence, Tuple

import numpy as np

from common.math import Vector3D


@dataclass(frozen=True)
class Orientation:
    """Yaw, pitch and roll in radians."""

    yaw: float = 0.0
    pitch: float = 0.0
    roll: float = 0.0

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.yaw, self.pitch, self.roll)


@dataclass(frozen=True)
class Wrench:
    """
    Normalized desired effort per virtual axis, each nominally in [-1, 1].
    AXES fixes the axis order used by every mixing matrix row.
    """

    AXES: ClassVar[Tuple[str, ...]] = ("heave", "sway", "surge", "yaw", "pitch", "roll")

    heave: float = 0.0
    sway: float = 0.0
    surge: float = 0.0
    yaw: float = 0.0
    pitch: float = 0.0
    roll: float = 0.0

    @classmethod
    def zero(cls) -> "Wrench":
        return cls()

    @classmethod
    def from_array(cls, values: Sequence[float]) -> "Wrench":
        if len(values) != len(cls.AXES):
            raise ValueError(f"wrench needs {len(cls.AXES)} components, got {len(values)}")
        return cls(*(float(v) for v in values))

    def as_array(self) -> np.ndarray:
        return np.array([getattr(self, axis) for axis in self.AXES], dtype=np.float64)

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def __add__(self, other: "Wrench") -> "Wrench":
        return Wrench.from_array(self.as_array() + other.as_array())


class SensorId(IntEnum):
    """SH-2 report ids delivered by the inertial sensor driver."""

    LINEAR_ACCELERATION = 0x04
    ROTATION_VECTOR = 0x05


@dataclass(frozen=True)
class SensorEvent:
    """
    Raw measurement from the sensor driver, discriminated by ``report_id``.
    Rotation-vector events carry yaw/pitch/roll (rad); linear-acceleration events
    carry body-frame x/y/z (m/s^2) and the sensor timestamp in microseconds.
    """

    report_id: int
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    yaw: float = 0.0
    pitch: float = 0.0
    roll: float = 0.0
    timestamp_us: int = 0

    @classmethod
    def rotation_vector(cls, yaw: float, pitch: float, roll: float, timestamp_us: int = 0) -> "SensorEvent":
        return cls(SensorId.ROTATION_VECTOR, yaw=yaw, pitch=pitch, roll=roll, timestamp_us=timestamp_us)

    @classmethod
    def linear_acceleration(cls, x: float, y: float, z: float, timestamp_us: int) -> "SensorEvent":
        return cls(SensorId.LINEAR_ACCELERATION, x=x, y=y, z=z, timestamp_us=timestamp_us)


@dataclass(frozen=True)
class Speed:
    """World-frame velocity in m/s, stamped with the sample time in milliseconds."""

    x: float
    y: float
    z: float
    timestamp: int


@dataclass
class KinematicState:
    """World-frame estimate owned by the fusion pipeline."""

    orientation: Orientation = field(default_factory=Orientation)
    acceleration: Vector3D = field(default_factory=Vector3D)
    velocity: Vector3D = field(default_factory=Vector3D)
    position: Vector3D = field(default_factory=Vector3D)
    last_update: Optional[int] = None

    def snapshot(self) -> "KinematicState":
        return KinematicState(
            orientation=self.orientation,
            acceleration=self.acceleration.copy(),
            velocity=self.velocity.copy(),
            position=self.position.copy(),
            last_update=self.last_update,
        )


@dataclass(frozen=True)
class MotorSpec:
    """Physical thruster description, immutable after configuration load."""

    name: str
    position: Vector3D
    orientation: Vector3D
    pwm_channel: int
    power_scale: float = 1.0
    invert_rotation: bool = False
    invert_pwm: bool = False


__all__ = [
    "KinematicState",
    "MotorSpec",
    "Orientation",
    "SensorEvent",
    "SensorId",
    "Speed",
    "Wrench",
]
