"""
Control allocation: map a 6-axis wrench onto the physical thrusters.
"""

from __future__ import annotations

from typing import Dict, Optional, Sequence

import numpy as np

from common.interface import ActuatorDriver, EventSink
from common.logger import get_logger
from common.math import Vector3D
from common.realtime import Clock, monotonic_ms
from common.types import MotorSpec, Wrench

logger = get_logger("control")

# Hand-tuned allocation for the five-thruster bench layout, rows in Wrench.AXES
# order, one column per motor. Used with its transpose as the inverse.
FIVE_MOTOR_CALIBRATION = np.array(
    [
        [1, 1, -1, -1, 0],
        [0, 0, 0, 0, 0],
        [0, 0, 0, 0, 1],
        [1, -1, 1, -1, 0],
        [1, 1, 1, 1, 0],
        [-1, 1, 1, -1, 0],
    ],
    dtype=np.float64,
)

NAMED_CALIBRATIONS: Dict[str, np.ndarray] = {"five_motor_test": FIVE_MOTOR_CALIBRATION}


def build_allocation_matrix(motors: Sequence[MotorSpec], center_of_mass: Vector3D) -> np.ndarray:
    """
    Return the 6xN matrix of wrench contributions per unit motor thrust.

    Motor geometry is in the viewer frame (X right, Y up, Z backward), so
    heave/sway/surge are the force's y/x/z and yaw/pitch/roll the torque's y/x/z.
    """
    if not motors:
        raise ValueError("at least one motor is required")
    rows = []
    for motor in motors:
        arm = motor.position - center_of_mass
        force = motor.orientation
        torque = arm.cross(motor.orientation)
        rows.append([force.y, force.x, force.z, torque.y, torque.x, torque.z])
    return np.array(rows, dtype=np.float64).T


def pseudo_inverse_mixing(allocation: np.ndarray) -> np.ndarray:
    """Moore-Penrose inverse of the allocation matrix: N motors x 6 axes."""
    return np.linalg.pinv(allocation)


def calibration_mixing(calibration: np.ndarray) -> np.ndarray:
    """Use the transpose of a fixed 6xN calibration matrix as the N x 6 inverse."""
    calibration = np.asarray(calibration, dtype=np.float64)
    if calibration.ndim != 2 or calibration.shape[0] != len(Wrench.AXES):
        raise ValueError(f"calibration matrix must have {len(Wrench.AXES)} rows, got shape {calibration.shape}")
    return calibration.T.copy()


class ActuatorMixer:
    """
    Applies an N x 6 coefficient matrix to wrenches and writes the result to the
    actuator driver. mix() is the raw linear map; apply() optionally clamps each
    motor's value to [-1, 1], then shapes it (power scale, rotation inversion) and
    sends it.
    """

    def __init__(
        self,
        motors: Sequence[MotorSpec],
        coefficients: np.ndarray,
        driver: Optional[ActuatorDriver] = None,
        sink: Optional[EventSink] = None,
        clamp: bool = True,
    ):
        coefficients = np.asarray(coefficients, dtype=np.float64)
        if coefficients.shape != (len(motors), len(Wrench.AXES)):
            raise ValueError(
                f"mixing matrix must be {len(motors)}x{len(Wrench.AXES)}, got {coefficients.shape}"
            )
        self.motors = list(motors)
        self._coefficients = coefficients
        self._driver = driver
        self._sink = sink
        self.clamp = clamp
        self._scales = np.array(
            [m.power_scale * (-1.0 if m.invert_rotation else 1.0) for m in self.motors], dtype=np.float64
        )
        self._last = np.zeros(len(self.motors))
        logger.info(f"Virtual to physical mapping: {self.mapping()}")

    @classmethod
    def from_geometry(
        cls,
        motors: Sequence[MotorSpec],
        center_of_mass: Vector3D,
        calibration: Optional[np.ndarray] = None,
        **kwargs,
    ) -> "ActuatorMixer":
        """
        Build the mixer from motor geometry. With ``calibration`` the geometric
        matrix is only logged and the calibration's transpose is used instead.
        """
        allocation = build_allocation_matrix(motors, center_of_mass)
        logger.info(f"Allocation matrix: {np.round(allocation, 2).tolist()}")
        if calibration is not None:
            if np.asarray(calibration).shape[1:] != (len(motors),):
                raise ValueError(f"calibration matrix needs one column per motor ({len(motors)})")
            logger.warning("Using fixed calibration matrix instead of the geometric pseudo-inverse")
            coefficients = calibration_mixing(calibration)
        else:
            coefficients = pseudo_inverse_mixing(allocation)
        logger.info(f"Inverse mapping matrix: {np.round(coefficients, 2).tolist()}")
        return cls(motors, coefficients, **kwargs)

    @property
    def coefficients(self) -> np.ndarray:
        return self._coefficients.copy()

    @property
    def last_commands(self) -> Dict[str, float]:
        return {m.name: float(p) for m, p in zip(self.motors, self._last)}

    def mapping(self) -> Dict[str, Dict[str, float]]:
        """Per-motor coefficient for every wrench axis."""
        return {
            m.name: {axis: round(float(c), 4) for axis, c in zip(Wrench.AXES, row)}
            for m, row in zip(self.motors, self._coefficients)
        }

    def mix(self, wrench: Wrench | Sequence[float]) -> np.ndarray:
        values = wrench.as_array() if isinstance(wrench, Wrench) else np.asarray(wrench, dtype=np.float64)
        if values.shape != (len(Wrench.AXES),):
            raise ValueError(f"wrench must have {len(Wrench.AXES)} components, got shape {values.shape}")
        return self._coefficients @ values

    def apply(self, wrench: Wrench) -> np.ndarray:
        """Mix, shape and send one power value per motor. Returns what was sent."""
        powers = self.mix(wrench)
        if self.clamp:
            powers = np.clip(powers, -1.0, 1.0)
        # Shaping follows the clamp: |power| <= power_scale.
        powers = powers * self._scales
        self._last = powers
        logger.debug(f"Virtual power set to {wrench.as_array().tolist()}")

        if self._driver is not None:
            for motor, power in zip(self.motors, powers):
                try:
                    self._driver.set_duty_cycle(motor.pwm_channel, float(power))
                except Exception as exc:
                    logger.warning(f"{motor.name}: PWM write on channel {motor.pwm_channel} failed: {exc}")
        if self._sink is not None:
            self._sink.emit("wrench", wrench)
        return powers.copy()

    def stop(self) -> np.ndarray:
        return self.apply(Wrench.zero())


class WrenchArbiter:
    """
    Choose between the local console wrench and the remote-command wrench.
    A local target wins while it is fresher than ``local_timeout_ms``.
    """

    def __init__(self, local_timeout_ms: float = 1000.0, clock: Clock = monotonic_ms):
        self.local_timeout_ms = float(local_timeout_ms)
        self._clock = clock
        self._local = Wrench.zero()
        self._local_at: Optional[float] = None

    @property
    def using_local(self) -> bool:
        if self._local_at is None:
            return False
        return self._clock() - self._local_at < self.local_timeout_ms

    def set_local(self, wrench: Wrench) -> None:
        self._local = wrench
        self._local_at = self._clock()

    def select(self, remote: Wrench) -> Wrench:
        return self._local if self.using_local else remote

    def reset(self) -> None:
        self._local = Wrench.zero()
        self._local_at = None


__all__ = [
    "ActuatorMixer",
    "FIVE_MOTOR_CALIBRATION",
    "NAMED_CALIBRATIONS",
    "WrenchArbiter",
    "build_allocation_matrix",
    "calibration_mixing",
    "pseudo_inverse_mixing",
]
