"""
Simulated hardware board: a crude rigid-body vehicle driven by the motor outputs,
observed through a virtual IMU that reports like the real sensor driver.
"""

from __future__ import annotations

from typing import Dict, Optional, Sequence

import numpy as np

from common.interface import ActuatorDriver, MeasurementCallback, SensorDriver
from common.logger import get_logger
from common.math import Vector3D, wrap_angle
from common.types import MotorSpec, Orientation, SensorEvent, SensorId
from rovcore.board import Board
from rovcore.control import build_allocation_matrix

logger = get_logger("sim")


class SimVehicle:
    """
    Point-mass vehicle with first-order drag. Motor powers are projected onto the
    wrench axes with the allocation matrix; forces become body-frame acceleration
    (X right, Y forward, Z up) and torques become attitude rates.
    """

    def __init__(
        self,
        motors: Sequence[MotorSpec],
        center_of_mass: Vector3D,
        accel_gain: float = 2.0,
        rate_gain: float = 0.8,
        drag: float = 1.5,
    ):
        self._channels = {m.pwm_channel: i for i, m in enumerate(motors)}
        self._allocation = build_allocation_matrix(motors, center_of_mass)
        self._powers = np.zeros(len(motors))
        self.accel_gain = accel_gain
        self.rate_gain = rate_gain
        self.drag = drag
        self.time_us = 0
        self.orientation = Orientation()
        self._velocity_body = np.zeros(3)
        self.accel_body = np.zeros(3)

    def set_power(self, channel: int, power: float) -> None:
        index = self._channels.get(channel)
        if index is None:
            raise KeyError(f"no motor on channel {channel}")
        self._powers[index] = power

    def step(self, dt_us: int) -> None:
        dt = dt_us / 1e6
        heave, sway, surge, yaw, pitch, roll = self._allocation @ self._powers
        thrust = self.accel_gain * np.array([sway, -surge, heave])
        self.accel_body = thrust - self.drag * self._velocity_body
        self._velocity_body = self._velocity_body + self.accel_body * dt
        self.orientation = Orientation(
            yaw=wrap_angle(self.orientation.yaw + self.rate_gain * yaw * dt),
            pitch=wrap_angle(self.orientation.pitch + self.rate_gain * pitch * dt),
            roll=wrap_angle(self.orientation.roll + self.rate_gain * roll * dt),
        )
        self.time_us += dt_us


class SimImuDriver(SensorDriver):
    """Virtual IMU: each poll advances the vehicle by one loop period of samples."""

    def __init__(self, vehicle: SimVehicle, loop_period_ms: float):
        self._vehicle = vehicle
        self._loop_period_ms = loop_period_ms
        self._callback: Optional[MeasurementCallback] = None
        self._intervals: Dict[int, int] = {}

    def set_measurement_callback(self, callback: MeasurementCallback) -> None:
        self._callback = callback

    def enable_sensor(self, report_id: int, interval_ms: int) -> None:
        self._intervals[int(report_id)] = int(interval_ms)
        logger.info(f"Enabled report {int(report_id):#04x} every {interval_ms} ms")

    def disable_sensor(self, report_id: int) -> None:
        self._intervals.pop(int(report_id), None)

    def poll(self) -> None:
        if not self._intervals:
            return
        interval_ms = min(self._intervals.values())
        samples = max(1, int(round(self._loop_period_ms / interval_ms)))
        for _ in range(samples):
            self._vehicle.step(interval_ms * 1000)
            self._deliver()

    def _deliver(self) -> None:
        if self._callback is None:
            return
        v = self._vehicle
        if SensorId.ROTATION_VECTOR in self._intervals:
            o = v.orientation
            self._callback(SensorEvent.rotation_vector(o.yaw, o.pitch, o.roll, v.time_us))
        if SensorId.LINEAR_ACCELERATION in self._intervals:
            ax, ay, az = (float(c) for c in v.accel_body)
            self._callback(SensorEvent.linear_acceleration(ax, ay, az, v.time_us))


class SimPwmDriver(ActuatorDriver):
    """Virtual PWM outputs feeding the simulated vehicle."""

    def __init__(self, vehicle: SimVehicle):
        self._vehicle = vehicle

    def set_duty_cycle(self, channel: int, power: float) -> None:
        self._vehicle.set_power(channel, power)


class SimBoard(Board):
    """Board implementation backed by the simulated vehicle."""

    def __init__(self, motors: Sequence[MotorSpec], center_of_mass: Vector3D, dt: float = 0.1):
        self.dt = dt
        self.vehicle = SimVehicle(motors, center_of_mass)
        self._imu = SimImuDriver(self.vehicle, loop_period_ms=dt * 1000.0)
        self._pwm = SimPwmDriver(self.vehicle)
        self._keys: Dict[str, bool] = {}

    @property
    def sensor_driver(self) -> SimImuDriver:
        return self._imu

    @property
    def actuator_driver(self) -> SimPwmDriver:
        return self._pwm

    def set_input_keys(self, keys: Sequence[str]) -> None:
        self._keys = {str(k): True for k in keys}

    def get_input_state(self) -> Dict[str, bool]:
        return dict(self._keys)


__all__ = ["SimBoard", "SimImuDriver", "SimPwmDriver", "SimVehicle"]
