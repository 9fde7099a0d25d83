"""Sensor fusion pipeline: raw IMU reports in, world-frame kinematic events out."""

from __future__ import annotations

import math
from typing import Optional

from common.interface import EventSink
from common.logger import get_logger
from common.math import Vector3D
from common.types import KinematicState, Orientation, SensorEvent, SensorId, Speed
from rovcore.estimate import PositionEstimator, VelocityEstimator
from rovcore.frames import body_to_world, sensor_to_body

logger = get_logger("fusion")

__all__ = ["SensorFusionPipeline", "micros_to_millis"]


def micros_to_millis(timestamp_us: int) -> int:
    """Floor a microsecond sensor timestamp to whole milliseconds."""
    return int(timestamp_us) // 1000


class SensorFusionPipeline:
    """
    Turns rotation-vector and linear-acceleration reports into orientation,
    acceleration, speed and location events.

    Acceleration is rotated with the most recent orientation report; the two
    streams are not time-aligned. The pipeline is the only writer of its
    KinematicState and expects callbacks on a single thread.
    """

    def __init__(
        self,
        sink: EventSink,
        velocity: VelocityEstimator | None = None,
        position: PositionEstimator | None = None,
    ) -> None:
        self._sink = sink
        self._velocity = velocity or VelocityEstimator()
        self._position = position or PositionEstimator()
        self._state = KinematicState()

    @property
    def state(self) -> KinematicState:
        """Read-only snapshot of the current estimate."""
        return self._state.snapshot()

    def reset(self) -> None:
        """Forget orientation, drift and timestamps between operating sessions."""
        self._velocity.reset()
        self._position.reset()
        self._state = KinematicState()
        logger.info("Kinematic state reset")

    def handle(self, event: SensorEvent) -> None:
        """Measurement callback for the sensor driver."""
        if event.report_id == SensorId.ROTATION_VECTOR:
            self._on_rotation_vector(event)
        elif event.report_id == SensorId.LINEAR_ACCELERATION:
            self._on_linear_acceleration(event)
        else:
            logger.debug(f"Ignoring report id {event.report_id:#04x}")

    def _on_rotation_vector(self, event: SensorEvent) -> None:
        orientation = sensor_to_body(Orientation(event.yaw, event.pitch, event.roll))
        self._state.orientation = orientation
        self._sink.emit("orientation", list(orientation.as_tuple()))

    def _on_linear_acceleration(self, event: SensorEvent) -> None:
        timestamp = micros_to_millis(event.timestamp_us)
        if not self._accept(event, timestamp):
            return

        accel_world = body_to_world(Vector3D(event.x, event.y, event.z), self._state.orientation)
        velocity = self._velocity.update(accel_world, timestamp)
        position = self._position.update(velocity, timestamp)

        self._state.acceleration = accel_world
        self._state.velocity = velocity
        self._state.position = position
        self._state.last_update = timestamp

        self._sink.emit("acceleration", accel_world.tolist())
        self._sink.emit("speed", Speed(velocity.x, velocity.y, velocity.z, timestamp))
        self._sink.emit("location", position.tolist())
        logger.debug(f"Speed {velocity.norm():.2f} m/s at {timestamp} ms")

    def _accept(self, event: SensorEvent, timestamp: int) -> bool:
        last: Optional[int] = self._state.last_update
        if last is not None and timestamp < last:
            logger.warning(f"Dropping acceleration sample: timestamp {timestamp} ms precedes {last} ms")
            return False
        if not all(math.isfinite(c) for c in (event.x, event.y, event.z)):
            logger.warning(f"Dropping non-finite acceleration sample at {timestamp} ms")
            return False
        return True
