"""
Coordinate frame conventions.

Sensor/body frame: X right, Y forward, Z up.
World (consumer) frame: X right, Y up, Z backward.
"""

from __future__ import annotations

import math

import numpy as np

from common.math import Vector3D
from common.types import Orientation

# The IMU is mounted aligned with the hull: its yaw/pitch/roll are the body's.
SENSOR_MOUNT_OFFSET = Orientation(yaw=0.0, pitch=0.0, roll=0.0)

# (x, y, z) -> (x, z, -y)
WORLD_AXIS_REMAP = np.array(
    [
        [1.0, 0.0, 0.0],
        [0.0, 0.0, 1.0],
        [0.0, -1.0, 0.0],
    ]
)


def sensor_to_body(reading: Orientation) -> Orientation:
    """Apply the fixed mounting offset to a rotation-vector reading."""
    return Orientation(
        yaw=reading.yaw + SENSOR_MOUNT_OFFSET.yaw,
        pitch=reading.pitch + SENSOR_MOUNT_OFFSET.pitch,
        roll=reading.roll + SENSOR_MOUNT_OFFSET.roll,
    )


def rotation_matrix(orientation: Orientation) -> np.ndarray:
    """Body-to-world rotation Rz(yaw) @ Ry(pitch) @ Rx(roll), before the axis remap."""
    cy, sy = math.cos(orientation.yaw), math.sin(orientation.yaw)
    cp, sp = math.cos(orientation.pitch), math.sin(orientation.pitch)
    cr, sr = math.cos(orientation.roll), math.sin(orientation.roll)
    return np.array(
        [
            [cy * cp, cy * sp * sr - sy * cr, cy * sp * cr + sy * sr],
            [sy * cp, sy * sp * sr + cy * cr, sy * sp * cr - cy * sr],
            [-sp, cp * sr, cp * cr],
        ]
    )


def body_to_world(acceleration_body: Vector3D, orientation: Orientation) -> Vector3D:
    """
    Rotate a body-frame vector into the world frame and remap axes to the
    consumer convention. At zero orientation (a, b, c) becomes (a, c, -b).
    """
    world = rotation_matrix(orientation) @ acceleration_body.v
    return Vector3D(*(WORLD_AXIS_REMAP @ world))


__all__ = ["SENSOR_MOUNT_OFFSET", "WORLD_AXIS_REMAP", "body_to_world", "rotation_matrix", "sensor_to_body"]
