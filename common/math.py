"""
Small vector math shared by the estimators, the mixer and the simulator.
"""

from __future__ import annotations

import math
from typing import Iterable, Iterator

import numpy as np


def wrap_angle(angle: float) -> float:
    """Wrap an angle in radians to [-pi, pi)."""
    return (angle + math.pi) % (2.0 * math.pi) - math.pi


class Vector3D:
    """
    Three-component vector backed by a float64 numpy array.
    The frame (body or world) is not tracked; functions document it.
    """

    __slots__ = ("v",)

    def __init__(self, x: float = 0.0, y: float = 0.0, z: float = 0.0):
        self.v = np.array([x, y, z], dtype=np.float64)

    @classmethod
    def from_iterable(cls, values: Iterable[float]) -> "Vector3D":
        vals = [float(c) for c in values]
        if len(vals) != 3:
            raise ValueError(f"expected 3 components, got {len(vals)}")
        return cls(*vals)

    @property
    def x(self) -> float:
        return float(self.v[0])

    @property
    def y(self) -> float:
        return float(self.v[1])

    @property
    def z(self) -> float:
        return float(self.v[2])

    def __add__(self, other: "Vector3D") -> "Vector3D":
        return Vector3D(*(self.v + other.v))

    def __sub__(self, other: "Vector3D") -> "Vector3D":
        return Vector3D(*(self.v - other.v))

    def __mul__(self, scalar: float) -> "Vector3D":
        return Vector3D(*(self.v * scalar))

    __rmul__ = __mul__

    def __neg__(self) -> "Vector3D":
        return Vector3D(*(-self.v))

    def __iter__(self) -> Iterator[float]:
        return iter(self.tolist())

    def __eq__(self, other) -> bool:
        if not isinstance(other, Vector3D):
            return NotImplemented
        return bool(np.array_equal(self.v, other.v))

    def __repr__(self) -> str:
        return f"Vector3D({self.x}, {self.y}, {self.z})"

    def cross(self, other: "Vector3D") -> "Vector3D":
        return Vector3D(*np.cross(self.v, other.v))

    def dot(self, other: "Vector3D") -> float:
        return float(np.dot(self.v, other.v))

    def norm(self) -> float:
        return float(np.linalg.norm(self.v))

    def normalized(self) -> "Vector3D":
        n = self.norm()
        if n < 1e-12:
            raise ValueError("cannot normalize a zero-length vector")
        return Vector3D(*(self.v / n))

    def copy(self) -> "Vector3D":
        return Vector3D(*self.v)

    def tolist(self) -> list[float]:
        return [float(c) for c in self.v]


__all__ = ["Vector3D", "wrap_angle"]
