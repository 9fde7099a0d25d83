import math
import unittest

import numpy as np
from scipy.spatial.transform import Rotation as SciRot

from common.math import Vector3D, wrap_angle
from common.types import Orientation
from rovcore.frames import body_to_world, rotation_matrix, sensor_to_body


class TestVector3D(unittest.TestCase):
    def test_arithmetic(self):
        a = Vector3D(1, 2, 3)
        b = Vector3D(0.5, -1, 2)
        np.testing.assert_allclose((a + b).v, [1.5, 1, 5])
        np.testing.assert_allclose((a - b).v, [0.5, 3, 1])
        np.testing.assert_allclose((a * 2).v, [2, 4, 6])
        np.testing.assert_allclose((2 * a).v, [2, 4, 6])

    def test_cross_matches_numpy(self):
        a = Vector3D(0.15, 0.0, -0.2)
        b = Vector3D(0.0, 1.0, 0.0)
        np.testing.assert_allclose(a.cross(b).v, np.cross(a.v, b.v))

    def test_normalize_zero_vector_raises(self):
        with self.assertRaises(ValueError):
            Vector3D().normalized()

    def test_from_iterable_requires_three_components(self):
        with self.assertRaises(ValueError):
            Vector3D.from_iterable([1, 2])

    def test_wrap_angle(self):
        self.assertAlmostEqual(wrap_angle(3 * math.pi / 2), -math.pi / 2)
        self.assertAlmostEqual(wrap_angle(0.25), 0.25)


class TestFrames(unittest.TestCase):
    def test_rotation_matches_scipy_zyx(self):
        for angles in [
            (0.1, 0.2, 0.3),
            (1.0, 0.0, 0.0),
            (0.0, 1.57, 0.0),
            (-2.0, 0.4, -1.1),
        ]:
            with self.subTest(angles=angles):
                yaw, pitch, roll = angles
                mat = rotation_matrix(Orientation(yaw, pitch, roll))
                expected = SciRot.from_euler("ZYX", [yaw, pitch, roll]).as_matrix()
                np.testing.assert_allclose(mat, expected, atol=1e-12)

    def test_identity_orientation_only_remaps_axes(self):
        out = body_to_world(Vector3D(1.0, 2.0, 3.0), Orientation())
        np.testing.assert_allclose(out.v, [1.0, 3.0, -2.0])

    def test_body_to_world_applies_rotation_then_remap(self):
        orientation = Orientation(yaw=0.3, pitch=-0.2, roll=0.7)
        accel = np.array([0.4, -1.2, 9.8])
        rotated = SciRot.from_euler("ZYX", [0.3, -0.2, 0.7]).apply(accel)
        expected = [rotated[0], rotated[2], -rotated[1]]
        np.testing.assert_allclose(body_to_world(Vector3D(*accel), orientation).v, expected, atol=1e-12)

    def test_yaw_quarter_turn(self):
        # Body X rotated 90 degrees about Z points along world Y, which remaps to -Z.
        out = body_to_world(Vector3D(1.0, 0.0, 0.0), Orientation(yaw=math.pi / 2))
        np.testing.assert_allclose(out.v, [0.0, 0.0, -1.0], atol=1e-12)

    def test_sensor_mount_is_identity(self):
        reading = Orientation(0.1, -0.2, 0.3)
        self.assertEqual(sensor_to_body(reading), reading)


if __name__ == '__main__':
    unittest.main()
