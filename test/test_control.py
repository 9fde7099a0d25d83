import unittest

import numpy as np

from common.interface import ActuatorDriver
from common.math import Vector3D
from common.realtime import VirtualClock
from common.types import MotorSpec, Wrench
from rovcore.control import (
    FIVE_MOTOR_CALIBRATION,
    ActuatorMixer,
    WrenchArbiter,
    build_allocation_matrix,
    calibration_mixing,
    pseudo_inverse_mixing,
)


def motor(name, position, orientation, channel, **kwargs):
    return MotorSpec(name, Vector3D(*position), Vector3D(*orientation), channel, **kwargs)


def five_motor_layout():
    return [
        motor("front_left", (-0.15, 0, -0.2), (0, 1, 0), 0),
        motor("front_right", (0.15, 0, -0.2), (0, 1, 0), 1),
        motor("rear_left", (-0.15, 0, 0.2), (0, 1, 0), 2),
        motor("rear_right", (0.15, 0, 0.2), (0, 1, 0), 3),
        motor("rear", (0, 0, 0.25), (0, 0, -1), 4),
    ]


def six_motor_layout():
    # Full-rank layout: three vertical, two horizontal vectored, one lateral.
    return [
        motor("v1", (0.2, 0, -0.2), (0, 1, 0), 0),
        motor("v2", (-0.2, 0, -0.2), (0, 1, 0), 1),
        motor("v3", (0, 0, 0.25), (0, 1, 0), 2),
        motor("h1", (0.15, 0, 0.2), (0, 0, -1), 3),
        motor("h2", (-0.15, 0, 0.2), (0, 0, -1), 4),
        motor("lat", (0, 0.05, 0), (1, 0, 0), 5),
    ]


class RecordingDriver(ActuatorDriver):
    def __init__(self, fail_channels=()):
        self.writes = {}
        self.fail_channels = set(fail_channels)

    def set_duty_cycle(self, channel, power):
        if channel in self.fail_channels:
            raise OSError("i2c write failed")
        self.writes[channel] = power


class TestAllocation(unittest.TestCase):
    def test_row_layout(self):
        allocation = build_allocation_matrix(five_motor_layout(), Vector3D())
        self.assertEqual(allocation.shape, (6, 5))
        # front_right: force (0,1,0), torque = (0.15,0,-0.2) x (0,1,0) = (0.2, 0, 0.15)
        np.testing.assert_allclose(allocation[:, 1], [1, 0, 0, 0, 0.2, 0.15])
        np.testing.assert_allclose(allocation[:, 4], [0, 0, -1, 0, 0, 0])

    def test_center_of_mass_offsets_arm(self):
        motors = [motor("m", (1, 0, 0), (0, 1, 0), 0)]
        allocation = build_allocation_matrix(motors, Vector3D(1, 0, 0))
        np.testing.assert_allclose(allocation[:, 0], [1, 0, 0, 0, 0, 0])

    def test_requires_motors(self):
        with self.assertRaises(ValueError):
            build_allocation_matrix([], Vector3D())

    def test_pseudo_inverse_properties(self):
        allocation = build_allocation_matrix(five_motor_layout(), Vector3D())
        inverse = pseudo_inverse_mixing(allocation)
        self.assertEqual(inverse.shape, (5, 6))
        np.testing.assert_allclose(allocation @ inverse @ allocation, allocation, atol=1e-12)

    def test_full_rank_layout_reproduces_wrench(self):
        allocation = build_allocation_matrix(six_motor_layout(), Vector3D())
        self.assertEqual(np.linalg.matrix_rank(allocation), 6)
        mixer = ActuatorMixer(six_motor_layout(), pseudo_inverse_mixing(allocation), clamp=False)
        wrench = Wrench(0.1, -0.2, 0.3, 0.05, -0.1, 0.2)
        np.testing.assert_allclose(allocation @ mixer.mix(wrench), wrench.as_array(), atol=1e-9)

    def test_calibration_uses_transpose(self):
        np.testing.assert_array_equal(calibration_mixing(FIVE_MOTOR_CALIBRATION), FIVE_MOTOR_CALIBRATION.T)

    def test_calibration_needs_six_rows(self):
        with self.assertRaises(ValueError):
            calibration_mixing(np.ones((5, 5)))


class TestActuatorMixer(unittest.TestCase):
    def setUp(self):
        self.rng = np.random.default_rng(1234)

    def test_zero_wrench_gives_zero_commands(self):
        for _ in range(5):
            coeffs = self.rng.normal(size=(5, 6))
            mixer = ActuatorMixer(five_motor_layout(), coeffs)
            np.testing.assert_array_equal(mixer.apply(Wrench.zero()), np.zeros(5))

    def test_apply_is_linear(self):
        mixer = ActuatorMixer(five_motor_layout(), self.rng.normal(size=(5, 6)), clamp=False)
        for _ in range(50):
            w1 = Wrench.from_array(self.rng.uniform(-1, 1, size=6))
            w2 = Wrench.from_array(self.rng.uniform(-1, 1, size=6))
            np.testing.assert_allclose(mixer.apply(w1 + w2), mixer.apply(w1) + mixer.apply(w2), atol=1e-12)

    def test_calibration_profile_mapping(self):
        mixer = ActuatorMixer.from_geometry(five_motor_layout(), Vector3D(), calibration=FIVE_MOTOR_CALIBRATION)
        np.testing.assert_array_equal(mixer.apply(Wrench(surge=1.0)), [0, 0, 0, 0, 1])
        np.testing.assert_array_equal(mixer.apply(Wrench(heave=1.0)), [1, 1, -1, -1, 0])
        self.assertEqual(mixer.mapping()["rear_right"]["roll"], -1.0)

    def test_calibration_column_count_must_match(self):
        with self.assertRaises(ValueError):
            ActuatorMixer.from_geometry(five_motor_layout()[:4], Vector3D(), calibration=FIVE_MOTOR_CALIBRATION)

    def test_clamps_output(self):
        coeffs = np.zeros((5, 6))
        coeffs[:, 0] = [2.0, -3.0, 0.5, 1.0, 0.0]
        mixer = ActuatorMixer(five_motor_layout(), coeffs)
        np.testing.assert_array_equal(mixer.apply(Wrench(heave=1.0)), [1.0, -1.0, 0.5, 1.0, 0.0])
        np.testing.assert_array_equal(mixer.mix(Wrench(heave=1.0)), [2.0, -3.0, 0.5, 1.0, 0.0])

    def test_scale_and_inversion_before_driver(self):
        motors = [
            motor("a", (0, 0, 0), (0, 1, 0), 7, power_scale=0.5),
            motor("b", (0, 0, 0), (0, 1, 0), 9, invert_rotation=True),
        ]
        driver = RecordingDriver()
        mixer = ActuatorMixer(motors, np.array([[1, 0, 0, 0, 0, 0], [1, 0, 0, 0, 0, 0]]), driver=driver)
        mixer.apply(Wrench(heave=0.8))
        self.assertEqual(driver.writes, {7: 0.4, 9: -0.8})
        self.assertEqual(mixer.last_commands, {"a": 0.4, "b": -0.8})

    def test_scale_applies_after_clamp(self):
        motors = [
            motor("scaled", (0, 0, 0), (0, 1, 0), 0, power_scale=0.8),
            motor("inverted", (0, 0, 0), (0, 1, 0), 1, invert_rotation=True),
        ]
        mixer = ActuatorMixer(motors, np.array([[1.5, 0, 0, 0, 0, 0], [2.0, 0, 0, 0, 0, 0]]))
        np.testing.assert_allclose(mixer.apply(Wrench(heave=1.0)), [0.8, -1.0])
        np.testing.assert_allclose(mixer.apply(Wrench(heave=-1.0)), [-0.8, 1.0])

    def test_driver_failure_is_logged_and_other_motors_written(self):
        driver = RecordingDriver(fail_channels={2})
        mixer = ActuatorMixer(five_motor_layout(), np.ones((5, 6)) * 0.1, driver=driver)
        with self.assertLogs("rovcore.control", level="WARNING"):
            mixer.apply(Wrench(heave=1.0))
        self.assertEqual(sorted(driver.writes), [0, 1, 3, 4])

    def test_emits_wrench(self):
        events = []

        class Sink:
            def emit(self, topic, payload):
                events.append((topic, payload))

        mixer = ActuatorMixer(five_motor_layout(), np.zeros((5, 6)), sink=Sink())
        mixer.apply(Wrench(yaw=1.0))
        self.assertEqual(events, [("wrench", Wrench(yaw=1.0))])

    def test_shape_checks(self):
        with self.assertRaises(ValueError):
            ActuatorMixer(five_motor_layout(), np.zeros((4, 6)))
        mixer = ActuatorMixer(five_motor_layout(), np.zeros((5, 6)))
        with self.assertRaises(ValueError):
            mixer.mix([1, 2, 3, 4, 5])


class TestWrenchArbiter(unittest.TestCase):
    def test_local_wins_while_fresh(self):
        clock = VirtualClock()
        arbiter = WrenchArbiter(local_timeout_ms=1000, clock=clock)
        remote = Wrench(surge=1.0)
        local = Wrench(heave=0.5)
        self.assertEqual(arbiter.select(remote), remote)
        arbiter.set_local(local)
        self.assertTrue(arbiter.using_local)
        clock.advance(999)
        self.assertEqual(arbiter.select(remote), local)
        clock.advance(1)
        self.assertEqual(arbiter.select(remote), remote)

    def test_reset(self):
        arbiter = WrenchArbiter(clock=VirtualClock())
        arbiter.set_local(Wrench(heave=1.0))
        arbiter.reset()
        self.assertFalse(arbiter.using_local)


if __name__ == '__main__':
    unittest.main()
