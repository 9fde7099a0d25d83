#!/usr/bin/env python3
"""
Entry point: load configuration, set up the board, and run the control loop.
"""
from __future__ import annotations

import os
from typing import Optional, Tuple

import numpy as np

from common.events import EventBus
from common.interface import CommandSource, EventSink, WrenchSource
from common.logger import get_logger
from common.realtime import Clock, RateKeeper, monotonic_ms
from common.types import SensorId, Wrench
from rovcore.board import Board
from rovcore.config import VehicleConfig, load_config
from rovcore.control import ActuatorMixer, WrenchArbiter
from rovcore.fusion import SensorFusionPipeline
from rovcore.input import DualSenseWrenchSource, KeyboardCommandSource, RemoteCommandDebouncer

logger = get_logger("main")


def init_board(target_name: str | None, config: VehicleConfig) -> Board:
    """Instantiate the board for the requested target."""
    target = (target_name or "sim").lower()
    if target == "sim":
        from target.simulator import SimBoard

        return SimBoard(config.motors, config.center_of_mass, dt=1.0 / config.control.rate_hz)
    raise NotImplementedError(f"Unsupported target '{target}'")


def init_inputs(board: Board) -> Tuple[Optional[CommandSource], Optional[WrenchSource]]:
    """Choose the operator input from the INPUT environment variable."""
    input_kind = (os.environ.get("INPUT") or "keyboard").lower()
    if input_kind == "dualsense":
        return None, DualSenseWrenchSource()
    return KeyboardCommandSource(get_keys=board.get_input_state), None


class Controls:
    """Controls-style loop: update() -> state_control() -> publish() -> run()."""

    def __init__(
        self,
        board: Board,
        config: VehicleConfig,
        sink: Optional[EventSink] = None,
        clock: Clock = monotonic_ms,
        command_source: Optional[CommandSource] = None,
        wrench_source: Optional[WrenchSource] = None,
    ):
        self.board = board
        self.config = config
        self.rate_hz = float(config.control.rate_hz)
        self.dt = 1.0 / self.rate_hz
        self.sink = sink or EventBus()
        self.command_source = command_source
        self.wrench_source = wrench_source

        self.pipeline = SensorFusionPipeline(self.sink)
        self.debouncer = RemoteCommandDebouncer(config.control.remote_timeout_ms, clock=clock)
        self.arbiter = WrenchArbiter(config.control.local_input_timeout_ms, clock=clock)
        self.mixer = ActuatorMixer.from_geometry(
            config.motors,
            config.center_of_mass,
            calibration=config.control.calibration,
            driver=board.actuator_driver,
            sink=self.sink,
            clamp=config.control.clamp_output,
        )
        self._setup_imu()
        logger.info(f"Board initialized ({type(self.board).__name__}, {len(config.motors)} motors)")

    def _setup_imu(self) -> None:
        imu = self.config.imu
        driver = self.board.sensor_driver
        driver.set_measurement_callback(self.pipeline.handle)
        driver.enable_sensor(SensorId.ROTATION_VECTOR, imu.sampling_interval_ms)
        driver.enable_sensor(SensorId.LINEAR_ACCELERATION, imu.sampling_interval_ms)
        if imu.use_interrupts:
            try:
                driver.use_interrupts(imu.interrupt_pin)
            except Exception as exc:
                logger.error(f"Failed to configure IMU interrupts, falling back to polling: {exc}")

    # -- Inbound commands ----------------------------------------------------

    def on_remote_command(self, command: str) -> bool:
        """Handle one remote command pulse from the operator link."""
        return self.debouncer.pulse(command)

    def set_local_wrench(self, wrench: Wrench) -> np.ndarray:
        """Accept a local wrench target and apply it right away."""
        self.arbiter.set_local(wrench)
        return self.mixer.apply(wrench)

    # -- Pipeline stages -----------------------------------------------------

    def update(self) -> None:
        """Sample operator inputs and let the sensor driver deliver pending reports."""
        self._read_inputs()
        self.board.sensor_driver.poll()

    def state_control(self) -> Wrench:
        """Expire remote commands and pick the wrench to apply."""
        remote = self.debouncer.tick()
        return self.arbiter.select(remote)

    def publish(self, wrench: Wrench) -> np.ndarray:
        """Write motor outputs and emit the applied wrench."""
        return self.mixer.apply(wrench)

    def step(self) -> np.ndarray:
        self.update()
        return self.publish(self.state_control())

    def reset(self) -> None:
        """Clear estimator drift and command state between operating sessions."""
        self.pipeline.reset()
        self.debouncer.reset()
        self.arbiter.reset()

    # -- Helpers -------------------------------------------------------------

    def _read_inputs(self) -> None:
        if self.command_source is not None:
            try:
                commands = self.command_source.read(self.dt)
            except Exception as exc:
                logger.warning(f"Command source read failed: {exc}")
                commands = []
            for command in commands:
                self.debouncer.pulse(command)
        if self.wrench_source is not None:
            try:
                wrench = self.wrench_source.read(self.dt)
            except Exception as exc:
                logger.warning(f"Wrench source read failed: {exc}")
                wrench = None
            if wrench is not None:
                self.arbiter.set_local(wrench)

    def close(self) -> None:
        self.mixer.stop()
        for source in (self.command_source, self.wrench_source):
            if source is not None:
                source.close()
        self.board.close()

    def run(self):
        logger.info("Starting controls loop")
        rk = RateKeeper(rate_hz=self.rate_hz, lag_threshold=None)
        try:
            while True:
                self.step()
                rk.keep_time()
        except KeyboardInterrupt:
            logger.info("Controls loop stopped")
        finally:
            self.close()


def main():
    config = load_config()
    target_env = os.environ.get("TARGET")
    board = init_board(target_env, config)
    command_source, wrench_source = init_inputs(board)
    Controls(board, config, command_source=command_source, wrench_source=wrench_source).run()


if __name__ == "__main__":
    main()
