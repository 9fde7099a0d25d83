"""
Vehicle configuration: motor geometry, control timing and IMU settings, loaded once
at startup from YAML. Any problem raises ConfigError; running with a wrong mixing
matrix is unsafe, so startup must fail.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Optional

import numpy as np
import yaml

from common.math import Vector3D
from common.types import MotorSpec
from rovcore.control import NAMED_CALIBRATIONS

DEFAULT_CONFIG_PATH = "config/vehicle.yaml"
CONFIG_ENV_VAR = "ROVCORE_CONFIG"

MIXING_MODES = ("pseudo_inverse", "calibration")


class ConfigError(ValueError):
    """Raised when the vehicle configuration is missing or malformed."""


@dataclass(frozen=True)
class ControlConfig:
    remote_timeout_ms: float = 60.0
    local_input_timeout_ms: float = 1000.0
    rate_hz: float = 10.0
    clamp_output: bool = True
    mixing_mode: str = "pseudo_inverse"
    calibration: Optional[np.ndarray] = field(default=None, compare=False)


@dataclass(frozen=True)
class ImuConfig:
    sampling_interval_ms: int = 20
    use_interrupts: bool = False
    interrupt_pin: Any = None


@dataclass(frozen=True)
class VehicleConfig:
    motors: List[MotorSpec]
    center_of_mass: Vector3D = field(default_factory=Vector3D)
    control: ControlConfig = field(default_factory=ControlConfig)
    imu: ImuConfig = field(default_factory=ImuConfig)


def _vector(value: Any, where: str) -> Vector3D:
    if not isinstance(value, (list, tuple)) or len(value) != 3:
        raise ConfigError(f"{where}: expected a list of 3 numbers, got {value!r}")
    try:
        vec = Vector3D.from_iterable(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{where}: {exc}") from exc
    if not all(math.isfinite(c) for c in vec):
        raise ConfigError(f"{where}: components must be finite")
    return vec


def _positive(value: Any, where: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{where}: expected a number, got {value!r}") from exc
    if not number > 0.0:
        raise ConfigError(f"{where}: must be positive, got {number}")
    return number


def _flag(value: Any, where: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{where}: expected true or false, got {value!r}")
    return value


def _section(raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = raw.get(key) or {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"'{key}' must be a mapping")
    return value


def _parse_motor(name: str, raw: Any) -> MotorSpec:
    where = f"motors.{name}"
    if not isinstance(raw, Mapping):
        raise ConfigError(f"{where}: must be a mapping")
    if "pwm_channel" not in raw:
        raise ConfigError(f"{where}: missing pwm_channel")
    orientation = _vector(raw.get("orientation"), f"{where}.orientation")
    if orientation.norm() < 1e-9:
        raise ConfigError(f"{where}.orientation: must not be a zero-length vector")
    try:
        return MotorSpec(
            name=str(name),
            position=_vector(raw.get("position"), f"{where}.position"),
            orientation=orientation.normalized(),
            pwm_channel=int(raw["pwm_channel"]),
            power_scale=float(raw.get("scale", 1.0)),
            invert_rotation=_flag(raw.get("invert_rotation", False), f"{where}.invert_rotation"),
            invert_pwm=_flag(raw.get("invert_pwm", False), f"{where}.invert_pwm"),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{where}: {exc}") from exc


def _parse_control(raw: Mapping[str, Any], motor_count: int) -> ControlConfig:
    mixing = _section(raw, "mixing")
    mode = str(mixing.get("mode", "pseudo_inverse"))
    if mode not in MIXING_MODES:
        raise ConfigError(f"control.mixing.mode: expected one of {MIXING_MODES}, got {mode!r}")

    calibration = None
    if mode == "calibration":
        matrix = mixing.get("matrix")
        if isinstance(matrix, str):
            if matrix not in NAMED_CALIBRATIONS:
                raise ConfigError(f"control.mixing.matrix: unknown calibration {matrix!r}")
            calibration = NAMED_CALIBRATIONS[matrix]
        elif matrix is None:
            raise ConfigError("control.mixing.matrix is required in calibration mode")
        else:
            try:
                calibration = np.array(matrix, dtype=np.float64)
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"control.mixing.matrix: {exc}") from exc
        if calibration.shape != (6, motor_count):
            raise ConfigError(f"control.mixing.matrix: expected shape (6, {motor_count}), got {calibration.shape}")

    return ControlConfig(
        remote_timeout_ms=_positive(raw.get("remote_timeout_ms", 60), "control.remote_timeout_ms"),
        local_input_timeout_ms=_positive(raw.get("local_input_timeout_ms", 1000), "control.local_input_timeout_ms"),
        rate_hz=_positive(raw.get("rate_hz", 10), "control.rate_hz"),
        clamp_output=_flag(raw.get("clamp_output", True), "control.clamp_output"),
        mixing_mode=mode,
        calibration=calibration,
    )


def _parse_imu(raw: Mapping[str, Any]) -> ImuConfig:
    interval = _positive(raw.get("sampling_interval_ms", 20), "imu.sampling_interval_ms")
    if not interval.is_integer():
        raise ConfigError(f"imu.sampling_interval_ms: must be a whole number of milliseconds, got {interval}")
    return ImuConfig(
        sampling_interval_ms=int(interval),
        use_interrupts=_flag(raw.get("use_interrupts", False), "imu.use_interrupts"),
        interrupt_pin=raw.get("interrupt_pin"),
    )


def parse_config(raw: Any) -> VehicleConfig:
    """Validate an already-decoded configuration mapping."""
    if not isinstance(raw, Mapping):
        raise ConfigError("configuration root must be a mapping")

    motors_raw = raw.get("motors")
    if not isinstance(motors_raw, Mapping) or not motors_raw:
        raise ConfigError("'motors' must be a non-empty mapping of motor name to settings")
    motors = [_parse_motor(name, spec) for name, spec in motors_raw.items()]

    channels = [m.pwm_channel for m in motors]
    if len(set(channels)) != len(channels):
        raise ConfigError(f"motors: duplicate pwm_channel in {channels}")

    drone = _section(raw, "drone")
    center_of_mass = _vector(drone.get("center_of_mass", [0, 0, 0]), "drone.center_of_mass")

    return VehicleConfig(
        motors=motors,
        center_of_mass=center_of_mass,
        control=_parse_control(_section(raw, "control"), len(motors)),
        imu=_parse_imu(_section(raw, "imu")),
    )


def load_config(path: str | os.PathLike | None = None) -> VehicleConfig:
    """Load and validate the YAML configuration (``ROVCORE_CONFIG`` or the default path)."""
    path = Path(path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read configuration {path}: {exc}") from exc
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
    return parse_config(raw)


__all__ = [
    "CONFIG_ENV_VAR",
    "ConfigError",
    "ControlConfig",
    "ImuConfig",
    "VehicleConfig",
    "load_config",
    "parse_config",
]
