"""
Operator input: remote command debouncing and local command sources
(keyboard, DualSense) that feed the wrench pipeline.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

from common.interface import CommandSource, WrenchSource
from common.logger import get_logger
from common.realtime import Clock, monotonic_ms
from common.types import Wrench

logger = get_logger("input")

MOTION_COMMANDS: Tuple[str, ...] = (
    "pitch_up",
    "pitch_down",
    "roll_left",
    "roll_right",
    "yaw_left",
    "yaw_right",
    "surge_forward",
    "surge_back",
    "heave_up",
    "heave_down",
)
AUX_COMMANDS: Tuple[str, ...] = ("visible-led", "infrared-led", "ultraviolet-led")
REMOTE_COMMANDS: Tuple[str, ...] = MOTION_COMMANDS + AUX_COMMANDS

DEFAULT_KEYUP_TIMEOUT_MS = 60.0


def _axis(negative: bool, positive: bool) -> float:
    if negative and positive:
        return 0.0
    if positive:
        return 1.0
    if negative:
        return -1.0
    return 0.0


class RemoteCommandDebouncer:
    """
    Turn repeated "command held" pulses into a continuously valid wrench.

    Each recognised command is Idle or Active. A pulse activates the command and
    replaces its deadline with now + timeout; once the clock passes the deadline
    the command returns to Idle. Deadlines are checked on every pulse and tick().
    Opposite commands on one axis cancel to 0. Heave and sway are never driven
    from remote commands.
    """

    def __init__(
        self,
        timeout_ms: float = DEFAULT_KEYUP_TIMEOUT_MS,
        clock: Clock = monotonic_ms,
        on_change: Optional[Callable[[Wrench], None]] = None,
    ):
        if timeout_ms <= 0.0:
            raise ValueError("timeout_ms must be positive")
        self.timeout_ms = float(timeout_ms)
        self._clock = clock
        self._on_change = on_change
        self._states: Dict[str, bool] = {name: False for name in REMOTE_COMMANDS}
        self._deadlines: Dict[str, float] = {}
        self._wrench = Wrench.zero()

    @property
    def wrench(self) -> Wrench:
        return self._wrench

    @property
    def states(self) -> Dict[str, bool]:
        return dict(self._states)

    def is_active(self, command: str) -> bool:
        return self._states.get(command, False)

    def pulse(self, command: str) -> bool:
        """Register a command pulse. Returns False if the command is not recognised."""
        if command not in self._states:
            logger.debug(f"Ignoring unknown remote command '{command}'")
            return False
        now = self._clock()
        self._expire(now)
        # Single deadline slot per command: a restart replaces the pending expiry.
        self._deadlines[command] = now + self.timeout_ms
        self._set(command, True)
        return True

    def tick(self) -> Wrench:
        """Expire commands whose deadline has passed and return the current wrench."""
        self._expire(self._clock())
        return self._wrench

    def reset(self) -> None:
        self._deadlines.clear()
        for name in self._states:
            self._states[name] = False
        self._recompute()

    def _expire(self, now: float) -> None:
        expired = [name for name, deadline in self._deadlines.items() if now >= deadline]
        for name in expired:
            del self._deadlines[name]
            logger.info(f"Remote command keyup timeout for command: {name}")
            self._set(name, False)

    def _set(self, command: str, active: bool) -> None:
        self._states[command] = active
        self._recompute()

    def _recompute(self) -> None:
        s = self._states
        wrench = Wrench(
            heave=0.0,
            sway=0.0,
            surge=_axis(s["surge_back"], s["surge_forward"]),
            yaw=_axis(s["yaw_left"], s["yaw_right"]),
            pitch=_axis(s["pitch_down"], s["pitch_up"]),
            roll=_axis(s["roll_left"], s["roll_right"]),
        )
        changed = wrench != self._wrench
        self._wrench = wrench
        if changed and self._on_change is not None:
            self._on_change(wrench)


DEFAULT_KEYMAP: Dict[str, str] = {
    "w": "surge_forward",
    "s": "surge_back",
    "a": "yaw_left",
    "d": "yaw_right",
    "up": "pitch_up",
    "down": "pitch_down",
    "left": "roll_left",
    "right": "roll_right",
    "r": "heave_up",
    "f": "heave_down",
    "l": "visible-led",
}


class KeyboardCommandSource(CommandSource):
    """
    Produces remote command names from a key-state provider, one pulse per held
    key per tick, the way the operator console repeats keydown messages.
    """

    def __init__(self, get_keys: Callable[[], Dict[str, bool]], keymap: Optional[Dict[str, str]] = None):
        self._get_keys = get_keys
        self._keymap = dict(keymap or DEFAULT_KEYMAP)

    def read(self, dt: float) -> List[str]:
        keys = self._get_keys() or {}
        return [command for key, command in self._keymap.items() if keys.get(key, False)]


class DualSenseWrenchSource(WrenchSource):
    """PS5 DualSense gamepad via hidapi, mapped to a continuous local wrench."""

    VENDOR_ID = 0x054C
    PRODUCT_ID = 0x0CE6
    REPORT_ID = 0x01

    def __init__(self, deadzone: float = 0.1):
        self._deadzone = float(deadzone)
        try:
            import hid  # type: ignore
        except ImportError:
            logger.warning("hidapi not installed; DualSense input disabled")
            self._hid = None
            return
        try:
            self._hid = hid.device()
            self._hid.open(self.VENDOR_ID, self.PRODUCT_ID)
            self._hid.set_nonblocking(True)
        except OSError as exc:
            logger.warning(f"DualSense not available: {exc}")
            self._hid = None

    def _axis(self, raw: int, invert: bool = False) -> float:
        value = (127 - raw) / 127.0 if invert else (raw - 127) / 127.0
        value = max(-1.0, min(1.0, value))
        return value if abs(value) > self._deadzone else 0.0

    def read(self, dt: float) -> Optional[Wrench]:
        if self._hid is None:
            return None
        try:
            data = self._hid.read(64)
        except OSError:
            data = None
        if not data or len(data) < 9 or data[0] != self.REPORT_ID:
            return None

        lx, ly, rx, ry = data[1], data[2], data[3], data[4]
        return Wrench(
            heave=self._axis(ly, invert=True),
            yaw=self._axis(lx),
            sway=self._axis(rx),
            surge=self._axis(ry, invert=True),
        )

    def close(self) -> None:
        if self._hid is not None:
            try:
                self._hid.close()
            except OSError as exc:
                logger.warning(f"Closing DualSense failed: {exc}")
            self._hid = None


__all__ = [
    "AUX_COMMANDS",
    "DEFAULT_KEYUP_TIMEOUT_MS",
    "DualSenseWrenchSource",
    "KeyboardCommandSource",
    "MOTION_COMMANDS",
    "REMOTE_COMMANDS",
    "RemoteCommandDebouncer",
]
