"""
Cooldown bookkeeping for the action dispatcher.

Keeps one CooldownState record (last-fired timestamps in ms) and answers
"how long until this kind may fire again". Timestamps are stamped only
after a successful action, so a failed action never blocks a retry.

Windows:
    GESTURE        universal gap between any two executed actions
    VIDEO_START    minimum recording duration before stop is allowed
    VIDEO_STOP     gap after stopping before a new recording may start
    FLASH_TOGGLE   gap between flash toggles
    CAMERA_SWITCH  gap between camera switches
"""

import math
import logging
from typing import Optional

from core.types import CameraAction, CooldownKind, CooldownState

logger = logging.getLogger(__name__)

# Action-specific clock stamped alongside the universal one
_ACTION_KINDS = {
    CameraAction.START_VIDEO_RECORDING: CooldownKind.VIDEO_START,
    CameraAction.STOP_VIDEO_RECORDING: CooldownKind.VIDEO_STOP,
    CameraAction.TOGGLE_FLASH: CooldownKind.FLASH_TOGGLE,
    CameraAction.SWITCH_CAMERA: CooldownKind.CAMERA_SWITCH,
}

_STATE_FIELDS = {
    CooldownKind.GESTURE: "last_gesture_time",
    CooldownKind.VIDEO_START: "last_video_start",
    CooldownKind.VIDEO_STOP: "last_video_stop",
    CooldownKind.FLASH_TOGGLE: "last_flash_toggle",
    CooldownKind.CAMERA_SWITCH: "last_camera_switch",
}


def remaining_seconds(remaining_ms: float) -> int:
    """Whole seconds left, rounded up so a live cooldown never reads 0s."""
    return max(0, math.ceil(remaining_ms / 1000.0))


class Debouncer:
    """Single-owner cooldown clocks for the dispatcher."""

    def __init__(self, config: dict = None):
        config = config or {}
        self._windows = {
            CooldownKind.GESTURE: config.get("universal_cooldown_ms", 3000),
            CooldownKind.VIDEO_START: config.get("min_recording_ms", 1000),
            CooldownKind.VIDEO_STOP: config.get("video_restart_cooldown_ms", 2000),
            CooldownKind.FLASH_TOGGLE: config.get("flash_cooldown_ms", 2000),
            CooldownKind.CAMERA_SWITCH: config.get("camera_switch_cooldown_ms", 3000),
        }
        self.state = CooldownState()

    def window_ms(self, kind: CooldownKind) -> float:
        return self._windows[kind]

    def last_fired(self, kind: CooldownKind) -> Optional[float]:
        return getattr(self.state, _STATE_FIELDS[kind])

    def remaining_ms(self, kind: CooldownKind, now: float) -> float:
        """Milliseconds until ``kind`` is clear. 0 if it never fired."""
        last = self.last_fired(kind)
        if last is None:
            return 0.0
        return max(0.0, self._windows[kind] - (now - last))

    def is_cooling(self, kind: CooldownKind, now: float) -> bool:
        return self.remaining_ms(kind, now) > 0

    def record(self, action: CameraAction, now: float):
        """Stamp the universal clock and the action-specific one, if any."""
        self.state.last_gesture_time = now
        kind = _ACTION_KINDS.get(action)
        if kind is not None:
            setattr(self.state, _STATE_FIELDS[kind], now)
        logger.debug("Cooldown stamped for %s at %.0f", action.value, now)

    def countdown_duration(self, action: CameraAction) -> float:
        """How long the post-action countdown message runs."""
        kind = _ACTION_KINDS.get(action, CooldownKind.GESTURE)
        return self._windows[kind]

    def reset(self):
        """Clear all state."""
        self.state = CooldownState()
