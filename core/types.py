"""
Shared domain types for the gesture camera control system.

Centralizes enums, data classes, and type definitions used across modules
to eliminate circular imports and ensure type consistency.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


# =============================================================================
# Gesture Types
# =============================================================================

class GestureType(Enum):
    """All recognized gesture labels."""
    NONE = "none"
    OPEN_PALM = "open_palm"
    PEACE_SIGN = "peace_sign"
    THUMBS_UP = "thumbs_up"
    OK_SIGN = "ok_sign"
    PINCH_ZOOM_IN = "pinch_zoom_in"
    PINCH_ZOOM_OUT = "pinch_zoom_out"
    THREE_FINGERS_UP = "three_fingers_up"


class CameraAction(Enum):
    """All commands the camera executor understands."""
    CAPTURE_PHOTO = "capture_photo"
    START_VIDEO_RECORDING = "start_video_recording"
    STOP_VIDEO_RECORDING = "stop_video_recording"
    SWITCH_CAMERA = "switch_camera"
    OPEN_GALLERY = "open_gallery"
    ZOOM_IN = "zoom_in"
    ZOOM_OUT = "zoom_out"
    TOGGLE_FLASH = "toggle_flash"


class PerformanceStatus(Enum):
    """Throughput band derived from the last measured FPS."""
    OPTIMAL = "optimal"
    GOOD = "good"
    ACCEPTABLE = "acceptable"
    POOR = "poor"


class CooldownKind(Enum):
    """Independent cooldown clocks kept by the dispatcher."""
    GESTURE = "gesture"
    VIDEO_START = "video_start"
    VIDEO_STOP = "video_stop"
    FLASH_TOGGLE = "flash_toggle"
    CAMERA_SWITCH = "camera_switch"


# =============================================================================
# Gesture -> Action Mapping
# =============================================================================

# PEACE_SIGN resolves to START or STOP depending on the recording state,
# so it is handled by the dispatcher rather than listed here.
GESTURE_ACTION_MAP: Dict[GestureType, CameraAction] = {
    GestureType.OPEN_PALM: CameraAction.CAPTURE_PHOTO,
    GestureType.THUMBS_UP: CameraAction.SWITCH_CAMERA,
    GestureType.OK_SIGN: CameraAction.OPEN_GALLERY,
    GestureType.PINCH_ZOOM_IN: CameraAction.ZOOM_IN,
    GestureType.PINCH_ZOOM_OUT: CameraAction.ZOOM_OUT,
    GestureType.THREE_FINGERS_UP: CameraAction.TOGGLE_FLASH,
}


def now_ms() -> float:
    """Wall-clock time in milliseconds."""
    return time.time() * 1000.0


# =============================================================================
# Data Containers
# =============================================================================

class GestureResult:
    """Container for a single classifier verdict.

    Uses __slots__ since one is produced for every processed frame.
    """

    __slots__ = ("gesture", "confidence", "timestamp")

    def __init__(self, gesture: GestureType, confidence: float,
                 timestamp: Optional[float] = None):
        self.gesture = gesture
        self.confidence = confidence
        self.timestamp = now_ms() if timestamp is None else timestamp

    def __repr__(self):
        return f"GestureResult({self.gesture.value}, conf={self.confidence:.2f})"

    @classmethod
    def none(cls, timestamp: Optional[float] = None) -> 'GestureResult':
        return cls(GestureType.NONE, 0.0, timestamp)

    @property
    def is_none(self) -> bool:
        return self.gesture == GestureType.NONE


@dataclass(frozen=True)
class GestureObservation:
    """Emitted (label, confidence, timestamp) tuple for the UI sink."""
    gesture: GestureType
    confidence: float
    timestamp: float
    visible: bool = False


@dataclass(frozen=True)
class ActionResult:
    """Outcome reported by the camera executor."""
    action: CameraAction
    success: bool
    message: str
    payload: Any = None


@dataclass(frozen=True)
class Feedback:
    """Feedback tuple rendered by the UI: (message, visible, is_error)."""
    message: Optional[str] = None
    visible: bool = False
    is_error: bool = False


@dataclass
class CooldownState:
    """Last-fired timestamps (ms) per cooldown kind. None = never fired."""
    last_gesture_time: Optional[float] = None
    last_video_start: Optional[float] = None
    last_video_stop: Optional[float] = None
    last_flash_toggle: Optional[float] = None
    last_camera_switch: Optional[float] = None


@dataclass(frozen=True)
class CameraState:
    """Immutable camera snapshot published by the executor."""
    recording: bool = False
    front_camera: bool = True
    zoom_ratio: float = 1.0
    flash_enabled: bool = False
    last_action: Optional[CameraAction] = None


@dataclass(frozen=True)
class PerformanceStats:
    """Read-only snapshot of the frame-rate governor."""
    current_fps: float
    average_fps: float
    status: PerformanceStatus
    skip_interval: int
    total_processed: int
    total_skipped: int
    skip_rate: float
    uptime_seconds: float
    latencies_ms: Dict[str, float]
