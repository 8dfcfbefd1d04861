"""
Camera action executors.

The dispatcher talks to any object with an ``execute(action)`` method that
returns an ActionResult, or an awaitable resolving to one. Executors
report failure through ``ActionResult.success``; exceptions are also
tolerated and converted to failures by the dispatcher.

SimulatedCameraExecutor keeps an in-process camera model and is the single
writer of the CameraState snapshot the dispatcher reads.
"""

import logging

from core.events import EventBus, Events
from core.state import StateStore
from core.types import ActionResult, CameraAction, CameraState

logger = logging.getLogger(__name__)


class CameraExecutor:
    """Interface for camera backends."""

    def execute(self, action: CameraAction) -> ActionResult:
        raise NotImplementedError

    def close(self):
        pass


class SimulatedCameraExecutor(CameraExecutor):
    """In-memory camera: photos, recording, zoom, flash, facing, gallery."""

    def __init__(self, store: StateStore = None, config: dict = None,
                 bus: EventBus = None):
        config = config or {}
        self._min_zoom = config.get("min_zoom", 1.0)
        self._max_zoom = config.get("max_zoom", 10.0)
        self._zoom_step = config.get("zoom_step", 0.5)
        self._bus = bus
        self.store = store or StateStore(
            CameraState(front_camera=config.get("start_front_facing", True),
                        zoom_ratio=self._min_zoom)
        )

        self._photo_count = 0
        self._video_count = 0
        self._action_count = 0

        self._handlers = {
            CameraAction.CAPTURE_PHOTO: self._capture_photo,
            CameraAction.START_VIDEO_RECORDING: self._start_recording,
            CameraAction.STOP_VIDEO_RECORDING: self._stop_recording,
            CameraAction.SWITCH_CAMERA: self._switch_camera,
            CameraAction.OPEN_GALLERY: self._open_gallery,
            CameraAction.ZOOM_IN: self._zoom_in,
            CameraAction.ZOOM_OUT: self._zoom_out,
            CameraAction.TOGGLE_FLASH: self._toggle_flash,
        }
        logger.info("SimulatedCameraExecutor initialized (front=%s, zoom %.1f-%.1fx)",
                    self.store.snapshot.front_camera, self._min_zoom, self._max_zoom)

    @property
    def state(self) -> CameraState:
        return self.store.snapshot

    @property
    def photo_count(self) -> int:
        return self._photo_count

    @property
    def video_count(self) -> int:
        return self._video_count

    @property
    def action_count(self) -> int:
        return self._action_count

    async def execute(self, action: CameraAction) -> ActionResult:
        handler = self._handlers.get(action)
        if handler is None:
            return ActionResult(action, False, f"Unsupported action: {action}")

        result = handler()
        if result.success:
            self._action_count += 1
            self._publish(last_action=action)
            logger.info("Camera: %s", result.message)
        else:
            logger.warning("Camera: %s failed: %s", action.value, result.message)
        return result

    def _publish(self, **changes):
        state = self.store.publish(**changes)
        if self._bus:
            self._bus.emit(Events.CAMERA_STATE_CHANGED, state=state)

    # =========================================================================
    # Actions
    # =========================================================================

    def _capture_photo(self) -> ActionResult:
        self._photo_count += 1
        return ActionResult(CameraAction.CAPTURE_PHOTO, True,
                            "Photo captured successfully", self._photo_count)

    def _start_recording(self) -> ActionResult:
        if self.state.recording:
            return ActionResult(CameraAction.START_VIDEO_RECORDING, False,
                                "Recording already in progress")
        self._publish(recording=True)
        return ActionResult(CameraAction.START_VIDEO_RECORDING, True,
                            "Video recording started")

    def _stop_recording(self) -> ActionResult:
        if not self.state.recording:
            return ActionResult(CameraAction.STOP_VIDEO_RECORDING, False,
                                "No active recording")
        self._video_count += 1
        self._publish(recording=False)
        return ActionResult(CameraAction.STOP_VIDEO_RECORDING, True,
                            "Video recording stopped and saved to gallery",
                            self._video_count)

    def _switch_camera(self) -> ActionResult:
        front = not self.state.front_camera
        changes = {"front_camera": front}
        if front and self.state.flash_enabled:
            changes["flash_enabled"] = False
        self._publish(**changes)
        facing = "front" if front else "back"
        return ActionResult(CameraAction.SWITCH_CAMERA, True,
                            f"Camera switched to {facing}", facing)

    def _open_gallery(self) -> ActionResult:
        return ActionResult(CameraAction.OPEN_GALLERY, True, "Local gallery launched")

    def _zoom_in(self) -> ActionResult:
        zoom = min(self.state.zoom_ratio + self._zoom_step, self._max_zoom)
        if zoom == self.state.zoom_ratio:
            return ActionResult(CameraAction.ZOOM_IN, False, "Already at maximum zoom")
        self._publish(zoom_ratio=zoom)
        return ActionResult(CameraAction.ZOOM_IN, True, f"Zoomed in to {zoom:.1f}x", zoom)

    def _zoom_out(self) -> ActionResult:
        zoom = max(self.state.zoom_ratio - self._zoom_step, self._min_zoom)
        if zoom == self.state.zoom_ratio:
            return ActionResult(CameraAction.ZOOM_OUT, False, "Already at minimum zoom")
        self._publish(zoom_ratio=zoom)
        return ActionResult(CameraAction.ZOOM_OUT, True, f"Zoomed out to {zoom:.1f}x", zoom)

    def _toggle_flash(self) -> ActionResult:
        if self.state.front_camera:
            return ActionResult(CameraAction.TOGGLE_FLASH, False,
                                "Flash is only available on back camera")
        enabled = not self.state.flash_enabled
        self._publish(flash_enabled=enabled)
        status = "ON" if enabled else "OFF"
        return ActionResult(CameraAction.TOGGLE_FLASH, True, f"Flash turned {status}", enabled)
