"""
Action dispatcher: turns an emitted gesture into at most one camera action.

Gate order for every gesture:
    1. stale "ready" messages are cleared
    2. universal cooldown since the last executed action
    3. recording gate (only the peace sign, to stop, passes while recording)
    4. gesture -> action mapping with per-action cooldowns
    5. execution; cooldowns are stamped only on success

Runs on a single asyncio loop. The cooldown record and the feedback timers
are owned by this loop; camera state is read from the executor's snapshot.
"""

import asyncio
import inspect
import logging
from typing import Callable, Optional

from core.errors import DispatchOutcome, OutcomeKind
from core.events import EventBus, Events
from core.state import StateStore
from core.types import (
    ActionResult, CameraAction, CameraState, CooldownKind, GestureResult,
    GestureType, GESTURE_ACTION_MAP, now_ms,
)
from modules.control.debouncer import Debouncer, remaining_seconds
from modules.control.feedback_manager import FeedbackManager
from modules.utils.logger import GestureLogger

logger = logging.getLogger(__name__)

MSG_RETRY = "Please wait, retry in {}s"
MSG_RECORDING_STARTED = "Recording just started, stop available in {}s"
MSG_VIDEO_STOPPED = "Video just stopped, new recording in {}s"
MSG_FLASH_COOLDOWN = "Flash toggle available in {}s"
MSG_SWITCH_COOLDOWN = "Camera switch available in {}s"
MSG_READY = "Ready, try another gesture"
MSG_CAN_STOP = "Show peace sign to stop recording"
MSG_BLOCKED = "Gestures blocked while recording, stop video first"
MSG_FLASH_FRONT = "Flash unavailable on front camera"
MSG_NO_GESTURE = "No gesture detected"

# Per-action countdown message while its cooldown runs
_COUNTDOWN_MESSAGES = {
    CameraAction.START_VIDEO_RECORDING: MSG_RECORDING_STARTED,
    CameraAction.STOP_VIDEO_RECORDING: MSG_VIDEO_STOPPED,
    CameraAction.TOGGLE_FLASH: MSG_FLASH_COOLDOWN,
    CameraAction.SWITCH_CAMERA: MSG_SWITCH_COOLDOWN,
}


class ActionDispatcher:
    """Cooldown-gated gesture -> camera action state machine."""

    def __init__(self, executor, camera_state: StateStore,
                 config: dict = None, feedback: FeedbackManager = None,
                 bus: EventBus = None,
                 clock: Optional[Callable[[], float]] = None,
                 gesture_logger: GestureLogger = None):
        config = config or {}
        self._executor = executor
        self._camera = camera_state
        self._bus = bus
        self._clock = clock or now_ms
        self._block_flash_on_front = config.get("block_flash_on_front_camera", True)

        self.cooldowns = Debouncer(config)
        self.feedback = feedback or FeedbackManager(config, bus=bus, clock=self._clock)
        self._gesture_logger = gesture_logger or GestureLogger()
        self._lock = asyncio.Lock()

    @property
    def camera_state(self) -> CameraState:
        return self._camera.snapshot

    async def dispatch(self, gesture: GestureResult, now: Optional[float] = None) -> DispatchOutcome:
        """Process one emitted gesture. Never raises for executor failures."""
        async with self._lock:
            now = self._clock() if now is None else now
            outcome = await self._process(gesture.gesture, now)

        self._gesture_logger.log_dispatch(gesture.gesture.value, gesture.confidence, outcome)
        if outcome.kind != OutcomeKind.NO_OP:
            success = outcome.kind in (OutcomeKind.EXECUTED, OutcomeKind.INFO)
            if self._bus:
                self._bus.emit(Events.ACTION_RESULT, action=outcome.action,
                               success=success, message=outcome.message)
            self.feedback.show_action(outcome.action, success, outcome.message)
        return outcome

    async def _process(self, gesture: GestureType, now: float) -> DispatchOutcome:
        self.feedback.clear_if(MSG_READY, MSG_CAN_STOP)

        wait = self.cooldowns.remaining_ms(CooldownKind.GESTURE, now)
        if wait > 0:
            return self._cooldown(GESTURE_ACTION_MAP.get(gesture), MSG_RETRY, wait)

        camera = self._camera.snapshot

        if camera.recording:
            if gesture != GestureType.PEACE_SIGN:
                self.feedback.show(MSG_BLOCKED, is_error=True)
                return DispatchOutcome.blocked(MSG_BLOCKED)
            wait = self.cooldowns.remaining_ms(CooldownKind.VIDEO_START, now)
            if wait > 0:
                return self._cooldown(CameraAction.STOP_VIDEO_RECORDING,
                                      MSG_RECORDING_STARTED, wait)
            return await self._execute(CameraAction.STOP_VIDEO_RECORDING, now)

        if gesture == GestureType.NONE:
            return DispatchOutcome.no_op(MSG_NO_GESTURE)

        if gesture == GestureType.PEACE_SIGN:
            wait = self.cooldowns.remaining_ms(CooldownKind.VIDEO_STOP, now)
            if wait > 0:
                return self._cooldown(CameraAction.START_VIDEO_RECORDING,
                                      MSG_VIDEO_STOPPED, wait)
            return await self._execute(CameraAction.START_VIDEO_RECORDING, now)

        if gesture == GestureType.THUMBS_UP:
            wait = self.cooldowns.remaining_ms(CooldownKind.CAMERA_SWITCH, now)
            if wait > 0:
                return self._cooldown(CameraAction.SWITCH_CAMERA, MSG_SWITCH_COOLDOWN, wait)

        if gesture == GestureType.THREE_FINGERS_UP:
            if self._block_flash_on_front and camera.front_camera:
                return DispatchOutcome.info(CameraAction.TOGGLE_FLASH, MSG_FLASH_FRONT)
            wait = self.cooldowns.remaining_ms(CooldownKind.FLASH_TOGGLE, now)
            if wait > 0:
                return self._cooldown(CameraAction.TOGGLE_FLASH, MSG_FLASH_COOLDOWN, wait)

        return await self._execute(GESTURE_ACTION_MAP[gesture], now)

    def _cooldown(self, action: Optional[CameraAction], template: str,
                  wait_ms: float) -> DispatchOutcome:
        message = template.format(remaining_seconds(wait_ms))
        self.feedback.show(message)
        return DispatchOutcome.cooldown(action, message)

    async def _execute(self, action: CameraAction, now: float) -> DispatchOutcome:
        try:
            result = self._executor.execute(action)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.warning("Executor raised for %s: %s", action.value, e)
            message = f"Action failed: {e}"
            self.feedback.show(message, is_error=True)
            return DispatchOutcome.failed(action, message, cause=e)

        if not isinstance(result, ActionResult) or not result.success:
            message = getattr(result, "message", None) or "Action failed"
            self.feedback.show(message, is_error=True)
            return DispatchOutcome.failed(action, message, result=result)

        self.cooldowns.record(action, now)
        self._start_countdown(action)
        return DispatchOutcome.executed_with(result)

    def _start_countdown(self, action: CameraAction):
        template = _COUNTDOWN_MESSAGES.get(action, MSG_RETRY)
        done = MSG_CAN_STOP if action == CameraAction.START_VIDEO_RECORDING else MSG_READY
        self.feedback.start_countdown(
            self.cooldowns.countdown_duration(action), template.format, done,
        )

    def reset(self):
        self.cooldowns.reset()
        self.feedback.cancel_all()
        self.feedback.clear()

    async def shutdown(self):
        """Stop an in-flight recording and cancel all timers."""
        if self._camera.snapshot.recording:
            logger.info("Stopping active recording before shutdown")
            try:
                result = self._executor.execute(CameraAction.STOP_VIDEO_RECORDING)
                if inspect.isawaitable(result):
                    result = await result
                if not result.success:
                    logger.warning("Could not stop recording: %s", result.message)
            except Exception as e:
                logger.error("Error stopping recording on shutdown: %s", e)
        await self.feedback.shutdown()
