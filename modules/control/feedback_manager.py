"""
User-facing feedback for dispatched gestures.

Holds the current (message, visible, is_error) tuple, republishes it on the
event bus whenever it changes, and owns the two timers of the dispatcher:
the once-per-second cooldown countdown and the action-feedback auto-hide.
Both timers are asyncio tasks on the dispatcher's loop. Starting a new
one cancels the previous one.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from core.events import EventBus, Events
from core.types import CameraAction, Feedback, now_ms
from modules.control.debouncer import remaining_seconds

logger = logging.getLogger(__name__)


class FeedbackManager:
    """Owns the feedback tuple and its timers."""

    def __init__(self, config: dict = None, bus: EventBus = None,
                 clock: Optional[Callable[[], float]] = None,
                 sleep: Optional[Callable[[float], Awaitable]] = None):
        config = config or {}
        self._bus = bus
        self._clock = clock or now_ms
        self._sleep = sleep or asyncio.sleep
        self._interval_ms = config.get("countdown_interval_ms", 1000)
        self._action_feedback_ms = config.get("action_feedback_ms", 3000)

        self._feedback = Feedback()
        self._countdown_task = None
        self._hide_task = None
        self._action_feedback = None

    # =========================================================================
    # Feedback tuple
    # =========================================================================

    @property
    def feedback(self) -> Feedback:
        return self._feedback

    @property
    def message(self) -> Optional[str]:
        return self._feedback.message

    def show(self, message: str, is_error: bool = False):
        self._set(Feedback(message=message, visible=True, is_error=is_error))

    def clear(self):
        self._set(Feedback())

    def clear_if(self, *messages: str) -> bool:
        """Clear the current message if it is one of ``messages``."""
        if self._feedback.message in messages:
            self.clear()
            return True
        return False

    def _set(self, feedback: Feedback):
        if feedback == self._feedback:
            return
        self._feedback = feedback
        if self._bus:
            self._bus.emit(Events.FEEDBACK_CHANGED, feedback=feedback)

    # =========================================================================
    # Countdown
    # =========================================================================

    def start_countdown(self, duration_ms: float, tick_message: Callable[[int], str],
                        done_message: str) -> asyncio.Task:
        """Replace any running countdown with a new one.

        ``tick_message(seconds)`` is shown once per interval until
        ``duration_ms`` has elapsed, then ``done_message`` is shown.
        Must be called from the running event loop.
        """
        self._cancel(self._countdown_task)
        loop = asyncio.get_running_loop()
        self._countdown_task = loop.create_task(
            self._run_countdown(duration_ms, tick_message, done_message)
        )
        return self._countdown_task

    async def _run_countdown(self, duration_ms, tick_message, done_message):
        start = self._clock()
        while True:
            remaining = duration_ms - (self._clock() - start)
            if remaining <= 0:
                self.show(done_message)
                return
            self.show(tick_message(remaining_seconds(remaining)))
            await self._sleep(self._interval_ms / 1000.0)

    @property
    def countdown_active(self) -> bool:
        return self._countdown_task is not None and not self._countdown_task.done()

    # =========================================================================
    # Action feedback
    # =========================================================================

    @property
    def action_feedback(self) -> Optional[dict]:
        """Last action result while it is still displayed, else None."""
        return self._action_feedback

    def show_action(self, action: Optional[CameraAction], success: bool, message: str):
        """Display an action result and schedule it to hide again."""
        self._action_feedback = {
            "action": action,
            "success": success,
            "message": message,
        }
        if self._bus:
            self._bus.emit(Events.ACTION_FEEDBACK, visible=True, action=action,
                           success=success, message=message)

        self._cancel(self._hide_task)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; action feedback will not auto-hide")
            return
        self._hide_task = loop.create_task(self._hide_action_later())

    async def _hide_action_later(self):
        await self._sleep(self._action_feedback_ms / 1000.0)
        last = self._action_feedback or {}
        self._action_feedback = None
        if self._bus:
            self._bus.emit(Events.ACTION_FEEDBACK, visible=False,
                           action=last.get("action"), success=last.get("success"),
                           message=last.get("message"))

    # =========================================================================
    # Teardown
    # =========================================================================

    @staticmethod
    def _cancel(task):
        if task is not None and not task.done():
            task.cancel()

    def cancel_all(self):
        """Cancel both timers without waiting."""
        self._cancel(self._countdown_task)
        self._cancel(self._hide_task)

    async def shutdown(self):
        """Cancel both timers and wait for them to finish."""
        tasks = [t for t in (self._countdown_task, self._hide_task)
                 if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._countdown_task = None
        self._hide_task = None
