"""
Core pipeline orchestrator for the gesture camera control system.

Architecture:
    camera thread -> SamplerGate -> [convert stage] FrameProcessor
    -> [detect stage] HandDetector -> GestureRecognizer
       (PoseValidator -> GestureClassifier -> StabilityFilter)
    -> asyncio loop: ActionDispatcher -> camera executor

Each stage is a single-worker queue that keeps only the newest pending
item, so a slow stage drops frames instead of buffering them. The
dispatcher and its timers live on one asyncio loop; classification results
cross over with run_coroutine_threadsafe.
"""

import asyncio
import contextlib
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional

import numpy as np

from core.events import EventBus, Events
from core.types import GestureObservation, GestureResult, GestureType, now_ms

logger = logging.getLogger(__name__)


class SamplerGate:
    """Consults the frame-rate governor before any expensive work.

    Admitted frames are only counted as processed once detection has run,
    so the governor sees real throughput rather than the camera rate.
    """

    def __init__(self, governor):
        self._governor = governor

    def admit(self) -> bool:
        if self._governor.should_process_frame():
            return True
        self._governor.on_frame_skipped()
        return False


class LatestOnlyStage:
    """Serial worker with a one-slot pending buffer.

    At most one item runs at a time. Items submitted while the worker is
    busy replace the pending one; the replaced item is dropped and counted.
    """

    def __init__(self, name: str, handler: Callable, on_drop: Optional[Callable[[], None]] = None):
        self.name = name
        self._handler = handler
        self._on_drop = on_drop
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"stage-{name}")
        self._lock = threading.Lock()
        self._pending = None
        self._busy = False
        self._closed = False
        self._submitted = 0
        self._dropped = 0
        self._processed = 0
        self._errors = 0

    def submit(self, *args) -> bool:
        """Queue ``args`` for the handler. Returns False once closed."""
        with self._lock:
            if self._closed:
                return False
            self._submitted += 1
            replaced = self._busy and self._pending is not None
            if replaced:
                self._dropped += 1
            if self._busy:
                self._pending = args
            else:
                self._busy = True
                self._executor.submit(self._drain, args)
        if replaced and self._on_drop is not None:
            self._on_drop()
        return True

    def _drain(self, args):
        while True:
            failed = False
            try:
                self._handler(*args)
            except Exception as e:
                failed = True
                logger.error("Stage '%s' handler error: %s", self.name, e)
            with self._lock:
                self._processed += 1
                if failed:
                    self._errors += 1
                if self._pending is None:
                    self._busy = False
                    return
                args, self._pending = self._pending, None

    @property
    def stats(self) -> dict:
        with self._lock:
            return {
                "submitted": self._submitted,
                "processed": self._processed,
                "dropped": self._dropped,
                "errors": self._errors,
            }

    def close(self, wait: bool = True):
        """Stop accepting work; optionally wait for in-flight work to drain."""
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait)


class GestureRecognizer:
    """Validator -> classifier -> stability filter for one detector result."""

    def __init__(self, validator, classifier, stability, governor=None,
                 bus: EventBus = None, clock: Optional[Callable[[], float]] = None,
                 visibility_threshold: float = 0.7):
        self._validator = validator
        self._classifier = classifier
        self._stability = stability
        self._governor = governor
        self._bus = bus
        self._clock = clock or now_ms
        self._visibility_threshold = visibility_threshold
        self._last_observation = None

    @property
    def last_observation(self) -> Optional[GestureObservation]:
        return self._last_observation

    def analyze(self, hands: List[np.ndarray], now: Optional[float] = None) -> Optional[GestureObservation]:
        """Classify the first detected hand.

        Returns the published observation, or None when the stability
        filter held the result back. Invalid or missing hands publish NONE.
        """
        now = self._clock() if now is None else now
        landmarks = hands[0] if hands else None

        try:
            with self._measure("classify"):
                if landmarks is None or not self._validator.is_valid(landmarks):
                    emitted = GestureResult.none(now)
                else:
                    raw = self._classifier.classify(landmarks, now)
                    emitted = self._stability.update(raw, now)
        except Exception as e:
            logger.error("Classification failed: %s", e)
            emitted = GestureResult.none(now)

        if emitted is None:
            return None

        observation = GestureObservation(
            gesture=emitted.gesture,
            confidence=emitted.confidence,
            timestamp=now,
            visible=(emitted.gesture != GestureType.NONE
                     and emitted.confidence > self._visibility_threshold),
        )
        self._last_observation = observation
        if self._bus:
            self._bus.emit(Events.GESTURE_OBSERVED, observation=observation)
        return observation

    def _measure(self, stage: str):
        if self._governor is None:
            return contextlib.nullcontext()
        return self._governor.measure(stage)

    def reset(self):
        """Clear stability window, pinch tracker, last emission and governor."""
        self._stability.reset()
        self._classifier.reset()
        self._last_observation = None
        if self._governor is not None:
            self._governor.reset()
        logger.info("Recognizer reset")


class Pipeline:
    """Frame -> gesture -> action wiring across threads and the asyncio loop."""

    def __init__(self, recognizer: GestureRecognizer, dispatcher, governor,
                 loop: asyncio.AbstractEventLoop = None,
                 frame_processor=None, detector=None):
        self._recognizer = recognizer
        self._dispatcher = dispatcher
        self._governor = governor
        self._loop = loop
        self._frame_processor = frame_processor
        self._detector = detector

        self._gate = SamplerGate(governor)
        self._convert = LatestOnlyStage("convert", self._convert_frame,
                                        on_drop=governor.on_frame_skipped)
        self._detect = LatestOnlyStage("detect", self._recognize,
                                       on_drop=governor.on_frame_skipped)
        self._closed = False
        self._dispatch_count = 0
        self._lock = threading.Lock()
        self._in_flight = set()

    # =========================================================================
    # Inbound
    # =========================================================================

    def submit_frame(self, frame: np.ndarray, front_camera: bool = False) -> bool:
        """Offer a raw frame from the producer thread. Never raises."""
        if self._closed or not self._gate.admit():
            return False
        return self._convert.submit(frame, front_camera)

    def submit_landmarks(self, hands: List[np.ndarray]) -> bool:
        """Offer landmark sets from an external detector callback."""
        if self._closed or not self._gate.admit():
            return False
        return self._detect.submit(None, hands)

    # =========================================================================
    # Stage handlers
    # =========================================================================

    def _convert_frame(self, frame, front_camera):
        with self._governor.measure("convert"):
            rgb = self._frame_processor.preprocess(frame, front_camera)
        self._detect.submit(rgb, None)

    def _recognize(self, rgb, hands):
        try:
            if hands is None:
                with self._governor.measure("detect"):
                    hands = self._detector.detect(rgb)
            observation = self._recognizer.analyze(hands)
        finally:
            self._governor.on_frame_processed()
        if observation is not None and observation.gesture != GestureType.NONE:
            self._hand_off(GestureResult(observation.gesture, observation.confidence,
                                         observation.timestamp))

    def _hand_off(self, result: GestureResult):
        if self._loop is None or self._loop.is_closed():
            logger.debug("No dispatch loop; dropping %s", result)
            return
        future = asyncio.run_coroutine_threadsafe(self._dispatcher.dispatch(result), self._loop)
        with self._lock:
            self._dispatch_count += 1
            self._in_flight.add(future)
        future.add_done_callback(self._on_dispatched)

    def _on_dispatched(self, future):
        with self._lock:
            self._in_flight.discard(future)
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error("Dispatch failed: %s", error)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def stats(self) -> dict:
        return {
            "convert": self._convert.stats,
            "detect": self._detect.stats,
            "dispatched": self._dispatch_count,
            "governor": self._governor.get_stats(),
        }

    def reset(self):
        self._recognizer.reset()

    def _close_stages(self):
        self._closed = True
        self._convert.close(wait=True)
        self._detect.close(wait=True)
        if self._detector is not None and hasattr(self._detector, "close"):
            self._detector.close()

    async def aclose(self):
        """Shut down from within the dispatch loop."""
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._close_stages)
        with self._lock:
            pending = [asyncio.wrap_future(f) for f in self._in_flight]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        await self._dispatcher.shutdown()
        logger.info("Pipeline closed")

    def close(self, timeout: float = 5.0):
        """Shut down from a thread other than the dispatch loop's."""
        if self._loop is not None and self._loop.is_running():
            asyncio.run_coroutine_threadsafe(self.aclose(), self._loop).result(timeout)
            return
        self._close_stages()
        if self._loop is None:
            asyncio.run(self._dispatcher.shutdown())
        elif not self._loop.is_closed():
            self._loop.run_until_complete(self._dispatcher.shutdown())
        logger.info("Pipeline closed")
