"""
Webcam frame producer for the demo runner.

A capture thread reads frames and offers each one to a consumer callback
together with the current front-camera flag. The callback answers whether
the frame was taken; the producer only counts. Frames are never queued
here, so a busy pipeline simply declines them.
"""

import time
import threading
import logging
from collections import deque
from typing import Callable, Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)

_BACKENDS = {
    "v4l2": cv2.CAP_V4L2,
    "gstreamer": cv2.CAP_GSTREAMER,
    "auto": cv2.CAP_ANY,
}

FrameConsumer = Callable[[np.ndarray, bool], Optional[bool]]


class CameraManager:
    """Background webcam reader that pushes frames to one consumer."""

    def __init__(self, config: dict = None):
        config = config or {}
        self._device_id = config.get("device_id", 0)
        self._width = config.get("width", 640)
        self._height = config.get("height", 480)
        self._fps = config.get("fps", 30)
        self._backend = config.get("backend", "auto")
        self._front_facing = config.get("front_facing", True)
        self._warmup_frames = config.get("warmup_frames", 10)

        self._cap = None
        self._lock = threading.Lock()
        self._thread = None
        self._running = False
        self._consumer = None

        self._latest = None
        self._read_times = deque(maxlen=100)
        self._offered = 0
        self._accepted = 0
        self._read_failures = 0

    def open(self) -> bool:
        """Open the device and let auto-exposure settle."""
        api = _BACKENDS.get(self._backend, cv2.CAP_ANY)
        self._cap = cv2.VideoCapture(self._device_id, api)
        if not self._cap.isOpened():
            logger.error("Failed to open camera %d (backend=%s)", self._device_id, self._backend)
            return False

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._height)
        self._cap.set(cv2.CAP_PROP_FPS, self._fps)
        logger.info(
            "Camera %d opened: %dx%d @ %.0f FPS (%s facing)",
            self._device_id,
            int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            self._cap.get(cv2.CAP_PROP_FPS),
            "front" if self._front_facing else "back",
        )

        for _ in range(self._warmup_frames):
            self._cap.read()
        return True

    def start(self, consumer: Optional[FrameConsumer] = None):
        """Start the capture thread, offering each frame to ``consumer``."""
        if self._running:
            return
        self._consumer = consumer
        self._running = True
        self._thread = threading.Thread(target=self._produce, name="camera", daemon=True)
        self._thread.start()
        logger.info("Frame producer started")

    def _produce(self):
        while self._running:
            start = time.perf_counter()
            ok, frame = self._cap.read()
            if not ok or frame is None:
                self._read_failures += 1
                time.sleep(0.001)
                continue

            with self._lock:
                self._latest = frame
                self._read_times.append((time.perf_counter() - start) * 1000)
                self._offered += 1

            if self._consumer is None:
                continue
            try:
                if self._consumer(frame, self._front_facing):
                    self._accepted += 1
            except Exception as e:
                logger.error("Frame consumer error: %s", e)

    def read(self):
        """Latest frame as ``(frames_offered, copy)``, or ``(None, None)``."""
        with self._lock:
            if self._latest is None:
                return None, None
            return self._offered, self._latest.copy()

    def set_front_facing(self, front: bool):
        """Follow the simulated camera's facing so new frames carry it."""
        self._front_facing = front

    @property
    def front_facing(self) -> bool:
        return self._front_facing

    @property
    def stats(self) -> dict:
        with self._lock:
            avg_read = sum(self._read_times) / len(self._read_times) if self._read_times else 0.0
            return {
                "offered": self._offered,
                "accepted": self._accepted,
                "read_failures": self._read_failures,
                "avg_read_ms": avg_read,
            }

    @property
    def is_open(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def stop(self):
        """Stop the capture thread and release the device."""
        self._running = False
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        if self._cap:
            self._cap.release()
            self._cap = None
        logger.info("Camera stopped")

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *args):
        self.stop()
