"""
Raw frame conversion for the detector: BGR -> RGB, mirrored for the
front camera so the on-screen hand moves the way the user moves.
"""

import logging
import cv2
import numpy as np

from modules.utils.logger import log_timing

logger = logging.getLogger(__name__)


class FrameProcessor:
    """OpenCV frame conversion stage."""

    def __init__(self, config: dict = None):
        config = config or {}
        self._mirror_front = config.get("mirror_front_camera", True)
        self._frame_counter = 0

    @log_timing
    def preprocess(self, frame: np.ndarray, front_camera: bool = False) -> np.ndarray:
        """Convert a BGR frame to RGB, flipping it horizontally for the front camera."""
        if frame is None or frame.size == 0:
            raise ValueError("empty frame")
        self._frame_counter += 1

        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        if front_camera and self._mirror_front:
            rgb = cv2.flip(rgb, 1)
        return rgb

    @property
    def frames_converted(self) -> int:
        return self._frame_counter
