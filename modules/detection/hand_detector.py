"""
MediaPipe hand detection wrapper.

Returns plain (21, 3) numpy landmark arrays so nothing downstream depends
on MediaPipe types. Only one hand is tracked.
"""

import logging
from typing import List

import numpy as np
import mediapipe as mp

from modules.detection.landmark_extractor import LandmarkExtractor

logger = logging.getLogger(__name__)


class HandDetector:
    """MediaPipe Hands wrapper: detect(rgb) -> [landmark array]."""

    def __init__(self, config: dict = None):
        config = config or {}
        self._model_complexity = config.get("model_complexity", 0)
        self._min_detect_conf = config.get("min_detection_confidence", 0.5)
        self._min_track_conf = config.get("min_tracking_confidence", 0.5)

        self._mp_hands = mp.solutions.hands
        self._hands = None
        self._initialized = False

    def initialize(self):
        """Initialize MediaPipe Hands solution."""
        self._hands = self._mp_hands.Hands(
            static_image_mode=False,
            model_complexity=self._model_complexity,
            max_num_hands=1,
            min_detection_confidence=self._min_detect_conf,
            min_tracking_confidence=self._min_track_conf,
        )
        self._initialized = True
        logger.info(
            "MediaPipe Hands initialized (complexity=%d, detect_conf=%.2f, track_conf=%.2f)",
            self._model_complexity, self._min_detect_conf, self._min_track_conf,
        )

    def detect(self, rgb_frame: np.ndarray) -> List[np.ndarray]:
        """Run hand detection on an RGB frame.

        Returns:
            List of (21, 3) arrays, empty when no hand is visible
        """
        if not self._initialized:
            self.initialize()

        # Set frame as non-writable for performance
        rgb_frame.flags.writeable = False
        results = self._hands.process(rgb_frame)
        rgb_frame.flags.writeable = True

        if not results or not results.multi_hand_landmarks:
            return []
        return [LandmarkExtractor.to_array(hand) for hand in results.multi_hand_landmarks]

    def close(self):
        """Release MediaPipe resources."""
        if self._hands:
            self._hands.close()
            self._hands = None
            self._initialized = False
            logger.info("MediaPipe Hands closed")

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, *args):
        self.close()
