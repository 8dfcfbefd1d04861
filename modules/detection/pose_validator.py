"""
Pose validation: rejects landmark sets that are incomplete, clipped by the
frame edge, implausibly sized, or outside the interaction box.

A rejection is not an error. The recognizer turns it into a NONE
classification with zero confidence.
"""

import logging
from enum import Enum
from typing import Optional

import numpy as np

from modules.detection.landmark_extractor import (
    LandmarkExtractor, NUM_LANDMARKS, KEY_LANDMARKS,
)

logger = logging.getLogger(__name__)


class Rejection(Enum):
    INCOMPLETE = "incomplete"
    OUT_OF_FRAME = "out_of_frame"
    AT_EDGE = "at_edge"
    BAD_HAND_SIZE = "bad_hand_size"
    OUTSIDE_BOX = "outside_interaction_box"


class PoseValidator:
    """Conjunctive sanity checks over a (21, 3) landmark array."""

    def __init__(self, config: dict = None, extractor: LandmarkExtractor = None):
        config = config or {}
        self._extractor = extractor or LandmarkExtractor()
        self._edge_margin = config.get("edge_margin", 0.05)
        self._min_hand_size = config.get("min_hand_size", 0.03)
        self._max_hand_size = config.get("max_hand_size", 0.6)

        box = config.get("interaction_box", {})
        self._box_left = box.get("left", 0.15)
        self._box_right = box.get("right", 0.85)
        self._box_top = box.get("top", 0.175)
        self._box_bottom = box.get("bottom", 0.825)

    def check(self, landmarks: np.ndarray) -> Optional[Rejection]:
        """Return the first failed check, or None when the pose is usable."""
        if landmarks is None or len(landmarks) != NUM_LANDMARKS:
            return Rejection.INCOMPLETE

        xy = landmarks[:, :2]
        if np.any(xy < 0.0) or np.any(xy > 1.0):
            return Rejection.OUT_OF_FRAME

        lo = self._edge_margin
        hi = 1.0 - self._edge_margin
        if np.any(xy < lo) or np.any(xy > hi):
            return Rejection.AT_EDGE

        hand_size = self._extractor.get_hand_size(landmarks)
        if not (self._min_hand_size < hand_size < self._max_hand_size):
            return Rejection.BAD_HAND_SIZE

        key = xy[KEY_LANDMARKS]
        inside = (
            (key[:, 0] >= self._box_left) & (key[:, 0] <= self._box_right)
            & (key[:, 1] >= self._box_top) & (key[:, 1] <= self._box_bottom)
        )
        if not bool(np.all(inside)):
            return Rejection.OUTSIDE_BOX

        return None

    def is_valid(self, landmarks: np.ndarray) -> bool:
        reason = self.check(landmarks)
        if reason is not None:
            logger.debug("Pose rejected: %s", reason.value)
            return False
        return True
