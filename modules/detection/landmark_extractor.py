"""
21-point hand landmark conversion and geometric predicates.
Provides the finger-state feature set consumed by the validator and classifier.

All coordinates are normalized: x grows right, y grows DOWN (smaller y is
higher on screen), z is relative depth.
"""

import logging
import numpy as np

logger = logging.getLogger(__name__)

NUM_LANDMARKS = 21

# MediaPipe hand landmark indices
WRIST = 0
THUMB_CMC = 1
THUMB_MCP = 2
THUMB_IP = 3
THUMB_TIP = 4
INDEX_MCP = 5
INDEX_PIP = 6
INDEX_DIP = 7
INDEX_TIP = 8
MIDDLE_MCP = 9
MIDDLE_PIP = 10
MIDDLE_DIP = 11
MIDDLE_TIP = 12
RING_MCP = 13
RING_PIP = 14
RING_DIP = 15
RING_TIP = 16
PINKY_MCP = 17
PINKY_PIP = 18
PINKY_DIP = 19
PINKY_TIP = 20

FINGER_TIPS = [THUMB_TIP, INDEX_TIP, MIDDLE_TIP, RING_TIP, PINKY_TIP]
FINGER_MCPS = [THUMB_MCP, INDEX_MCP, MIDDLE_MCP, RING_MCP, PINKY_MCP]

# (tip, pip) pairs for the four non-thumb fingers
FINGER_TIP_PIP = {
    "index":  (INDEX_TIP, INDEX_PIP),
    "middle": (MIDDLE_TIP, MIDDLE_PIP),
    "ring":   (RING_TIP, RING_PIP),
    "pinky":  (PINKY_TIP, PINKY_PIP),
}

# Wrist, five fingertips and five MCP joints
KEY_LANDMARKS = [WRIST] + FINGER_TIPS + FINGER_MCPS


class LandmarkExtractor:
    """Geometric predicates over a (21, 3) landmark array."""

    def __init__(self, config: dict = None):
        config = config or {}
        self._extension_threshold = config.get("finger_extension_threshold", 0.005)
        self._thumb_margin = config.get("thumb_extension_margin", 0.01)

    @staticmethod
    def to_array(hand_landmarks) -> np.ndarray:
        """Convert landmarks to a float array of shape (n, 3).

        Accepts a MediaPipe ``NormalizedLandmarkList`` (``.landmark``), a
        sequence of objects with ``x``/``y``/``z`` attributes, or any
        sequence of (x, y[, z]) tuples / ndarray. Missing z defaults to 0.
        """
        if hasattr(hand_landmarks, "landmark"):
            hand_landmarks = hand_landmarks.landmark

        if isinstance(hand_landmarks, np.ndarray):
            arr = hand_landmarks.astype(np.float32, copy=False)
        else:
            rows = []
            for lm in hand_landmarks:
                if hasattr(lm, "x"):
                    rows.append((lm.x, lm.y, getattr(lm, "z", 0.0)))
                else:
                    rows.append(tuple(lm))
            if not rows:
                return np.zeros((0, 3), dtype=np.float32)
            arr = np.asarray(rows, dtype=np.float32)

        if arr.ndim != 2:
            return np.zeros((0, 3), dtype=np.float32)
        if arr.shape[1] == 2:
            arr = np.hstack([arr, np.zeros((arr.shape[0], 1), dtype=np.float32)])
        return arr

    # =========================================================================
    # Finger State Detection
    # =========================================================================

    def is_finger_extended(self, landmarks: np.ndarray, tip: int, pip: int) -> bool:
        """A finger is extended when its tip is above its PIP joint."""
        return bool(landmarks[tip][1] < landmarks[pip][1] - self._extension_threshold)

    def is_thumb_extended(self, landmarks: np.ndarray) -> bool:
        """Thumb extension: tip farther from the wrist than the MCP, plus a margin."""
        tip_distance = self._distance(landmarks[THUMB_TIP], landmarks[WRIST])
        mcp_distance = self._distance(landmarks[THUMB_MCP], landmarks[WRIST])
        return tip_distance > mcp_distance + self._thumb_margin

    def are_fingertips_close(self, landmarks: np.ndarray, tip_a: int, tip_b: int,
                             threshold: float = 0.05) -> bool:
        return self._distance(landmarks[tip_a], landmarks[tip_b]) < threshold

    def get_finger_states(self, landmarks: np.ndarray) -> dict:
        """Determine which fingers are extended.

        Returns:
            dict with finger names -> bool (True = extended)
        """
        states = {"thumb": self.is_thumb_extended(landmarks)}
        for finger, (tip, pip) in FINGER_TIP_PIP.items():
            states[finger] = self.is_finger_extended(landmarks, tip, pip)
        return states

    def get_extended_finger_count(self, landmarks: np.ndarray) -> int:
        """Number of extended non-thumb fingers (0-4)."""
        return sum(
            1 for tip, pip in FINGER_TIP_PIP.values()
            if self.is_finger_extended(landmarks, tip, pip)
        )

    def get_thumb_index_distance(self, landmarks: np.ndarray) -> float:
        """Distance between thumb tip and index tip (OK sign and pinch)."""
        return self._distance(landmarks[THUMB_TIP], landmarks[INDEX_TIP])

    def get_hand_size(self, landmarks: np.ndarray) -> float:
        """Estimate hand size as distance from wrist to middle finger tip."""
        return self._distance(landmarks[WRIST], landmarks[MIDDLE_TIP])

    # =========================================================================
    # Math Helpers
    # =========================================================================

    @staticmethod
    def _distance(p1: np.ndarray, p2: np.ndarray) -> float:
        """Euclidean distance between two 3D points."""
        return float(np.linalg.norm(np.asarray(p1) - np.asarray(p2)))
