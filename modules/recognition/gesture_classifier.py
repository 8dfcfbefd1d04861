"""
Rule-based geometric gesture classifier.

Static poses are scored from binary finger-extension predicates; the
continuous pinch-zoom gesture is tracked by a small stateful machine that
runs first and preempts static scoring when it fires.
"""

import logging
from typing import Callable, Optional

import numpy as np

from core.types import GestureType, GestureResult, now_ms
from modules.detection.landmark_extractor import (
    LandmarkExtractor, NUM_LANDMARKS, THUMB_TIP, INDEX_TIP, INDEX_PIP, MIDDLE_TIP,
    RING_TIP, PINKY_TIP,
)

logger = logging.getLogger(__name__)

STATIC_CONFIDENCE = 0.9
PEACE_FALLBACK_CONFIDENCE = 0.8

# Evaluation order doubles as the tie-break order
STATIC_ORDER = (
    GestureType.OPEN_PALM,
    GestureType.PEACE_SIGN,
    GestureType.THUMBS_UP,
    GestureType.OK_SIGN,
    GestureType.THREE_FINGERS_UP,
)


class PinchTracker:
    """Idle -> Armed -> Measuring state machine for pinch zoom.

    The armed distance is kept until the pinch shape is lost, so slow
    drift accumulates against it instead of being re-baselined each frame.
    """

    def __init__(self, config: dict = None):
        config = config or {}
        self._min_separation = config.get("pinch_min_separation", 0.1)
        self._min_duration_ms = config.get("pinch_min_duration_ms", 200)
        self._threshold = config.get("pinch_distance_threshold", 0.01)
        self._cooldown_ms = config.get("pinch_cooldown_ms", 500)
        self.reset()

    def reset(self):
        self.previous_distance = None
        self.start_time = 0.0
        self.last_emit_time = None

    @property
    def is_armed(self) -> bool:
        return self.previous_distance is not None

    def update(self, shape_held: bool, distance: float, now: float) -> GestureResult:
        """Advance the tracker by one frame and return its verdict."""
        if not shape_held or distance <= self._min_separation:
            self.previous_distance = None
            self.start_time = 0.0
            return GestureResult.none(now)

        if self.previous_distance is None:
            self.previous_distance = distance
            self.start_time = now
            return GestureResult.none(now)

        if now - self.start_time < self._min_duration_ms:
            return GestureResult.none(now)

        if self.last_emit_time is not None and now - self.last_emit_time < self._cooldown_ms:
            return GestureResult.none(now)

        delta = distance - self.previous_distance
        if delta > self._threshold:
            self.last_emit_time = now
            logger.debug("Pinch zoom in (delta=%.3f)", delta)
            return GestureResult(GestureType.PINCH_ZOOM_IN, STATIC_CONFIDENCE, now)
        if delta < -self._threshold:
            self.last_emit_time = now
            logger.debug("Pinch zoom out (delta=%.3f)", delta)
            return GestureResult(GestureType.PINCH_ZOOM_OUT, STATIC_CONFIDENCE, now)
        return GestureResult.none(now)


class GestureClassifier:
    """Classifies a validated (21, 3) landmark array into a GestureResult."""

    def __init__(self, config: dict = None, extractor: LandmarkExtractor = None,
                 clock: Optional[Callable[[], float]] = None):
        config = config or {}
        self._extractor = extractor or LandmarkExtractor(config)
        self._clock = clock or now_ms
        self._ok_close = config.get("ok_sign_close_threshold", 0.15)
        self._ok_circle_tolerance = config.get("ok_sign_circle_tolerance", 0.08)
        self._pinch_preempt = config.get("pinch_preempt_confidence", 0.5)
        self.pinch = PinchTracker(config)

    def classify(self, landmarks: np.ndarray, now: Optional[float] = None) -> GestureResult:
        """Classify gesture from hand landmarks.

        The pinch tracker is advanced on every call, even when a static
        pose ends up winning.
        """
        now = self._clock() if now is None else now
        if landmarks is None or len(landmarks) < NUM_LANDMARKS:
            return GestureResult.none(now)
        states = self._extractor.get_finger_states(landmarks)

        pinch_result = self._detect_pinch(landmarks, states, now)
        if pinch_result.confidence > self._pinch_preempt:
            return pinch_result

        scores = self.score_static(landmarks, states)
        best, best_score = GestureType.NONE, 0.0
        for gesture in STATIC_ORDER:
            if scores[gesture] > best_score:
                best, best_score = gesture, scores[gesture]

        if best == GestureType.NONE:
            return GestureResult.none(now)
        return GestureResult(best, best_score, now)

    def score_static(self, landmarks: np.ndarray, states: dict = None) -> dict:
        """Score every static gesture. Returns {GestureType: confidence}."""
        if states is None:
            states = self._extractor.get_finger_states(landmarks)
        return {
            GestureType.OPEN_PALM: self._score_open_palm(landmarks, states),
            GestureType.PEACE_SIGN: self._score_peace_sign(landmarks, states),
            GestureType.THUMBS_UP: self._score_thumbs_up(states),
            GestureType.OK_SIGN: self._score_ok_sign(landmarks, states),
            GestureType.THREE_FINGERS_UP: self._score_three_fingers(states),
        }

    def reset(self):
        self.pinch.reset()

    # =========================================================================
    # Static gesture scorers
    # =========================================================================

    def _score_open_palm(self, landmarks, states) -> float:
        if self._extractor.get_extended_finger_count(landmarks) == 4 and states["thumb"]:
            return STATIC_CONFIDENCE
        return 0.0

    def _score_peace_sign(self, landmarks, states) -> float:
        is_peace = (states["index"] and states["middle"]
                    and not states["ring"] and not states["pinky"])
        if is_peace:
            return STATIC_CONFIDENCE

        # Requires the primary rule too, so this currently never fires
        index_y = landmarks[INDEX_TIP][1]
        middle_y = landmarks[MIDDLE_TIP][1]
        ring_y = landmarks[RING_TIP][1]
        pinky_y = landmarks[PINKY_TIP][1]
        tips_higher = (index_y < ring_y and index_y < pinky_y
                       and middle_y < ring_y and middle_y < pinky_y)
        if is_peace and tips_higher:
            return PEACE_FALLBACK_CONFIDENCE
        return 0.0

    @staticmethod
    def _score_thumbs_up(states) -> float:
        if (states["thumb"] and not states["index"] and not states["middle"]
                and not states["ring"] and not states["pinky"]):
            return STATIC_CONFIDENCE
        return 0.0

    def _score_ok_sign(self, landmarks, states) -> float:
        is_ok = (states["thumb"] and not states["index"] and states["middle"]
                 and states["ring"] and states["pinky"]
                 and self._extractor.are_fingertips_close(
                     landmarks, THUMB_TIP, INDEX_TIP, self._ok_close))
        # Index tip bent into the circle, not raised far above its PIP
        proper_circle = landmarks[INDEX_TIP][1] >= landmarks[INDEX_PIP][1] - self._ok_circle_tolerance
        return STATIC_CONFIDENCE if is_ok and proper_circle else 0.0

    @staticmethod
    def _score_three_fingers(states) -> float:
        if (states["index"] and states["thumb"] and states["pinky"]
                and not states["middle"] and not states["ring"]):
            return STATIC_CONFIDENCE
        return 0.0

    # =========================================================================
    # Pinch zoom
    # =========================================================================

    def _detect_pinch(self, landmarks, states, now) -> GestureResult:
        shape_held = (states["thumb"] and states["index"] and not states["middle"]
                      and not states["ring"] and not states["pinky"])
        distance = self._extractor.get_thumb_index_distance(landmarks)
        return self.pinch.update(shape_held, distance, now)
