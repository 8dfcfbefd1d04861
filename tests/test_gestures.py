"""
Tests for Landmark Geometry, Pose Validation and Gesture Classification
========================================================================
"""

import sys
from pathlib import Path
from types import SimpleNamespace

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.types import GestureType, GestureResult
from modules.detection.landmark_extractor import (
    LandmarkExtractor, INDEX_TIP, INDEX_PIP, THUMB_TIP, MIDDLE_TIP,
)
from modules.detection.pose_validator import PoseValidator, Rejection
from modules.recognition.gesture_classifier import GestureClassifier, PinchTracker
from hand_poses import (
    FakeClock, make_hand, open_palm, peace_sign, thumbs_up, three_fingers_up,
    ok_sign, pinch,
)


class TestLandmarkExtractor:
    """Test suite for landmark conversion and finger predicates."""

    @pytest.fixture
    def extractor(self):
        return LandmarkExtractor({})

    def test_to_array_from_objects(self):
        points = [SimpleNamespace(x=0.1 * i, y=0.2, z=0.0) for i in range(21)]
        arr = LandmarkExtractor.to_array(SimpleNamespace(landmark=points))
        assert arr.shape == (21, 3)
        assert arr[3][0] == pytest.approx(0.3)

    def test_to_array_pads_missing_z(self):
        arr = LandmarkExtractor.to_array([(0.5, 0.5)] * 21)
        assert arr.shape == (21, 3)
        assert np.all(arr[:, 2] == 0.0)

    def test_to_array_empty(self):
        assert LandmarkExtractor.to_array([]).shape == (0, 3)

    def test_finger_states_open_palm(self, extractor):
        states = extractor.get_finger_states(open_palm())
        assert states == {"thumb": True, "index": True, "middle": True,
                          "ring": True, "pinky": True}

    def test_finger_states_fist(self, extractor):
        states = extractor.get_finger_states(make_hand())
        assert not any(states.values())

    def test_extended_count_ignores_thumb(self, extractor):
        assert extractor.get_extended_finger_count(open_palm()) == 4
        assert extractor.get_extended_finger_count(thumbs_up()) == 0
        assert extractor.get_extended_finger_count(peace_sign()) == 2

    def test_finger_extension_needs_margin(self, extractor):
        lm = make_hand()
        # Tip only 0.004 above the PIP is still inside the dead band
        lm[INDEX_TIP][1] = lm[INDEX_PIP][1] - 0.004
        assert not extractor.is_finger_extended(lm, INDEX_TIP, INDEX_PIP)
        lm[INDEX_TIP][1] = lm[INDEX_PIP][1] - 0.02
        assert extractor.is_finger_extended(lm, INDEX_TIP, INDEX_PIP)

    def test_fingertips_close(self, extractor):
        lm = ok_sign()
        assert extractor.are_fingertips_close(lm, THUMB_TIP, INDEX_TIP, 0.15)
        assert not extractor.are_fingertips_close(lm, THUMB_TIP, MIDDLE_TIP)

    def test_thumb_index_distance(self, extractor):
        assert extractor.get_thumb_index_distance(pinch(0.2)) == pytest.approx(0.2, abs=1e-5)

    def test_hand_size(self, extractor):
        assert extractor.get_hand_size(open_palm()) == pytest.approx(0.33, abs=1e-5)


class TestPoseValidator:
    """Test suite for PoseValidator rejections."""

    @pytest.fixture
    def validator(self):
        return PoseValidator({})

    def test_valid_pose(self, validator):
        assert validator.check(open_palm()) is None
        assert validator.is_valid(thumbs_up())

    def test_incomplete(self, validator):
        assert validator.check(open_palm()[:20]) == Rejection.INCOMPLETE
        assert validator.check(None) == Rejection.INCOMPLETE

    def test_out_of_frame(self, validator):
        lm = open_palm()
        lm[20][0] = 1.2
        assert validator.check(lm) == Rejection.OUT_OF_FRAME

    def test_at_edge(self, validator):
        lm = open_palm()
        lm[20][0] = 0.97
        assert validator.check(lm) == Rejection.AT_EDGE
        assert not validator.is_valid(lm)

    def test_collapsed_hand(self, validator):
        lm = np.full((21, 3), 0.5, dtype=np.float32)
        assert validator.check(lm) == Rejection.BAD_HAND_SIZE

    def test_oversized_hand(self, validator):
        lm = open_palm()
        lm[MIDDLE_TIP][1] = 0.06
        assert validator.check(lm) == Rejection.BAD_HAND_SIZE

    def test_outside_interaction_box(self, validator):
        # Shifted left: thumb tip at x=0.07, inside the frame but left of the box
        lm = make_hand(thumb=True, index=True, middle=True, ring=True, pinky=True,
                       offset=(-0.25, 0.0))
        assert validator.check(lm) == Rejection.OUTSIDE_BOX
        assert not validator.is_valid(lm)

    def test_custom_box(self):
        validator = PoseValidator({"interaction_box": {"left": 0.4}})
        assert validator.check(open_palm()) == Rejection.OUTSIDE_BOX


class TestGestureClassifier:
    """Test suite for static gesture scoring."""

    @pytest.fixture
    def classifier(self):
        return GestureClassifier({}, clock=FakeClock())

    @pytest.mark.parametrize("pose, expected", [
        (open_palm, GestureType.OPEN_PALM),
        (peace_sign, GestureType.PEACE_SIGN),
        (thumbs_up, GestureType.THUMBS_UP),
        (three_fingers_up, GestureType.THREE_FINGERS_UP),
        (ok_sign, GestureType.OK_SIGN),
    ])
    def test_static_gestures(self, classifier, pose, expected):
        result = classifier.classify(pose(), now=0)
        assert result.gesture == expected
        assert result.confidence == pytest.approx(0.9)

    def test_fist_is_none(self, classifier):
        result = classifier.classify(make_hand(), now=0)
        assert result.is_none
        assert result.confidence == 0.0

    def test_short_landmark_list_is_none(self, classifier):
        assert classifier.classify(open_palm()[:15], now=0).is_none
        assert classifier.classify(None, now=0).is_none

    def test_ok_sign_needs_touching_tips(self, classifier):
        lm = make_hand(thumb=True, middle=True, ring=True, pinky=True, thumb_tip=(0.25, 0.60))
        assert classifier.classify(lm, now=0).gesture != GestureType.OK_SIGN

    def test_ok_sign_rejects_extended_index(self, classifier):
        lm = make_hand(thumb=True, index=True, middle=True, ring=True, pinky=True,
                       thumb_tip=(0.42, 0.39))
        scores = classifier.score_static(lm)
        assert scores[GestureType.OK_SIGN] == 0.0
        assert scores[GestureType.OPEN_PALM] == pytest.approx(0.9)

    def test_score_static_reports_every_gesture(self, classifier):
        scores = classifier.score_static(peace_sign())
        assert set(scores) == {
            GestureType.OPEN_PALM, GestureType.PEACE_SIGN, GestureType.THUMBS_UP,
            GestureType.OK_SIGN, GestureType.THREE_FINGERS_UP,
        }
        assert scores[GestureType.PEACE_SIGN] == pytest.approx(0.9)
        assert scores[GestureType.OPEN_PALM] == 0.0

    def test_timestamp_from_clock(self):
        clock = FakeClock(1234.0)
        classifier = GestureClassifier({}, clock=clock)
        assert classifier.classify(open_palm()).timestamp == 1234.0


class TestPinchZoom:
    """Test suite for the pinch tracker and its preemption of static poses."""

    @pytest.fixture
    def classifier(self):
        return GestureClassifier({}, clock=FakeClock())

    def test_zoom_in_sequence(self, classifier):
        assert classifier.classify(pinch(0.15), now=0).is_none
        assert classifier.pinch.is_armed
        # Held for less than the minimum duration
        assert classifier.classify(pinch(0.17), now=150).is_none

        result = classifier.classify(pinch(0.19), now=250)
        assert result.gesture == GestureType.PINCH_ZOOM_IN
        assert result.confidence == pytest.approx(0.9)

        # Inside the pinch cooldown
        assert classifier.classify(pinch(0.21), now=300).is_none

    def test_drift_accumulates_against_armed_distance(self, classifier):
        classifier.classify(pinch(0.15), now=0)
        assert classifier.classify(pinch(0.19), now=250).gesture == GestureType.PINCH_ZOOM_IN
        # Baseline stays at 0.15 so the next change is still large enough
        result = classifier.classify(pinch(0.19), now=800)
        assert result.gesture == GestureType.PINCH_ZOOM_IN

    def test_zoom_out(self, classifier):
        classifier.classify(pinch(0.25), now=0)
        result = classifier.classify(pinch(0.20), now=250)
        assert result.gesture == GestureType.PINCH_ZOOM_OUT

    def test_small_change_is_none(self, classifier):
        classifier.classify(pinch(0.15), now=0)
        assert classifier.classify(pinch(0.155), now=300).is_none

    def test_losing_shape_disarms(self, classifier):
        classifier.classify(pinch(0.15), now=0)
        classifier.classify(open_palm(), now=100)
        assert not classifier.pinch.is_armed

        # Re-armed at t=300, so the minimum duration starts over
        assert classifier.classify(pinch(0.19), now=300).is_none
        assert classifier.classify(pinch(0.25), now=400).is_none
        assert classifier.classify(pinch(0.25), now=500).gesture == GestureType.PINCH_ZOOM_IN

    def test_tips_too_close_never_arm(self, classifier):
        assert classifier.classify(pinch(0.08), now=0).is_none
        assert not classifier.pinch.is_armed

    def test_reset(self, classifier):
        classifier.classify(pinch(0.15), now=0)
        classifier.classify(pinch(0.19), now=250)
        classifier.reset()
        assert not classifier.pinch.is_armed
        assert classifier.pinch.last_emit_time is None


class TestPinchTracker:
    """Direct tests of the pinch state machine."""

    def test_first_emission_not_blocked_at_time_zero(self):
        tracker = PinchTracker({"pinch_min_duration_ms": 0})
        tracker.update(True, 0.15, 0)
        result = tracker.update(True, 0.20, 0)
        assert isinstance(result, GestureResult)
        assert result.gesture == GestureType.PINCH_ZOOM_IN

    def test_custom_threshold(self):
        tracker = PinchTracker({"pinch_distance_threshold": 0.1})
        tracker.update(True, 0.15, 0)
        assert tracker.update(True, 0.2, 300).is_none
        assert tracker.update(True, 0.3, 400).gesture == GestureType.PINCH_ZOOM_IN
