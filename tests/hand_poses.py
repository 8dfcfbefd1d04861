"""
Synthetic 21-point hand poses for tests.

The hand sits in the middle of the frame, wrist at (0.5, 0.7), fingers
pointing up. Extended fingers put the tip well above the PIP joint; curled
fingers put it below. All key landmarks fall inside the interaction box.
"""

import numpy as np

WRIST_XY = (0.5, 0.7)

# x position and (mcp, pip, dip, tip) y positions per finger
_FINGER_X = {"index": 0.44, "middle": 0.50, "ring": 0.56, "pinky": 0.62}
_EXTENDED_Y = (0.55, 0.47, 0.42, 0.37)
_CURLED_Y = (0.55, 0.47, 0.50, 0.52)

_THUMB_EXTENDED = [(0.44, 0.66), (0.40, 0.62), (0.36, 0.58), (0.32, 0.54)]
_THUMB_CURLED = [(0.44, 0.66), (0.40, 0.62), (0.42, 0.58), (0.46, 0.60)]


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float):
        self.now += ms


def make_hand(thumb=False, index=False, middle=False, ring=False, pinky=False,
              thumb_tip=None, offset=(0.0, 0.0)) -> np.ndarray:
    """Build a (21, 3) landmark array with the given fingers extended."""
    points = [WRIST_XY]
    points.extend(_THUMB_EXTENDED if thumb else _THUMB_CURLED)
    if thumb_tip is not None:
        points[4] = thumb_tip

    for name, extended in (("index", index), ("middle", middle),
                           ("ring", ring), ("pinky", pinky)):
        x = _FINGER_X[name]
        for y in (_EXTENDED_Y if extended else _CURLED_Y):
            points.append((x, y))

    arr = np.zeros((21, 3), dtype=np.float32)
    arr[:, :2] = np.asarray(points, dtype=np.float32)
    arr[:, 0] += offset[0]
    arr[:, 1] += offset[1]
    return arr


def open_palm():
    return make_hand(thumb=True, index=True, middle=True, ring=True, pinky=True)


def peace_sign():
    return make_hand(index=True, middle=True)


def thumbs_up():
    return make_hand(thumb=True)


def three_fingers_up():
    return make_hand(thumb=True, index=True, pinky=True)


def ok_sign():
    # Thumb tip touching the curled index tip at (0.44, 0.52)
    return make_hand(thumb=True, middle=True, ring=True, pinky=True, thumb_tip=(0.40, 0.50))


def pinch(distance: float):
    """Thumb and index extended with their tips ``distance`` apart."""
    index_tip_x, index_tip_y = _FINGER_X["index"], _EXTENDED_Y[3]
    return make_hand(thumb=True, index=True,
                     thumb_tip=(index_tip_x - distance, index_tip_y))
