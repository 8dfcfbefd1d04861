"""
Stability and debounce filtering for raw classifier verdicts.

A candidate is stable when every label in the recent window matches it.
Stable candidates are emitted at most once per cooldown period; anything
emitted below the minimum confidence is degraded to NONE.
"""

import logging
from collections import deque
from typing import Callable, Optional

from core.types import GestureResult, GestureType, now_ms

logger = logging.getLogger(__name__)


class StabilityFilter:
    """Window-of-N agreement check plus an emission cooldown.

    With the default window of 1 every candidate is stable, so the filter
    reduces to a 100 ms emission debounce.
    """

    def __init__(self, config: dict = None, clock: Optional[Callable[[], float]] = None):
        config = config or {}
        self._clock = clock or now_ms
        self._window_size = max(1, config.get("window_size", 1))
        self._cooldown_ms = config.get("cooldown_ms", 100)
        self._min_confidence = config.get("min_confidence", 0.2)

        self._window = deque(maxlen=self._window_size)
        self._last_emit_time = None

    def update(self, result: GestureResult, now: Optional[float] = None) -> Optional[GestureResult]:
        """Feed one classification.

        Returns:
            The GestureResult to publish, or None when nothing should be
            emitted this frame (unstable or still cooling down).
        """
        now = self._clock() if now is None else now
        self._window.append(result.gesture)

        if not self.is_stable(result.gesture):
            return None

        if self._last_emit_time is not None and now - self._last_emit_time < self._cooldown_ms:
            logger.debug("Suppressed %s (debounce)", result.gesture.value)
            return None

        self._last_emit_time = now
        return self.gate(result, now)

    def gate(self, result: GestureResult, now: Optional[float] = None) -> GestureResult:
        """Apply the confidence floor."""
        now = self._clock() if now is None else now
        if result.confidence >= self._min_confidence:
            return GestureResult(result.gesture, result.confidence, now)
        return GestureResult(GestureType.NONE, 0.0, now)

    def is_stable(self, gesture: GestureType) -> bool:
        if len(self._window) < self._window_size:
            return False
        return all(g == gesture for g in self._window)

    def reset(self):
        self._window.clear()
        self._last_emit_time = None
