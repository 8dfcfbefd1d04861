"""
Adaptive frame-rate governor with per-stage latency tracking.

Measures achieved processing throughput once per measurement window,
classifies it into a PerformanceStatus band and derives the frame-skip
interval consulted by the sampler gate before any expensive work.
"""

import time
import threading
import logging
from collections import deque
from contextlib import contextmanager
from typing import Callable, Optional

from core.types import PerformanceStats, PerformanceStatus, now_ms

logger = logging.getLogger(__name__)


class PerformanceMonitor:
    """Tracks processing FPS and decides which frames are worth analyzing."""

    def __init__(self, config: Optional[dict] = None,
                 clock: Optional[Callable[[], float]] = None):
        config = config or {}
        self._clock = clock or now_ms
        self._lock = threading.Lock()

        self._interval_ms = config.get("measurement_interval_ms", 1000)
        self._adaptive_threshold = config.get("adaptive_threshold_fps", 28.0)
        self._optimal_fps = config.get("optimal_fps", 35.0)
        self._target_fps = config.get("target_fps", 30.0)
        self._min_fps = config.get("min_fps", 25.0)
        self._adaptive_enabled = config.get("adaptive_enabled", True)
        self._latency_window = config.get("latency_window", 100)

        self._fps_history = deque(maxlen=config.get("history_size", 10))
        self._stage_times = {}
        self._reset_counters()

    def _reset_counters(self):
        now = self._clock()
        self._frame_count = 0
        self._last_measurement_time = now
        self._fps_history.clear()
        self._current_fps = 0.0
        self._average_fps = 0.0
        self._status = PerformanceStatus.OPTIMAL
        self._skip_interval = 1
        self._skip_counter = 0
        self._total_processed = 0
        self._total_skipped = 0
        self._start_time = now
        for times in self._stage_times.values():
            times.clear()

    # =========================================================================
    # Frame accounting
    # =========================================================================

    def on_frame_processed(self):
        """Count a processed frame; close the measurement window if due."""
        now = self._clock()
        with self._lock:
            self._frame_count += 1
            self._total_processed += 1

            elapsed = now - self._last_measurement_time
            if elapsed >= self._interval_ms:
                fps = self._frame_count * 1000.0 / elapsed
                self._update_fps_metrics(fps)
                self._frame_count = 0
                self._last_measurement_time = now

    def on_frame_skipped(self):
        with self._lock:
            self._total_skipped += 1

    def should_process_frame(self) -> bool:
        """Decide whether the next frame should be analyzed.

        Frames are always admitted on cold start (no measurement yet) and
        whenever throughput is at or above the adaptive threshold.
        """
        if not self._adaptive_enabled:
            return True

        with self._lock:
            self._skip_counter += 1
            if 0 < self._current_fps < self._adaptive_threshold:
                return self._skip_counter % self._skip_interval == 0
            return True

    def _update_fps_metrics(self, fps: float):
        self._current_fps = fps
        self._fps_history.append(fps)
        self._average_fps = sum(self._fps_history) / len(self._fps_history)
        self._status = self._classify(fps)
        self._adjust_skip_interval(fps)
        logger.debug(
            "FPS %.1f (avg %.1f) status=%s skip_interval=%d",
            fps, self._average_fps, self._status.value, self._skip_interval,
        )

    def _classify(self, fps: float) -> PerformanceStatus:
        if fps >= self._optimal_fps:
            return PerformanceStatus.OPTIMAL
        if fps >= self._target_fps:
            return PerformanceStatus.GOOD
        if fps >= self._min_fps:
            return PerformanceStatus.ACCEPTABLE
        return PerformanceStatus.POOR

    def _adjust_skip_interval(self, fps: float):
        # Between the adaptive threshold and the target the interval is kept
        if fps < 20.0:
            self._skip_interval = 3
        elif fps < self._min_fps:
            self._skip_interval = 2
        elif fps < self._adaptive_threshold:
            self._skip_interval = 2
        elif fps >= self._target_fps:
            self._skip_interval = 1

    def set_adaptive_enabled(self, enabled: bool):
        """Toggle adaptive skipping. Disabling forces a skip interval of 1."""
        with self._lock:
            self._adaptive_enabled = enabled
            if not enabled:
                self._skip_interval = 1
        logger.info("Adaptive frame skipping %s", "enabled" if enabled else "disabled")

    # =========================================================================
    # Stage latency
    # =========================================================================

    @contextmanager
    def measure(self, stage_name: str):
        """Context manager to measure a pipeline stage's duration."""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            with self._lock:
                if stage_name not in self._stage_times:
                    self._stage_times[stage_name] = deque(maxlen=self._latency_window)
                self._stage_times[stage_name].append(elapsed_ms)

    def get_stage_latency(self, stage_name: str) -> float:
        """Average latency for a specific stage in ms."""
        with self._lock:
            times = self._stage_times.get(stage_name)
            if not times:
                return 0.0
            return sum(times) / len(times)

    # =========================================================================
    # Read-only views
    # =========================================================================

    @property
    def current_fps(self) -> float:
        return self._current_fps

    @property
    def average_fps(self) -> float:
        return self._average_fps

    @property
    def status(self) -> PerformanceStatus:
        return self._status

    @property
    def skip_interval(self) -> int:
        return self._skip_interval

    @property
    def adaptive_enabled(self) -> bool:
        return self._adaptive_enabled

    def get_stats(self) -> PerformanceStats:
        """Snapshot of throughput, skip policy and totals. Pure read."""
        now = self._clock()
        with self._lock:
            processed = self._total_processed
            skipped = self._total_skipped
            skip_rate = (skipped / processed) * 100 if processed > 0 else 0.0
            latencies = {
                name: (sum(times) / len(times) if times else 0.0)
                for name, times in self._stage_times.items()
            }
            return PerformanceStats(
                current_fps=self._current_fps,
                average_fps=self._average_fps,
                status=self._status,
                skip_interval=self._skip_interval,
                total_processed=processed,
                total_skipped=skipped,
                skip_rate=skip_rate,
                uptime_seconds=(now - self._start_time) / 1000.0,
                latencies_ms=latencies,
            )

    def print_report(self):
        """Log a formatted performance report."""
        stats = self.get_stats()
        logger.info("=" * 60)
        logger.info("PERFORMANCE REPORT")
        logger.info("=" * 60)
        logger.info("FPS:            %.1f (avg %.1f)", stats.current_fps, stats.average_fps)
        logger.info("Status:         %s", stats.status.value)
        logger.info("Skip Interval:  %d", stats.skip_interval)
        logger.info("Processed:      %d", stats.total_processed)
        logger.info("Skipped:        %d (%.2f%%)", stats.total_skipped, stats.skip_rate)
        logger.info("Uptime:         %.1fs", stats.uptime_seconds)
        if stats.latencies_ms:
            logger.info("-" * 40)
            logger.info("Stage Latencies (avg ms):")
            for stage, latency in stats.latencies_ms.items():
                logger.info("  %-18s %7.2f ms", stage, latency)
        logger.info("=" * 60)

    def reset(self):
        """Zero all counters and restart the timer."""
        with self._lock:
            self._reset_counters()
