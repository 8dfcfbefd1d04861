"""
Tests for the Frame-Rate Governor
==================================
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.types import PerformanceStatus
from modules.utils.performance_monitor import PerformanceMonitor
from hand_poses import FakeClock


def feed_window(monitor, clock, fps, window_ms=1000):
    """Process ``fps`` frames spread over one measurement window."""
    step = window_ms / fps
    for _ in range(fps - 1):
        clock.advance(step)
        monitor.on_frame_processed()
    # Land the last frame exactly on the window boundary
    clock.now = monitor._last_measurement_time + window_ms
    monitor.on_frame_processed()


class TestPerformanceMonitor:
    """Test suite for PerformanceMonitor class."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def monitor(self, clock):
        return PerformanceMonitor({}, clock=clock)

    def test_initial_state(self, monitor):
        """Cold start: optimal, no skipping, every frame admitted."""
        assert monitor.current_fps == 0.0
        assert monitor.status == PerformanceStatus.OPTIMAL
        assert monitor.skip_interval == 1
        assert all(monitor.should_process_frame() for _ in range(10))

    def test_no_measurement_before_window(self, monitor, clock):
        clock.advance(999)
        monitor.on_frame_processed()
        assert monitor.current_fps == 0.0

    def test_fps_measurement(self, monitor, clock):
        feed_window(monitor, clock, 32)
        assert monitor.current_fps == pytest.approx(32.0)
        assert monitor.status == PerformanceStatus.GOOD
        assert monitor.skip_interval == 1

    def test_poor_fps_converges_to_skip_three(self, monitor, clock):
        """Three 1-second windows at 18 fps -> skip interval 3, POOR."""
        for _ in range(3):
            feed_window(monitor, clock, 18)

        assert monitor.current_fps == pytest.approx(18.0)
        assert monitor.average_fps == pytest.approx(18.0)
        assert monitor.skip_interval == 3
        assert monitor.status == PerformanceStatus.POOR

    def test_skip_pattern_below_threshold(self, monitor, clock):
        feed_window(monitor, clock, 18)
        decisions = [monitor.should_process_frame() for _ in range(6)]
        assert decisions == [False, False, True, False, False, True]

    def test_status_bands(self, monitor, clock):
        feed_window(monitor, clock, 40)
        assert monitor.status == PerformanceStatus.OPTIMAL
        feed_window(monitor, clock, 26)
        assert monitor.status == PerformanceStatus.ACCEPTABLE
        assert monitor.skip_interval == 2
        feed_window(monitor, clock, 22)
        assert monitor.status == PerformanceStatus.POOR
        assert monitor.skip_interval == 2

    def test_interval_kept_between_threshold_and_target(self, monitor, clock):
        feed_window(monitor, clock, 18)
        assert monitor.skip_interval == 3
        feed_window(monitor, clock, 29)
        assert monitor.skip_interval == 3
        # At or above the adaptive threshold every frame is admitted anyway
        assert all(monitor.should_process_frame() for _ in range(5))

    def test_fps_history_is_bounded(self, monitor, clock):
        for _ in range(12):
            feed_window(monitor, clock, 20)
        feed_window(monitor, clock, 40)
        # Ten most recent windows: nine at 20 and one at 40
        assert monitor.average_fps == pytest.approx((9 * 20 + 40) / 10)

    def test_adaptive_disabled(self, monitor, clock):
        feed_window(monitor, clock, 18)
        monitor.set_adaptive_enabled(False)
        assert monitor.skip_interval == 1
        assert all(monitor.should_process_frame() for _ in range(6))

    def test_stats(self, monitor, clock):
        for _ in range(4):
            monitor.on_frame_processed()
        monitor.on_frame_skipped()
        clock.advance(2500)

        stats = monitor.get_stats()
        assert stats.total_processed == 4
        assert stats.total_skipped == 1
        assert stats.skip_rate == pytest.approx(25.0)
        assert stats.uptime_seconds == pytest.approx(2.5)

    def test_stats_is_pure_read(self, monitor):
        monitor.get_stats()
        monitor.get_stats()
        assert monitor.get_stats().total_processed == 0

    def test_stage_latency(self, monitor):
        with monitor.measure("classify"):
            pass
        assert monitor.get_stage_latency("classify") >= 0.0
        assert "classify" in monitor.get_stats().latencies_ms
        assert monitor.get_stage_latency("unknown") == 0.0

    def test_reset(self, monitor, clock):
        feed_window(monitor, clock, 18)
        monitor.on_frame_skipped()
        monitor.reset()

        stats = monitor.get_stats()
        assert stats.current_fps == 0.0
        assert stats.skip_interval == 1
        assert stats.total_processed == 0
        assert stats.total_skipped == 0
        assert stats.status == PerformanceStatus.OPTIMAL
        assert stats.uptime_seconds == 0.0

    def test_print_report(self, monitor, clock, caplog):
        feed_window(monitor, clock, 30)
        with caplog.at_level("INFO"):
            monitor.print_report()
        assert "PERFORMANCE REPORT" in caplog.text
