#!/usr/bin/env python3
"""
Gesture Camera Control - hand gestures in, camera commands out.
Main application entry point and wiring.

Architecture:
    CameraManager thread -> core.Pipeline (sampler gate, convert, detect,
    recognize) -> asyncio loop: ActionDispatcher -> SimulatedCameraExecutor
    core.EventBus carries observations, feedback and camera state to the log.

Usage:
    python main.py                    # Default webcam, runs until Ctrl+C
    python main.py --camera 1         # Other camera device
    python main.py --duration 30      # Stop after 30 seconds
    python main.py --no-adaptive      # Analyze every frame
"""

import sys
import os
import signal
import asyncio
import argparse
import logging

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_ROOT)

from modules.utils.config import Config
from modules.utils.logger import setup_logging, GestureLogger
from modules.utils.performance_monitor import PerformanceMonitor
from modules.capture.camera_manager import CameraManager
from modules.capture.frame_processor import FrameProcessor
from modules.detection.hand_detector import HandDetector
from modules.detection.landmark_extractor import LandmarkExtractor
from modules.detection.pose_validator import PoseValidator
from modules.recognition.gesture_classifier import GestureClassifier
from modules.recognition.temporal_filter import StabilityFilter
from modules.control.action_executor import SimulatedCameraExecutor
from modules.control.dispatcher import ActionDispatcher
from modules.control.feedback_manager import FeedbackManager

from core.events import EventBus, Events
from core.pipeline import GestureRecognizer, Pipeline

logger = logging.getLogger(__name__)


class GestureCameraControl:
    """Main application wiring the gesture pipeline to a simulated camera."""

    def __init__(self, config: Config):
        self._config = config
        self._bus = EventBus()
        self._stop_event = None

        # Governor
        self._governor = PerformanceMonitor(config.governor)

        # Camera side
        self._executor = SimulatedCameraExecutor(config=config.simulator, bus=self._bus)
        self._camera = CameraManager(config.camera)

        # Recognition
        extractor = LandmarkExtractor(config.recognition)
        self._recognizer = GestureRecognizer(
            validator=PoseValidator(config.validation, extractor),
            classifier=GestureClassifier(config.recognition, extractor),
            stability=StabilityFilter(config.stability),
            governor=self._governor,
            bus=self._bus,
            visibility_threshold=config.get("feedback.visibility_threshold", 0.7),
        )

        # Dispatch
        feedback_cfg = dict(config.dispatch)
        feedback_cfg.update(config.feedback)
        self._gesture_logger = GestureLogger()
        self._dispatcher = ActionDispatcher(
            executor=self._executor,
            camera_state=self._executor.store,
            config=config.dispatch,
            feedback=FeedbackManager(feedback_cfg, bus=self._bus),
            bus=self._bus,
            gesture_logger=self._gesture_logger,
        )

        # --- Wire Event Callbacks ---
        self._bus.subscribe(Events.GESTURE_OBSERVED, self._on_gesture_observed)
        self._bus.subscribe(Events.FEEDBACK_CHANGED, self._on_feedback_changed)
        self._bus.subscribe(Events.CAMERA_STATE_CHANGED, self._on_camera_state)

        logger.info("GestureCameraControl initialized")

    def _on_gesture_observed(self, observation, **kwargs):
        if observation.visible:
            logger.debug("Gesture: %s (%.2f)", observation.gesture.value, observation.confidence)

    def _on_feedback_changed(self, feedback, **kwargs):
        if not feedback.visible:
            return
        if feedback.is_error:
            logger.warning("Feedback: %s", feedback.message)
        else:
            logger.info("Feedback: %s", feedback.message)

    def _on_camera_state(self, state, **kwargs):
        self._camera.set_front_facing(state.front_camera)
        logger.info("Camera state: recording=%s front=%s zoom=%.1fx flash=%s",
                    state.recording, state.front_camera, state.zoom_ratio, state.flash_enabled)

    def _install_signal_handlers(self, loop):
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_stop, sig)
            except NotImplementedError:
                signal.signal(sig, lambda signum, frame: loop.call_soon_threadsafe(
                    self.request_stop, signum))

    def request_stop(self, signum=None):
        """Handle SIGINT/SIGTERM for graceful shutdown."""
        if signum is not None:
            logger.info("Signal %d received, shutting down...", signum)
        if self._stop_event is not None:
            self._stop_event.set()

    async def run(self, duration: float = None) -> bool:
        """Run until stopped by a signal or after ``duration`` seconds."""
        loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        self._install_signal_handlers(loop)

        pipeline = Pipeline(
            recognizer=self._recognizer,
            dispatcher=self._dispatcher,
            governor=self._governor,
            loop=loop,
            frame_processor=FrameProcessor(self._config.camera),
            detector=HandDetector(self._config.mediapipe),
        )

        if not self._camera.open():
            logger.error("Failed to open camera. Check connection and permissions.")
            await pipeline.aclose()
            return False

        self._camera.start(pipeline.submit_frame)
        self._bus.emit(Events.SYSTEM_STARTED)
        logger.info("Show a gesture inside the center of the frame. Ctrl+C to quit.")

        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=duration)
        except asyncio.TimeoutError:
            logger.info("Run duration of %.0fs reached", duration)
        finally:
            logger.info("Shutting down...")
            self._camera.stop()
            await pipeline.aclose()
            self._bus.emit(Events.SYSTEM_SHUTDOWN)

            stats = pipeline.stats
            camera_stats = self._camera.stats
            self._governor.print_report()
            logger.info("Frames offered: %d | admitted: %d | read failures: %d",
                        camera_stats["offered"], camera_stats["accepted"],
                        camera_stats["read_failures"])
            logger.info("Frames dropped: convert=%d detect=%d",
                        stats["convert"]["dropped"], stats["detect"]["dropped"])
            logger.info("Gestures dispatched: %d | photos: %d | videos: %d",
                        self._gesture_logger.total_gestures,
                        self._executor.photo_count, self._executor.video_count)
            logger.info("Shutdown complete.")
        return True


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Gesture Camera Control - hand gestures to camera commands"
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to config.yaml"
    )
    parser.add_argument(
        "--camera", type=int, default=None,
        help="Camera device ID"
    )
    parser.add_argument(
        "--duration", type=float, default=None,
        help="Stop after this many seconds"
    )
    parser.add_argument(
        "--no-adaptive", action="store_true",
        help="Disable adaptive frame skipping"
    )
    parser.add_argument(
        "--log-level", type=str, default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override logging level"
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    # Load configuration
    config = Config()
    config.load(config_path=args.config)

    if args.camera is not None:
        config.set("camera.device_id", args.camera)
    if args.no_adaptive:
        config.set("governor.adaptive_enabled", False)
    if args.log_level:
        config.set("logging.level", args.log_level)

    # Setup logging
    log_cfg = config.get_section("logging")
    setup_logging(
        level=log_cfg.get("level", "INFO"),
        log_file=log_cfg.get("file"),
        max_size_mb=log_cfg.get("max_size_mb", 10),
        backup_count=log_cfg.get("backup_count", 3),
    )

    logger.info("=" * 60)
    logger.info("  GESTURE CAMERA CONTROL")
    logger.info("  Version: %s", config.get("system.version", "1.0.0"))
    logger.info("  Adaptive sampling: %s", config.get("governor.adaptive_enabled"))
    logger.info("=" * 60)

    app = GestureCameraControl(config)
    ok = asyncio.run(app.run(duration=args.duration))
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
