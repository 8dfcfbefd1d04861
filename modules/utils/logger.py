"""
Structured logging with gesture and action event logging.
"""

import os
import logging
import logging.handlers
import time
from functools import wraps


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure structured logging for the application."""
    # Clean console format, compact and readable
    console_format = "%(asctime)s  %(levelname)-5s  %(message)s"
    # Verbose format for log file
    file_format = "%(asctime)s [%(levelname)-7s] %(name)-25s | %(message)s"
    date_format = "%H:%M:%S"

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(root_logger.level)
    console.setFormatter(logging.Formatter(console_format, datefmt=date_format))
    root_logger.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(file_format, datefmt=date_format))
        root_logger.addHandler(file_handler)

    return root_logger


class GestureLogger:
    """Specialized logger for dispatched gestures and their outcomes."""

    def __init__(self, max_history: int = 500):
        self.logger = logging.getLogger("gesture_events")
        self._history = []
        self._max_history = max_history

    def log_dispatch(self, gesture_name, confidence, outcome):
        """Log one dispatched gesture and the DispatchOutcome it produced."""
        action = outcome.action.value if outcome.action else None
        entry = {
            "timestamp": time.time(),
            "gesture": gesture_name,
            "confidence": confidence,
            "action": action,
            "outcome": outcome.kind.value,
            "message": outcome.message,
        }
        self._history.append(entry)
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history:]

        level = logging.WARNING if outcome.is_error else logging.INFO
        self.logger.log(
            level,
            "Gesture: %-16s | Confidence: %.2f | Action: %-21s | %-8s | %s",
            gesture_name,
            confidence,
            action or "none",
            outcome.kind.value,
            outcome.message,
        )

    def get_history(self, last_n=None):
        """Get recent dispatch history."""
        if last_n:
            return self._history[-last_n:]
        return self._history.copy()

    @property
    def total_gestures(self):
        return len(self._history)


def log_timing(func):
    """Decorator to log function execution time."""
    logger = logging.getLogger(func.__module__)

    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug("%s took %.2fms", func.__name__, elapsed)
        return result

    return wrapper
