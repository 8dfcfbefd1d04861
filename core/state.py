"""
Single-writer, multi-reader snapshot store.

The writer replaces the whole frozen snapshot on every change; readers
grab the current reference and never observe a half-updated value.
"""

import dataclasses
import logging
import threading
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StateStore(Generic[T]):
    """Atomically published immutable state value."""

    def __init__(self, initial: T):
        self._value = initial
        self._lock = threading.Lock()
        self._listeners: List[Callable[[T], None]] = []

    @property
    def snapshot(self) -> T:
        return self._value

    def publish(self, **changes) -> T:
        """Publish a copy of the current snapshot with ``changes`` applied."""
        with self._lock:
            self._value = dataclasses.replace(self._value, **changes)
            value = self._value
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(value)
            except Exception as e:
                logger.error("State listener error: %s", e)
        return value

    def subscribe(self, listener: Callable[[T], None]):
        with self._lock:
            self._listeners.append(listener)
