from __future__ import annotations

import threading
from typing import Callable, Iterable, List

from loguru import logger

from .types import Detection, DetectionSet


Listener = Callable[[DetectionSet], None]


class DetectionCell:
    """
    Single-writer / multi-reader holder for the latest published DetectionSet.

    The writer swaps in a whole new tuple by reference, so readers calling
    `snapshot()` never see a partially updated set and need no lock.
    """

    def __init__(self) -> None:
        self._value: DetectionSet = ()
        self._version = 0
        self._listeners: List[Listener] = []
        self._listeners_lock = threading.Lock()

    @property
    def version(self) -> int:
        """Number of publishes so far."""
        return self._version

    def snapshot(self) -> DetectionSet:
        return self._value

    def publish(self, detections: Iterable[Detection]) -> DetectionSet:
        value = tuple(detections)
        self._value = value
        self._version += 1

        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(value)
            except Exception:
                logger.exception("Detection listener failed")
        return value

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        with self._listeners_lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._listeners_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe
