"""
Event notifications for the propagation engine.
Subscribers register callbacks by event name; emission never raises.
"""

import threading
import logging
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

PROPAGATION_UPDATED = 'propagationUpdated'
SIGNAL_STRENGTH_CHANGED = 'signalStrengthChanged'
MUF_CHANGED = 'mufChanged'
EXTERNAL_DATA_UPDATED = 'externalDataUpdated'

EVENT_NAMES = (
    PROPAGATION_UPDATED,
    SIGNAL_STRENGTH_CHANGED,
    MUF_CHANGED,
    EXTERNAL_DATA_UPDATED,
)


class EventEmitter:
    """Explicit subscriber list per event name."""

    def __init__(self, event_names=EVENT_NAMES):
        self._subscribers: Dict[str, List[Callable]] = {name: [] for name in event_names}
        self._lock = threading.Lock()

    def subscribe(self, event: str, callback: Callable) -> Callable[[], None]:
        """Register a callback and return a function that unregisters it."""
        with self._lock:
            if event not in self._subscribers:
                raise ValueError(f"Unknown event: {event}")
            self._subscribers[event].append(callback)

        def unsubscribe():
            self.unsubscribe(event, callback)

        return unsubscribe

    def unsubscribe(self, event: str, callback: Callable):
        with self._lock:
            callbacks = self._subscribers.get(event, [])
            if callback in callbacks:
                callbacks.remove(callback)

    def emit(self, event: str, *args):
        """Call every subscriber of an event; subscriber errors are logged."""
        with self._lock:
            callbacks = list(self._subscribers.get(event, []))

        for callback in callbacks:
            try:
                callback(*args)
            except Exception as e:
                logger.error(f"Error in {event} subscriber {callback!r}: {e}")

    def subscriber_count(self, event: str) -> int:
        with self._lock:
            return len(self._subscribers.get(event, []))
