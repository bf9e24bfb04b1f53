"""
Event management system for IgnoreTouchpad.

This module provides a thread-safe event system used to tell front ends that
the saved preferences changed on disk, that a device was toggled, or that the
merged device view was rebuilt.
"""

import threading
from typing import Any, Callable, Dict, List, Union
from enum import Enum
import logging

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Events emitted by the manager and its components."""
    # data: Dict[str, bool] of the reloaded records
    ON_PREFERENCES_CHANGED = "on_preferences_changed"
    # data: the updated DeviceInfo
    ON_DEVICE_CHANGED = "on_device_changed"
    # data: the new MergedView
    ON_VIEW_REFRESHED = "on_view_refreshed"


EventKey = Union[str, EventType]


def event_name(event_type: EventKey) -> str:
    """
    Normalize an EventType or its string value.

    Raises:
        ValueError: If event_type names no EventType
    """
    if isinstance(event_type, EventType):
        return event_type.value
    try:
        return EventType(event_type).value
    except ValueError:
        valid_types = [e.value for e in EventType]
        raise ValueError(f"Invalid event type '{event_type}'. Must be one of: {valid_types}")


class EventManager:
    """
    Thread-safe event manager.

    Callbacks are copied out under the lock and invoked outside it, so a
    callback may subscribe or emit without deadlocking. A failing callback
    is logged and the remaining ones still run.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[Callable]] = {
            event_type.value: [] for event_type in EventType
        }
        self._lock = threading.RLock()

    def subscribe(self, event_type: EventKey, callback: Callable) -> None:
        """
        Subscribe a callback function to an event type.

        Args:
            event_type: EventType or its value, e.g. "on_view_refreshed"
            callback: Called with the event data, or without arguments if none

        Raises:
            ValueError: If event_type is not a valid EventType
            TypeError: If callback is not callable
        """
        if not callable(callback):
            raise TypeError("Callback must be callable")
        name = event_name(event_type)

        with self._lock:
            if callback not in self._subscribers[name]:
                self._subscribers[name].append(callback)
                logger.debug(f"Subscribed callback to {name}")

    def unsubscribe(self, event_type: EventKey, callback: Callable) -> None:
        name = event_name(event_type)
        with self._lock:
            if callback in self._subscribers[name]:
                self._subscribers[name].remove(callback)
                logger.debug(f"Unsubscribed callback from {name}")

    def emit(self, event_type: EventKey, data: Any = None) -> None:
        """
        Deliver an event to every subscriber on the calling thread.

        Raises:
            ValueError: If event_type is not a valid EventType
        """
        name = event_name(event_type)
        with self._lock:
            callbacks = list(self._subscribers[name])

        logger.debug(f"Emitting {name} to {len(callbacks)} subscribers")
        for callback in callbacks:
            try:
                if data is not None:
                    callback(data)
                else:
                    callback()
            except Exception as e:
                logger.error(f"Error in {name} callback: {e}")

    def get_subscriber_count(self, event_type: EventKey) -> int:
        name = event_name(event_type)
        with self._lock:
            return len(self._subscribers[name])

    def clear_subscribers(self, event_type: EventKey = None) -> None:
        """Drop the subscribers of one event type, or of all of them."""
        with self._lock:
            if event_type is not None:
                self._subscribers[event_name(event_type)].clear()
            else:
                for callbacks in self._subscribers.values():
                    callbacks.clear()
        logger.debug(f"Cleared subscribers for {event_type or 'all event types'}")
