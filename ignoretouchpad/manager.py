"""
IgnoreTouchpad manager class - main orchestrator for the IgnoreTouchpad system.

This module contains the manager that wires device enumeration, the
preference store, the reconciler and the device controller together, and
turns their exceptions into CommandResult values for front ends.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Union

from .backends import DeviceDetector, PlatformBackend
from .backends.exceptions import DeviceIoError, EnumerationError
from .catalog import DeviceCatalog
from .controller import (
    DeviceController,
    DeviceNotAttachedError,
    LastDeviceGuardError,
    UnknownOrdinalError,
)
from .events import EventKey, EventManager, EventType
from .models import DeviceInfo
from .platform_utils import get_platform_info
from .preferences import MonitorError, PreferenceStore, SaveError
from .reconciler import MergedView, Reconciler

logger = logging.getLogger(__name__)


class ResultStatus(Enum):
    """Outcome of a user command."""
    OK = "ok"
    NO_CHANGE = "no_change"
    UNKNOWN_ORDINAL = "unknown_ordinal"
    NOT_ATTACHED = "not_attached"
    LAST_DEVICE_GUARD = "last_device_guard"
    DEVICE_IO_ERROR = "device_io_error"


@dataclass(frozen=True)
class CommandResult:
    """Result of enable/disable/enable_all as seen by a front end."""
    status: ResultStatus
    message: str
    device: Optional[DeviceInfo] = None

    @property
    def ok(self) -> bool:
        """True unless the command failed or was refused."""
        return self.status in (ResultStatus.OK, ResultStatus.NO_CHANGE)

    @property
    def failed(self) -> bool:
        """True for unresolved ordinals and OS failures."""
        return self.status in (
            ResultStatus.UNKNOWN_ORDINAL,
            ResultStatus.NOT_ATTACHED,
            ResultStatus.DEVICE_IO_ERROR,
        )


class IgnoreTouchpad:
    """
    Main manager class that orchestrates all system components.

    Typical use::

        with IgnoreTouchpad() as manager:
            for device in manager.list():
                print(device.ordinal, device.name, device.state.value)
            manager.disable(0)
    """

    def __init__(self, settings_path: Optional[Union[str, Path]] = None,
                 backend: Union[str, PlatformBackend, None] = None,
                 autosave: bool = True, poll_interval: float = 1.0):
        """
        Initialize the manager.

        Args:
            settings_path: Optional custom path for the settings file
            backend: Backend name ("auto", "udev", "xinput") or instance
            autosave: Save preferences after every successful mutation
            poll_interval: Interval in seconds for watching the settings file

        Raises:
            ConfigurationError: If the backend name is unknown
            UnsupportedPlatformError: If no backend works on this platform
        """
        self.events = EventManager()
        self.detector = DeviceDetector(backend)
        self.backend = self.detector.get_platform_backend()
        self.catalog = DeviceCatalog(self.backend)
        self.store = PreferenceStore(
            Path(settings_path) if settings_path else None,
            events=self.events,
            poll_interval=poll_interval
        )
        self.reconciler = Reconciler(self.store)
        self.controller = DeviceController(self.backend, self.store, self.events)
        self.autosave = autosave
        self._opened = False
        # Serializes commands and view rebuilds so a snapshot never releases
        # handles that a running command still uses. Never the store lock.
        self._command_lock = threading.RLock()

        info = get_platform_info()
        logger.info(f"IgnoreTouchpad manager initialized on {info['system']} "
                    f"({info['session_type']} session) using the {self.backend.platform_name} backend")

    def open(self) -> MergedView:
        """
        Load preferences and build the first merged view.

        On first run the settings file is created from the devices attached
        right now.
        """
        with self._command_lock:
            catalog = self._snapshot_catalog()
            self.store.load(default_devices=catalog)
            self._opened = True
            return self._rebuild(catalog)

    def refresh(self) -> MergedView:
        """
        Re-enumerate devices and rebuild the merged view.

        Enumeration failures degrade to a view made of ghosts only.
        """
        with self._command_lock:
            if not self._opened:
                return self.open()
            return self._rebuild(self._snapshot_catalog())

    def list(self) -> List[DeviceInfo]:
        """Refresh and return the merged view as a list."""
        return list(self.refresh())

    @property
    def view(self) -> MergedView:
        """The merged view that ordinals are currently resolved against."""
        return self.controller.view

    def can_disable(self, ordinal: int) -> bool:
        return self.controller.can_disable(ordinal)

    def enable(self, ordinal: int) -> CommandResult:
        """Enable the device numbered ``ordinal`` in the current view."""
        return self._run(ordinal, self.controller.enable, "enabled", "already enabled")

    def disable(self, ordinal: int) -> CommandResult:
        """Disable the device numbered ``ordinal`` in the current view."""
        return self._run(ordinal, self.controller.disable, "disabled", "already disabled")

    def enable_all(self) -> CommandResult:
        """Enable every pointing device and clear all ignored flags."""
        try:
            with self._command_lock:
                self.controller.enable_all()
        except DeviceIoError as e:
            return CommandResult(ResultStatus.DEVICE_IO_ERROR, f"Error enabling all devices: {e}")
        self._save()
        return CommandResult(ResultStatus.OK, "All pointing devices enabled")

    def save(self) -> bool:
        """Save preferences now. Returns False if the write failed."""
        return self._save(force=True)

    def on(self, event_type: EventKey, callback: Callable) -> None:
        """
        Subscribe to events (on_preferences_changed, on_device_changed, on_view_refreshed).

        Raises:
            ValueError: If event_type is invalid
            TypeError: If callback is not callable
        """
        self.events.subscribe(event_type, callback)

    def start_monitoring(self, callback: Optional[Callable[[MergedView], None]] = None) -> bool:
        """
        Reload preferences and rebuild the view whenever the settings file
        is changed by another process.

        Args:
            callback: Called with the rebuilt view after each reload

        Returns:
            bool: True if monitoring is active
        """
        def refresh_after_reload():
            view = self.refresh()
            if callback is not None:
                callback(view)

        try:
            self.store.start_monitoring(refresh_after_reload)
        except MonitorError as e:
            logger.warning(f"Settings monitoring unavailable: {e}")
            return False
        return True

    def stop_monitoring(self) -> None:
        self.store.stop_monitoring()

    def close(self) -> None:
        """Stop monitoring and release device handles."""
        self.store.stop_monitoring()
        with self._command_lock:
            self.catalog.close()

    def _snapshot_catalog(self):
        try:
            return self.catalog.snapshot()
        except EnumerationError as e:
            logger.warning(f"No devices known right now: {e}")
            return ()

    def _rebuild(self, catalog) -> MergedView:
        view = self.reconciler.reconcile(catalog)
        self.controller.set_view(view)
        self.events.emit(EventType.ON_VIEW_REFRESHED, view)
        return view

    def _run(self, ordinal: int, action: Callable[[int], bool], done: str, unchanged: str) -> CommandResult:
        try:
            with self._command_lock:
                changed = action(ordinal)
        except DeviceNotAttachedError as e:
            return CommandResult(ResultStatus.NOT_ATTACHED, e.message)
        except UnknownOrdinalError as e:
            return CommandResult(ResultStatus.UNKNOWN_ORDINAL, e.message)
        except LastDeviceGuardError as e:
            return CommandResult(ResultStatus.LAST_DEVICE_GUARD, e.message, self._device_at(ordinal))
        except DeviceIoError as e:
            self._save()
            return CommandResult(ResultStatus.DEVICE_IO_ERROR, e.message, self._device_at(ordinal))

        device = self._device_at(ordinal)
        name = device.name if device else f"#{ordinal}"
        if not changed:
            return CommandResult(ResultStatus.NO_CHANGE, f"'{name}' is {unchanged}", device)
        self._save()
        return CommandResult(ResultStatus.OK, f"'{name}' {done}", device)

    def _device_at(self, ordinal: int) -> Optional[DeviceInfo]:
        view = self.view
        return view[ordinal] if 0 <= ordinal < len(view) else None

    def _save(self, force: bool = False) -> bool:
        if not (self.autosave or force):
            return True
        try:
            self.store.save()
        except SaveError as e:
            logger.error(f"Preferences not saved: {e}")
            return False
        return True

    def __enter__(self):
        """Context manager entry."""
        if not self._opened:
            self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - stop monitoring and release handles."""
        self.close()
