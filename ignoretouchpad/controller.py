"""
Enable/disable state machine for pointing devices.

The controller resolves user-facing ordinals against the most recent merged
view, refuses to stop the last running pointing device, and records the
user's intent in the PreferenceStore. Neither the store lock nor the view
lock is held while a device is being started or stopped.
"""

import logging
import threading
from dataclasses import replace
from typing import Optional

from .backends.base import PlatformBackend
from .backends.exceptions import DeviceIoError, IgnoreTouchpadError
from .events import EventManager, EventType
from .models import DeviceInfo, DeviceType
from .preferences import PreferenceStore
from .reconciler import MergedView

logger = logging.getLogger(__name__)


class ControllerError(IgnoreTouchpadError):
    """Base exception for refused enable/disable requests."""

    log_level = logging.WARNING

    def __init__(self, message: str, ordinal: Optional[int] = None, name: Optional[str] = None):
        self.ordinal = ordinal
        self.name = name
        context = {'ordinal': ordinal}
        if name:
            context['device'] = name
        super().__init__(message, context=context)


class UnknownOrdinalError(ControllerError):
    """Raised when an ordinal does not address a device in the current view."""
    pass


class DeviceNotAttachedError(UnknownOrdinalError):
    """Raised when an ordinal addresses a ghost device."""
    pass


class LastDeviceGuardError(ControllerError):
    """Raised instead of stopping the only running pointing device."""
    pass


class DeviceController:
    """
    Applies enable/disable transitions to live devices.

    Operations that find the device already in the requested state return
    False without touching the OS or the preferences.
    """

    def __init__(self, backend: PlatformBackend, store: PreferenceStore,
                 events: Optional[EventManager] = None):
        self.backend = backend
        self.store = store
        self.events = events
        self._view = MergedView()
        self._view_lock = threading.Lock()

    @property
    def view(self) -> MergedView:
        with self._view_lock:
            return self._view

    def set_view(self, view: MergedView) -> None:
        """Make ``view`` the one that ordinals are resolved against."""
        with self._view_lock:
            self._view = view

    def resolve(self, ordinal: int) -> DeviceInfo:
        """
        Look up a live device by ordinal.

        Raises:
            UnknownOrdinalError: If the ordinal is out of range
            DeviceNotAttachedError: If the ordinal addresses a ghost
        """
        view = self.view
        if not isinstance(ordinal, int) or ordinal < 0 or ordinal >= len(view):
            raise UnknownOrdinalError(f"No device number {ordinal}", ordinal=ordinal)
        device = view[ordinal]
        if device.is_ghost:
            raise DeviceNotAttachedError(
                f"Device {ordinal} ('{device.name}') is not attached", ordinal=ordinal, name=device.name
            )
        return device

    def can_disable(self, ordinal: int) -> bool:
        """Check whether disable(ordinal) would pass the last-device guard."""
        view = self.view
        if ordinal < 0 or ordinal >= len(view):
            return False
        device = view[ordinal]
        if device.is_ghost:
            return False
        return not (device.running and view.active_count() <= 1)

    def disable(self, ordinal: int) -> bool:
        """
        Stop the device at ``ordinal`` and mark it ignored.

        Returns:
            bool: False if the device was already stopped

        Raises:
            UnknownOrdinalError: If the ordinal does not address a live device
            LastDeviceGuardError: If the device is the only one running
            DeviceIoError: If the OS refused to stop the device
        """
        device = self.resolve(ordinal)
        if not device.running:
            logger.debug(f"'{device.name}' already disabled")
            return False

        if self.view.active_count() <= 1:
            raise LastDeviceGuardError(
                f"Refusing to disable '{device.name}': it is the last active pointing device",
                ordinal=ordinal, name=device.name
            )

        self.store.set_ignored(device.name, True)
        try:
            self._call_device(device, "stop")
        except DeviceIoError:
            self._update_view(device, running=device.running, ignored=True)
            raise
        self._update_view(device, running=False, ignored=True)
        logger.info(f"Disabled '{device.name}'")
        return True

    def enable(self, ordinal: int) -> bool:
        """
        Start the device at ``ordinal`` and clear its ignored flag.

        Returns:
            bool: False if the device was already running

        Raises:
            UnknownOrdinalError: If the ordinal does not address a live device
            DeviceIoError: If the OS refused to start the device
        """
        device = self.resolve(ordinal)
        if device.running:
            logger.debug(f"'{device.name}' already enabled")
            return False

        self.store.set_ignored(device.name, False)
        try:
            self._call_device(device, "start")
        except DeviceIoError:
            self._update_view(device, running=device.running, ignored=False)
            raise
        self._update_view(device, running=True, ignored=False)
        logger.info(f"Enabled '{device.name}'")
        return True

    def enable_all(self) -> None:
        """
        Start every pointing device with one bulk call and clear all ignored flags.

        Preferences are only cleared once the bulk start succeeded.

        Raises:
            DeviceIoError: If the bulk start failed
        """
        try:
            self.backend.start_all(DeviceType.POINTING)
        except DeviceIoError:
            raise
        except Exception as e:
            raise DeviceIoError("all pointing devices", getattr(e, "errno", None), cause=e)
        self.store.mark_all_active()

        with self._view_lock:
            self._view = MergedView(
                devices=tuple(
                    replace(device, running=device.is_live or device.running, ignored=False)
                    for device in self._view
                ),
                new_names=self._view.new_names,
            )
        logger.info("Enabled all pointing devices")
        if self.events is not None:
            self.events.emit(EventType.ON_VIEW_REFRESHED, self.view)

    def _call_device(self, device: DeviceInfo, action: str) -> None:
        try:
            getattr(device.handle, action)()
        except DeviceIoError:
            raise
        except Exception as e:
            raise DeviceIoError(device.name, getattr(e, "errno", None), cause=e)

    def _update_view(self, device: DeviceInfo, running: bool, ignored: bool) -> None:
        updated = replace(device, running=running, ignored=ignored)
        with self._view_lock:
            view = self._view
            # The view may have been rebuilt while the device call was in flight.
            if device.ordinal < len(view) and view[device.ordinal] == device:
                self._view = view.with_device(updated)
        if self.events is not None:
            self.events.emit(EventType.ON_DEVICE_CHANGED, updated)
