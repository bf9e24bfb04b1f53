"""
Linux input backend using udev and the kernel inhibit switch.

Devices are enumerated from the ``input`` subsystem with pyudev and classified
by the properties set by udev's ``input_id`` builtin. A device is stopped by
writing ``1`` to its ``inhibited`` sysfs attribute (Linux 5.11+), which makes
the kernel drop its events without unbinding the driver.
"""

import logging
import os
from typing import List

import pyudev

from ..models import DeviceType
from .base import DeviceHandle, PlatformBackend
from .exceptions import DeviceIoError, EnumerationError

logger = logging.getLogger(__name__)

POINTING_PROPERTIES = ("ID_INPUT_MOUSE", "ID_INPUT_TOUCHPAD", "ID_INPUT_POINTINGSTICK")
INHIBITED_ATTRIBUTE = "inhibited"


def classify_device(device: pyudev.Device) -> DeviceType:
    """Map udev ``ID_INPUT_*`` properties to a DeviceType."""
    properties = device.properties
    if any(properties.get(key) == "1" for key in POINTING_PROPERTIES):
        return DeviceType.POINTING
    if properties.get("ID_INPUT_KEYBOARD") == "1":
        return DeviceType.KEYBOARD
    return DeviceType.OTHER


class UdevDeviceHandle(DeviceHandle):
    """Handle for one ``/sys/class/input/inputN`` device."""

    def __init__(self, device: pyudev.Device):
        self._device = device
        self._name = device.attributes.asstring("name").strip()
        self._device_type = classify_device(device)

    @property
    def name(self) -> str:
        return self._name

    @property
    def device_type(self) -> DeviceType:
        return self._device_type

    @property
    def sys_path(self) -> str:
        return self._device.sys_path

    def is_running(self) -> bool:
        try:
            return int(self._read_inhibited()) == 0
        except FileNotFoundError:
            # Kernel without inhibit support: the device can only be running.
            return True
        except (OSError, ValueError) as e:
            raise DeviceIoError(self._name, getattr(e, "errno", None), cause=e)

    def start(self) -> None:
        self._write_inhibited("0")

    def stop(self) -> None:
        self._write_inhibited("1")

    def release(self) -> None:
        self._device = None

    def _attribute_path(self) -> str:
        if self._device is None:
            raise DeviceIoError(self._name, message=f"Handle for '{self._name}' was released")
        return os.path.join(self._device.sys_path, INHIBITED_ATTRIBUTE)

    def _read_inhibited(self) -> str:
        with open(self._attribute_path(), "r") as f:
            return f.read().strip()

    def _write_inhibited(self, value: str) -> None:
        path = self._attribute_path()
        try:
            with open(path, "w") as f:
                f.write(value)
        except OSError as e:
            raise DeviceIoError(
                self._name, e.errno,
                message=f"Cannot write {path} for '{self._name}': {e.strerror}",
                cause=e
            )
        logger.debug(f"Wrote inhibited={value} for {self._name}")


class UdevBackend(PlatformBackend):
    """
    Input backend for Linux using pyudev.

    Only the ``inputN`` parent devices are enumerated; their ``eventN`` and
    ``mouseN`` children are skipped so every physical device appears once.
    """

    def __init__(self):
        """Initialize the udev context."""
        self._context = pyudev.Context()

    @property
    def platform_name(self) -> str:
        return "udev"

    def enumerate_devices(self) -> List[DeviceHandle]:
        """
        Enumerate input devices from the udev database.

        Raises:
            EnumerationError: If the udev database cannot be queried
        """
        try:
            devices = list(self._context.list_devices(subsystem="input"))
        except Exception as e:
            raise EnumerationError(f"Failed to enumerate input devices via udev: {e}",
                                   platform="udev", cause=e)

        handles = []
        for device in devices:
            if not device.sys_name.startswith("input"):
                continue
            try:
                handles.append(UdevDeviceHandle(device))
            except KeyError:
                logger.debug(f"Skipping {device.sys_path}: no name attribute")
        handles.sort(key=lambda handle: _input_number(handle.sys_path))
        return handles

    def start_all(self, device_type: DeviceType = DeviceType.POINTING) -> None:
        """Clear the inhibit switch on every device of ``device_type``."""
        failures = []
        for handle in self.enumerate_devices():
            if handle.device_type != device_type:
                continue
            try:
                handle.start()
            except DeviceIoError as e:
                failures.append(e)
            finally:
                handle.release()
        if failures:
            first = failures[0]
            raise DeviceIoError(
                first.name, first.code,
                message=f"Failed to start {len(failures)} {device_type.value} device(s)",
                cause=first
            )


def _input_number(sys_path: str) -> int:
    tail = os.path.basename(sys_path)[len("input"):]
    return int(tail) if tail.isdigit() else 0
