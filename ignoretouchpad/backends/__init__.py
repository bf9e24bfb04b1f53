"""
Input device backends.

This package contains the OS glue used to enumerate and start/stop devices:
- udev: Linux input subsystem via pyudev and the kernel inhibit switch
- xinput: X11 sessions via the xinput tool
"""

from .base import PlatformBackend, DeviceDetector, DeviceHandle
from .exceptions import (
    IgnoreTouchpadError,
    EnumerationError,
    DeviceIoError,
    UnsupportedPlatformError,
    ConfigurationError,
)

__all__ = [
    "PlatformBackend",
    "DeviceDetector",
    "DeviceHandle",
    "IgnoreTouchpadError",
    "EnumerationError",
    "DeviceIoError",
    "UnsupportedPlatformError",
    "ConfigurationError",
]
