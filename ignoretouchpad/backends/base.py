"""
Base classes and interfaces for platform-specific input device backends.
"""

import logging
import platform
from abc import ABC, abstractmethod
from typing import List, Optional, Union

from ..models import DeviceType
from ..platform_utils import command_available, has_x_display, is_linux
from .exceptions import ConfigurationError, UnsupportedPlatformError

logger = logging.getLogger(__name__)


class DeviceHandle(ABC):
    """
    OS-level handle of one attached input device.

    A handle is only valid for the lifetime of the enumeration snapshot that
    produced it. Devices are identified across sessions by ``name``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable device name reported by the OS."""
        pass

    @property
    @abstractmethod
    def device_type(self) -> DeviceType:
        """Class of the device (pointing, keyboard, other)."""
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """
        Query whether the device currently delivers input.

        Raises:
            DeviceIoError: If the state cannot be read
        """
        pass

    @abstractmethod
    def start(self) -> None:
        """
        Resume delivering input from the device.

        Raises:
            DeviceIoError: If the OS refuses the request
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """
        Suppress input from the device.

        Raises:
            DeviceIoError: If the OS refuses the request
        """
        pass

    def release(self) -> None:
        """Release any OS resources held by the handle."""


class PlatformBackend(ABC):
    """
    Abstract base class for input device backends.

    Each backend enumerates the attached input devices with some OS facility
    and knows how to start and stop them.
    """

    @abstractmethod
    def enumerate_devices(self) -> List[DeviceHandle]:
        """
        Enumerate all attached input devices.

        Returns:
            List[DeviceHandle]: Handles for every input device, in OS order

        Raises:
            EnumerationError: If the OS enumeration call fails
        """
        pass

    @abstractmethod
    def start_all(self, device_type: DeviceType = DeviceType.POINTING) -> None:
        """
        Start every attached device of the given class in one operation.

        Raises:
            DeviceIoError: If any device could not be started
        """
        pass

    @property
    @abstractmethod
    def platform_name(self) -> str:
        """Get the name of the facility this backend drives."""
        pass


class DeviceDetector:
    """
    Selects and holds the input device backend.

    The backend is chosen from an explicit instance, a backend name
    (``"udev"`` or ``"xinput"``) or ``"auto"``, which prefers xinput when an
    X display is available and falls back to udev on Linux.
    """

    BACKEND_NAMES = ("auto", "udev", "xinput")

    def __init__(self, backend: Union[str, PlatformBackend, None] = None):
        """Initialize the detector with the requested backend."""
        if isinstance(backend, PlatformBackend):
            self._backend = backend
        else:
            self._backend = self._get_platform_backend(backend or "auto")
        logger.debug(f"Using {self._backend.platform_name} input backend")

    def get_platform_backend(self) -> PlatformBackend:
        """
        Get the current backend instance.

        Returns:
            PlatformBackend: The active backend
        """
        return self._backend

    def _get_platform_backend(self, name: str) -> PlatformBackend:
        """
        Instantiate the backend for ``name``.

        Raises:
            ConfigurationError: If the backend name is unknown
            UnsupportedPlatformError: If no backend works on this platform
        """
        name = name.lower()
        if name not in self.BACKEND_NAMES:
            raise ConfigurationError(
                f"Unknown backend '{name}'. Must be one of: {', '.join(self.BACKEND_NAMES)}",
                config_key="backend"
            )

        system = platform.system().lower()
        if not is_linux():
            raise UnsupportedPlatformError(f"Unsupported platform: {system}", platform=system)

        if name == "auto":
            name = default_backend_name()

        if name == "xinput":
            from .xinput import XInputBackend
            return XInputBackend()
        from .udev import UdevBackend
        return UdevBackend()


def default_backend_name() -> Optional[str]:
    """Name of the backend ``"auto"`` would pick, or None if unsupported."""
    if not is_linux():
        return None
    return "xinput" if has_x_display() and command_available("xinput") else "udev"
