"""
Snapshots of the attached pointing devices.

The catalog owns the device handles of the snapshot it last produced and
releases them as soon as a newer snapshot supersedes it.
"""

import logging
import threading
from typing import List, Tuple

from .backends.base import DeviceHandle, PlatformBackend
from .backends.exceptions import DeviceIoError, EnumerationError
from .models import DeviceInfo, DeviceType

logger = logging.getLogger(__name__)


class DeviceCatalog:
    """
    Produces ordered, immutable snapshots of attached pointing devices.

    Each returned ``DeviceInfo`` carries a live handle, the running state read
    from the OS and an unresolved ``ignored`` value; the reconciler fills that
    in from the preference store.
    """

    def __init__(self, backend: PlatformBackend):
        self.backend = backend
        self._handles: List[DeviceHandle] = []
        self._lock = threading.Lock()

    def snapshot(self) -> Tuple[DeviceInfo, ...]:
        """
        Enumerate pointing devices.

        Returns:
            Tuple[DeviceInfo, ...]: Live devices in enumeration order

        Raises:
            EnumerationError: If the backend cannot enumerate devices
        """
        with self._lock:
            self._release_handles()
            try:
                handles = self.backend.enumerate_devices()
            except EnumerationError:
                raise
            except Exception as e:
                raise EnumerationError(f"Failed to enumerate input devices: {e}",
                                       platform=self.backend.platform_name, cause=e)

            devices = []
            for handle in handles:
                if handle.device_type != DeviceType.POINTING:
                    handle.release()
                    continue
                try:
                    running = handle.is_running()
                except DeviceIoError:
                    logger.warning(f"Skipping '{handle.name}': state could not be read")
                    handle.release()
                    continue
                self._handles.append(handle)
                devices.append(DeviceInfo(
                    name=handle.name,
                    handle=handle,
                    running=running,
                    ignored=None,
                    ordinal=len(devices)
                ))

            logger.debug(f"Catalog snapshot with {len(devices)} pointing devices")
            return tuple(devices)

    def close(self) -> None:
        """Release the handles of the current snapshot."""
        with self._lock:
            self._release_handles()

    def _release_handles(self) -> None:
        for handle in self._handles:
            try:
                handle.release()
            except Exception as e:
                logger.warning(f"Failed to release handle for '{handle.name}': {e}")
        self._handles = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
