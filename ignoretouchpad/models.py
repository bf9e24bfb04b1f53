"""
Core data models for IgnoreTouchpad.

This module defines the value types shared by the catalog, the reconciler and
the controller: device classes, per-device state and the DeviceInfo record
that makes up a merged device view.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .backends.base import DeviceHandle


class DeviceType(Enum):
    """Class of an input device as reported by the OS."""
    POINTING = "pointing"
    KEYBOARD = "keyboard"
    OTHER = "other"


class DeviceState(Enum):
    """User-facing state of a device in a merged view."""
    ENABLED = "enabled"
    DISABLED = "disabled"
    DETACHED = "detached"


@dataclass(frozen=True)
class DeviceInfo:
    """
    A pointing device as shown to the user.

    A record is *live* when ``handle`` is set (the device is attached right
    now) and a *ghost* when only its name is known from the saved
    preferences. ``ignored`` is ``None`` until the reconciler has resolved it
    against the preference store.
    """
    name: str
    handle: Optional["DeviceHandle"] = field(default=None, repr=False)
    running: bool = False
    ignored: Optional[bool] = None
    ordinal: int = -1

    @property
    def is_live(self) -> bool:
        """Check if the device is currently attached."""
        return self.handle is not None

    @property
    def is_ghost(self) -> bool:
        """Check if the device is only known from preferences."""
        return self.handle is None

    @property
    def state(self) -> DeviceState:
        if self.handle is None:
            return DeviceState.DETACHED
        return DeviceState.ENABLED if self.running else DeviceState.DISABLED

    @property
    def has_discrepancy(self) -> bool:
        """
        Check if the saved preference disagrees with the hardware state.

        This happens when an ignored device was reconnected and auto-started
        by the OS, or when a device was stopped outside of this tool.
        """
        if self.handle is None or self.ignored is None:
            return False
        return self.ignored == self.running
