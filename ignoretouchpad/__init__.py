"""
IgnoreTouchpad - enable or disable pointing devices and remember the choice.

A Python library and command-line tool for ignoring accidental touchpad
clicks while an external mouse is connected to a notebook.
"""

from .models import DeviceInfo, DeviceState, DeviceType
from .manager import CommandResult, IgnoreTouchpad, ResultStatus
from .preferences import PreferenceStore, PreferenceError, LoadError, SaveError
from .reconciler import MergedView, merge
from .backends import DeviceDetector, PlatformBackend

__version__ = "0.1.0"
__all__ = [
    "DeviceInfo",
    "DeviceState",
    "DeviceType",
    "IgnoreTouchpad",
    "CommandResult",
    "ResultStatus",
    "PreferenceStore",
    "PreferenceError",
    "LoadError",
    "SaveError",
    "MergedView",
    "merge",
    "DeviceDetector",
    "PlatformBackend"
]
