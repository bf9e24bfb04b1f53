"""
Platform detection utilities for IgnoreTouchpad.

This module provides the checks used to pick an input backend for the
current session.
"""

import os
import platform
import subprocess
from typing import Dict


def get_platform_info() -> Dict[str, str]:
    """
    Get basic platform and session information.

    Returns:
        Dict[str, str]: System, release, python version and session type
    """
    return {
        'system': platform.system(),
        'release': platform.release(),
        'python_version': platform.python_version(),
        'session_type': os.environ.get('XDG_SESSION_TYPE', 'unknown'),
    }


def is_linux() -> bool:
    """Check if running on Linux."""
    return platform.system().lower() == 'linux'


def has_x_display() -> bool:
    """Check if an X server (or Xwayland) display is reachable."""
    return bool(os.environ.get('DISPLAY'))


def command_available(command: str) -> bool:
    """
    Check if a system command is available.

    Args:
        command: Command name to check

    Returns:
        bool: True if the command runs and exits cleanly
    """
    try:
        result = subprocess.run(
            [command, '--version'],
            capture_output=True,
            timeout=5
        )
        return result.returncode == 0
    except (subprocess.TimeoutExpired, FileNotFoundError, OSError):
        return False
