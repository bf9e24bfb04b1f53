"""
Exception classes for backend and device operations.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class IgnoreTouchpadError(Exception):
    """Base exception class for all IgnoreTouchpad errors."""

    log_level = logging.ERROR

    def __init__(self, message: str, cause: Optional[Exception] = None, context: Optional[dict] = None):
        """
        Initialize IgnoreTouchpad error.

        Args:
            message: Error message
            cause: Original exception that caused this error
            context: Additional context information
        """
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.context = context or {}

        # Log the error with context
        logger.log(self.log_level, f"{self.__class__.__name__}: {message}", extra={
            'cause': str(cause) if cause else None,
            'context': self.context
        })


class EnumerationError(IgnoreTouchpadError):
    """Raised when the OS cannot enumerate input devices."""

    def __init__(self, message: str, platform: Optional[str] = None, cause: Optional[Exception] = None):
        context = {'platform': platform} if platform else {}
        super().__init__(message, cause, context)


class DeviceIoError(IgnoreTouchpadError):
    """Raised when the OS refuses to start or stop a device."""

    def __init__(self, name: str, code: Optional[int] = None, message: Optional[str] = None,
                 cause: Optional[Exception] = None):
        self.name = name
        self.code = code
        if message is None:
            message = f"Device '{name}' did not respond to start/stop"
            if code is not None:
                message += f" (code {code})"
        super().__init__(message, cause, {'device': name, 'code': code})


class UnsupportedPlatformError(IgnoreTouchpadError):
    """Raised when the current platform is not supported."""

    def __init__(self, message: str, platform: Optional[str] = None):
        context = {'platform': platform} if platform else {}
        super().__init__(message, context=context)


class ConfigurationError(IgnoreTouchpadError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_key: Optional[str] = None, cause: Optional[Exception] = None):
        context = {'config_key': config_key} if config_key else {}
        super().__init__(message, cause, context)
