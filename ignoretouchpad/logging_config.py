"""
Centralized logging configuration for IgnoreTouchpad.

This module provides logging setup so that every component logs through the
same handlers: a rotating file next to the settings file and, optionally,
the console.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import List, Optional

from .preferences import SettingsPathError, default_settings_dir


class IgnoreTouchpadLogger:
    """
    Centralized logger configuration for IgnoreTouchpad.

    Console output goes to stderr so it never mixes with command output.
    """

    _configured = False
    _log_file_path: Optional[Path] = None
    _console_handler: Optional[logging.Handler] = None
    _handlers: List[logging.Handler] = []

    @classmethod
    def configure(
        cls,
        log_level: str = "INFO",
        log_file: Optional[Path] = None,
        console_output: bool = True,
        max_file_size: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5
    ) -> None:
        """
        Configure logging for IgnoreTouchpad.

        Args:
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_file: Optional path to log file. Defaults to ignoretouchpad.log
                      in the settings directory
            console_output: Whether to output logs to stderr
            max_file_size: Maximum size of log file before rotation
            backup_count: Number of backup log files to keep
        """
        if cls._configured:
            return

        level = getattr(logging, log_level.upper(), logging.INFO)

        root_logger = logging.getLogger()
        root_logger.setLevel(level)
        root_logger.handlers.clear()

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        try:
            if log_file is None:
                log_dir = default_settings_dir()
                log_dir.mkdir(parents=True, exist_ok=True)
                log_file = log_dir / "ignoretouchpad.log"

            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_file_size,
                backupCount=backup_count,
                encoding='utf-8'
            )
            file_handler.setFormatter(formatter)
            file_handler.setLevel(logging.DEBUG)
            root_logger.addHandler(file_handler)
            cls._handlers.append(file_handler)
            cls._log_file_path = Path(log_file)
        except (OSError, SettingsPathError) as e:
            # If file logging fails, continue with console only
            print(f"Warning: Could not set up file logging: {e}", file=sys.stderr)

        if console_output:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(formatter)
            console_handler.setLevel(level)
            root_logger.addHandler(console_handler)
            cls._handlers.append(console_handler)
            cls._console_handler = console_handler

        cls._configure_module_loggers()
        cls._configured = True

        logger = logging.getLogger(__name__)
        logger.info(f"Logging configured - Level: {log_level}, File: {cls._log_file_path}")

    @classmethod
    def _configure_module_loggers(cls) -> None:
        """Keep the chatty backends at INFO even when the root is at DEBUG."""
        module_levels = {
            'ignoretouchpad.backends.udev': logging.INFO,
            'ignoretouchpad.backends.xinput': logging.INFO,
            'ignoretouchpad.watcher': logging.INFO,
        }

        for module_name, level in module_levels.items():
            logging.getLogger(module_name).setLevel(level)

    @classmethod
    def get_log_file_path(cls) -> Optional[Path]:
        """Get the current log file path."""
        return cls._log_file_path

    @classmethod
    def set_level(cls, level: str) -> None:
        """
        Change the logging level of the root logger and console handler.

        Args:
            level: New logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        """
        log_level = getattr(logging, level.upper(), logging.INFO)
        logging.getLogger().setLevel(log_level)
        if cls._console_handler is not None:
            cls._console_handler.setLevel(log_level)

        logging.getLogger(__name__).info(f"Logging level changed to {level.upper()}")

    @classmethod
    def reset(cls) -> None:
        """Forget the current configuration so configure() applies again."""
        root_logger = logging.getLogger()
        for handler in cls._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        cls._handlers = []
        cls._configured = False
        cls._log_file_path = None
        cls._console_handler = None


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    console_output: bool = True
) -> None:
    """
    Convenience function to set up IgnoreTouchpad logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file
        console_output: Whether to output logs to stderr
    """
    IgnoreTouchpadLogger.configure(
        log_level=log_level,
        log_file=log_file,
        console_output=console_output
    )
