"""
Preference store with persistent JSON storage.

This module provides the PreferenceStore class that owns the durable mapping
from device name to its "ignored" flag. The mapping is kept in memory behind a
single lock and written wholesale to disk with an atomic replace, so readers
never observe a partially written file.
"""

import fcntl
import json
import logging
import os
import shutil
import tempfile
import threading
import time
from contextlib import contextmanager, nullcontext
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from .backends.exceptions import IgnoreTouchpadError
from .events import EventManager, EventType
from .models import DeviceInfo
from .watcher import SettingsWatcher

logger = logging.getLogger(__name__)

SETTINGS_TAG = "IgnoreTouchpad"
SETTINGS_VERSION = "1.0"
SETTINGS_FILE_NAME = "IgnoreTouchpad.json"
SETTINGS_DIR_NAME = "ignoretouchpad"
SETTINGS_PATH_ENV = "IGNORETOUCHPAD_SETTINGS"


class PreferenceError(IgnoreTouchpadError):
    """Base exception for preference store operations."""

    def __init__(self, message: str, settings_path: Optional[Path] = None, cause: Optional[Exception] = None):
        context = {'settings_path': str(settings_path)} if settings_path else {}
        super().__init__(message, cause, context)


class LoadError(PreferenceError):
    """Raised when the settings file cannot be read or parsed."""
    pass


class SaveError(PreferenceError):
    """Raised when the settings file cannot be written."""
    pass


class MonitorError(PreferenceError):
    """Raised when monitoring of the settings file cannot be started."""

    log_level = logging.WARNING


class NoTargetError(MonitorError):
    """Raised when monitoring is requested without a notification callback."""
    pass


class SettingsPathError(MonitorError):
    """Raised when the settings directory cannot be resolved or created."""
    pass


class SettingsNotFoundError(MonitorError):
    """Raised when the settings file is missing and cannot be created."""
    pass


def default_settings_dir() -> Path:
    """
    Resolve the per-user settings directory.

    Uses ``$XDG_CONFIG_HOME/ignoretouchpad``, falling back to
    ``~/.config/ignoretouchpad``.

    Raises:
        SettingsPathError: If no home or config directory can be determined
    """
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / SETTINGS_DIR_NAME
    try:
        home = Path.home()
    except RuntimeError as e:
        raise SettingsPathError("Cannot determine the user's home directory", cause=e)
    return home / ".config" / SETTINGS_DIR_NAME


def default_settings_path() -> Path:
    """Resolve the settings file path, honouring ``IGNORETOUCHPAD_SETTINGS``."""
    override = os.environ.get(SETTINGS_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return default_settings_dir() / SETTINGS_FILE_NAME


class PreferenceStore:
    """
    Owns the name -> ignored mapping and its backing file.

    ``records`` and the monitoring state are guarded by one lock. The lock is
    only held while the in-memory mapping or the file is touched; callers must
    not hold it across device I/O.
    """

    def __init__(self, settings_path: Optional[Path] = None, events: Optional[EventManager] = None,
                 poll_interval: float = 1.0):
        """
        Initialize the preference store.

        Args:
            settings_path: Optional custom path for the settings file.
                           Defaults to default_settings_path()
            events: Event manager used to announce reloads
            poll_interval: Interval in seconds for watching the settings file
        """
        self._settings_path = Path(settings_path) if settings_path is not None else None
        self.events = events
        self.poll_interval = poll_interval

        self._records: Dict[str, bool] = {}
        self._lock = threading.RLock()
        self._notify_target: Optional[Callable[[], None]] = None
        self._watcher: Optional[SettingsWatcher] = None
        self._watch_active = False

    @property
    def path(self) -> Path:
        """
        Path of the settings file.

        Raises:
            SettingsPathError: If the default location cannot be resolved
        """
        if self._settings_path is None:
            self._settings_path = default_settings_path()
        return self._settings_path

    @property
    def watch_active(self) -> bool:
        with self._lock:
            return self._watch_active

    # -- in-memory records --------------------------------------------------

    def snapshot(self) -> Dict[str, bool]:
        """Return an independent, ordered copy of the records."""
        with self._lock:
            return dict(self._records)

    def set_ignored(self, name: str, ignored: bool) -> None:
        """Record the preference for ``name``. Does not save."""
        with self._lock:
            self._records[name] = bool(ignored)
        logger.debug(f"Preference for '{name}' set to ignored={bool(ignored)}")

    def register_devices(self, names: Iterable[str]) -> List[str]:
        """
        Add unknown device names as not ignored. Does not save.

        Returns:
            List[str]: The names that were actually added
        """
        added = []
        with self._lock:
            for name in names:
                if name not in self._records:
                    self._records[name] = False
                    added.append(name)
        if added:
            logger.info(f"Registered new pointing devices: {', '.join(added)}")
        return added

    def mark_all_active(self) -> None:
        """Clear the ignored flag on every record. Does not save."""
        with self._lock:
            for name in self._records:
                self._records[name] = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._records

    # -- persistence --------------------------------------------------------

    def load(self, default_devices: Optional[Iterable[DeviceInfo]] = None) -> bool:
        """
        Load records from the settings file.

        A missing file is created from ``default_devices`` (all not ignored),
        or from the current records when no devices are given. A corrupt or
        unreadable file is backed up and replaced by an empty record set in
        memory. This method never raises.

        Args:
            default_devices: Devices attached right now, used on first run

        Returns:
            bool: True if the records were read from disk
        """
        with self._lock:
            try:
                path = self.path
            except SettingsPathError:
                logger.error("Settings location unavailable, using defaults in memory")
                if default_devices is not None:
                    self._records = {device.name: False for device in default_devices}
                return False

            if not path.exists():
                if default_devices is not None:
                    self._records = {device.name: False for device in default_devices}
                logger.info(f"No settings file at {path}, creating one with {len(self._records)} devices")
                try:
                    self._write_settings(path, self._records)
                except SaveError as e:
                    logger.warning(f"Could not create settings file: {e}")
                return False

            try:
                records = self._read_settings(path)
            except LoadError as e:
                logger.error(f"Settings unreadable, falling back to empty preferences: {e}")
                self._backup_corrupt_file(path)
                self._records = {}
                return False

            self._records = records
            logger.debug(f"Loaded {len(records)} preference records from {path}")
            return True

    def save(self) -> None:
        """
        Write all records to the settings file, replacing it atomically.

        Raises:
            SaveError: If the file cannot be written
        """
        with self._lock:
            try:
                path = self.path
            except SettingsPathError as e:
                raise SaveError("Settings location unavailable", cause=e)
            self._write_settings(path, self._records)

    @contextmanager
    def _file_lock(self, file_handle, timeout: float = 5.0):
        """
        Hold a shared lock on an open settings file.

        Args:
            file_handle: File handle to lock
            timeout: Maximum time to wait for lock in seconds
        """
        start_time = time.time()
        locked = False

        try:
            while time.time() - start_time < timeout:
                try:
                    fcntl.flock(file_handle.fileno(), fcntl.LOCK_SH | fcntl.LOCK_NB)
                    locked = True
                    break
                except (IOError, OSError):
                    time.sleep(0.1)

            if not locked:
                raise LoadError(
                    f"Could not acquire file lock within {timeout} seconds",
                    settings_path=self._settings_path
                )

            yield

        finally:
            if locked:
                try:
                    fcntl.flock(file_handle.fileno(), fcntl.LOCK_UN)
                except (IOError, OSError) as e:
                    logger.warning(f"Failed to release file lock: {e}")

    def _read_settings(self, path: Path) -> Dict[str, bool]:
        """
        Read and validate the settings document.

        Raises:
            LoadError: If the file is unreadable or malformed
        """
        try:
            with open(path, 'r', encoding='utf-8') as f:
                with self._file_lock(f):
                    data = json.load(f)
        except json.JSONDecodeError as e:
            raise LoadError("Settings file is not valid JSON", settings_path=path, cause=e)
        except OSError as e:
            raise LoadError("Cannot read settings file", settings_path=path, cause=e)

        if not isinstance(data, dict) or data.get("tag") != SETTINGS_TAG:
            raise LoadError("Settings file has no IgnoreTouchpad record", settings_path=path)

        if data.get("version") != SETTINGS_VERSION:
            logger.warning(f"Settings version mismatch: {data.get('version')} != {SETTINGS_VERSION}")

        devices = data.get("devices")
        if not isinstance(devices, list):
            raise LoadError("Settings devices field is not a list", settings_path=path)

        records: Dict[str, bool] = {}
        for entry in devices:
            if (not isinstance(entry, dict) or not isinstance(entry.get("name"), str)
                    or not isinstance(entry.get("ignored"), bool)):
                logger.warning(f"Skipping malformed settings entry: {entry!r}")
                continue
            if entry["name"] in records:
                logger.warning(f"Duplicate settings entry for '{entry['name']}', keeping the later one")
            records[entry["name"]] = entry["ignored"]
        return records

    def _write_settings(self, path: Path, records: Dict[str, bool]) -> None:
        """
        Write the settings document atomically.

        Raises:
            SaveError: If the write fails
        """
        data = {
            "tag": SETTINGS_TAG,
            "version": SETTINGS_VERSION,
            "last_modified": datetime.now().isoformat(),
            "devices": [
                {"name": name, "ignored": ignored} for name, ignored in records.items()
            ],
        }

        tmp_path = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode='w',
                dir=path.parent,
                delete=False,
                prefix=f".{path.name}.",
                suffix='.tmp',
                encoding='utf-8'
            ) as tmp_file:
                tmp_path = tmp_file.name
                json.dump(data, tmp_file, indent=2, ensure_ascii=False)
                tmp_file.flush()
                os.fsync(tmp_file.fileno())

            with self._own_write():
                os.replace(tmp_path, path)
            tmp_path = None
            logger.debug(f"Wrote {len(records)} preference records to {path}")
        except OSError as e:
            raise SaveError("Cannot write settings file", settings_path=path, cause=e)
        finally:
            if tmp_path and os.path.exists(tmp_path):
                try:
                    os.unlink(tmp_path)
                except OSError as e:
                    logger.warning(f"Failed to clean up temporary file {tmp_path}: {e}")

    def _own_write(self):
        if self._watcher is None:
            return nullcontext()
        return self._watcher.own_write()

    def _backup_corrupt_file(self, path: Path) -> Optional[Path]:
        """Copy an unreadable settings file aside so a later save does not destroy it."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        backup_path = path.with_suffix(f'.corrupt_{timestamp}.json')
        try:
            shutil.copy2(path, backup_path)
        except OSError as e:
            logger.error(f"Failed to back up corrupt settings file: {e}")
            return None
        logger.info(f"Backed up corrupt settings file to {backup_path}")
        return backup_path

    # -- monitoring ---------------------------------------------------------

    def set_notify_target(self, callback: Optional[Callable[[], None]]) -> None:
        """Register the callback run after an external change was reloaded."""
        if callback is not None and not callable(callback):
            raise TypeError("Callback must be callable")
        with self._lock:
            self._notify_target = callback

    def start_monitoring(self, notify: Optional[Callable[[], None]] = None) -> None:
        """
        Start watching the settings file for changes made by other processes.

        Calling this while monitoring is active does nothing.

        Args:
            notify: Refresh callback; replaces any registered target

        Raises:
            NoTargetError: If no callback is registered
            SettingsPathError: If the settings directory cannot be resolved
            SettingsNotFoundError: If the file is missing and cannot be created
        """
        if notify is not None:
            self.set_notify_target(notify)

        with self._lock:
            if self._notify_target is None:
                raise NoTargetError("No notification target registered for settings changes")
            if self._watch_active:
                return

            path = self.path
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise SettingsPathError("Cannot create settings directory", settings_path=path, cause=e)

            if not path.exists():
                try:
                    self._write_settings(path, self._records)
                except SaveError as e:
                    raise SettingsNotFoundError("Settings file missing and could not be created",
                                                settings_path=path, cause=e)

            self._watcher = SettingsWatcher(path, self._on_external_change, self.poll_interval)
            self._watcher.start()
            self._watch_active = True
            logger.info(f"Monitoring settings file {path}")

    def stop_monitoring(self) -> None:
        """Stop watching the settings file. Safe to call when inactive."""
        with self._lock:
            if not self._watch_active:
                return
            watcher = self._watcher
            self._watcher = None
            self._watch_active = False

        # Joined outside the lock: the watcher thread may be waiting for it.
        if watcher is not None:
            watcher.stop()
        logger.info("Stopped monitoring settings file")

    def _on_external_change(self) -> None:
        with self._lock:
            if not self._watch_active:
                return
            self.load()
            target = self._notify_target
            records = dict(self._records)

        if self.events is not None:
            self.events.emit(EventType.ON_PREFERENCES_CHANGED, records)
        if target is not None:
            try:
                target()
            except Exception as e:
                logger.error(f"Error in settings change callback: {e}")
