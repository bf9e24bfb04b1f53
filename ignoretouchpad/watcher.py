"""
Out-of-process change detection for the settings file.

The watcher polls the file's stat signature on a background thread and calls
its callback once per observed change. Writes made by this process are
made inside ``own_write()`` so they do not come back as notifications.
"""

import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Optional, Tuple

logger = logging.getLogger(__name__)

Signature = Optional[Tuple[int, int, int]]


def file_signature(path: Path) -> Signature:
    """Return (inode, size, mtime_ns) for ``path``, or None if it is missing."""
    try:
        stat = os.stat(path)
    except FileNotFoundError:
        return None
    return (stat.st_ino, stat.st_size, stat.st_mtime_ns)


class SettingsWatcher:
    """
    Polls one path and reports changes to a single callback.

    The callback runs on the watcher thread. There is only one such thread,
    so the callback is never entered concurrently with itself.
    """

    def __init__(self, path: Path, callback: Callable[[], None], poll_interval: float = 1.0):
        self.path = Path(path)
        self.callback = callback
        self.poll_interval = poll_interval

        self._lock = threading.Lock()
        self._signature: Signature = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start polling in a daemon thread. Does nothing if already running."""
        if self.is_running:
            return
        self.rebaseline()
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._watch_loop, name="settings-watcher", daemon=True)
        self._thread.start()
        logger.debug(f"Watching {self.path}")

    def stop(self) -> None:
        """Stop polling and wait for the thread to exit."""
        self._stop_event.set()
        thread = self._thread
        self._thread = None
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=5.0)
            if thread.is_alive():
                logger.warning("Settings watcher did not stop gracefully")
        logger.debug(f"Stopped watching {self.path}")

    def rebaseline(self) -> None:
        """Record the current file state as already seen."""
        with self._lock:
            self._signature = file_signature(self.path)

    @contextmanager
    def own_write(self):
        """
        Wrap a write made by this process.

        Checks wait until the write is done and the new state is recorded as
        already seen.
        """
        with self._lock:
            yield
            self._signature = file_signature(self.path)

    def check(self) -> bool:
        """
        Compare the file against the last seen state.

        Returns:
            bool: True if the file changed since the last check or rebaseline
        """
        with self._lock:
            current = file_signature(self.path)
            if current == self._signature:
                return False
            self._signature = current
        return True

    def _watch_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                if self.check():
                    logger.info(f"Settings file changed: {self.path}")
                    self.callback()
            except Exception as e:
                logger.error(f"Error in settings watcher: {e}")

            if self._stop_event.wait(timeout=self.poll_interval):
                break
