"""
Unit tests for SettingsWatcher.
"""

import threading
import time
from unittest.mock import Mock

import pytest

from ignoretouchpad.watcher import SettingsWatcher, file_signature


@pytest.fixture
def watched_file(tmp_path):
    path = tmp_path / "IgnoreTouchpad.json"
    path.write_text("{}")
    return path


def replace_file(path, content):
    tmp = path.with_name(path.name + ".new")
    tmp.write_text(content)
    tmp.replace(path)


class TestFileSignature:

    def test_missing_file(self, tmp_path):
        assert file_signature(tmp_path / "missing.json") is None

    def test_signature_changes_on_replace(self, watched_file):
        before = file_signature(watched_file)

        replace_file(watched_file, '{"changed": true}')

        assert file_signature(watched_file) != before


class TestSettingsWatcher:
    """Test cases for change detection."""

    def test_check_without_change(self, watched_file):
        watcher = SettingsWatcher(watched_file, Mock())
        watcher.rebaseline()

        assert watcher.check() is False

    def test_check_reports_each_change_once(self, watched_file):
        watcher = SettingsWatcher(watched_file, Mock())
        watcher.rebaseline()

        replace_file(watched_file, '{"a": 1}')

        assert watcher.check() is True
        assert watcher.check() is False

    def test_rebaseline_swallows_own_write(self, watched_file):
        watcher = SettingsWatcher(watched_file, Mock())
        watcher.rebaseline()

        replace_file(watched_file, '{"own": "write"}')
        watcher.rebaseline()

        assert watcher.check() is False

    def test_deletion_is_a_change(self, watched_file):
        watcher = SettingsWatcher(watched_file, Mock())
        watcher.rebaseline()

        watched_file.unlink()

        assert watcher.check() is True

    def test_start_and_stop(self, watched_file):
        watcher = SettingsWatcher(watched_file, Mock(), poll_interval=0.01)

        watcher.start()
        assert watcher.is_running

        watcher.stop()
        assert not watcher.is_running

    def test_start_twice_keeps_one_thread(self, watched_file):
        watcher = SettingsWatcher(watched_file, Mock(), poll_interval=0.01)
        watcher.start()
        thread = watcher._thread

        watcher.start()

        assert watcher._thread is thread
        watcher.stop()

    def test_thread_calls_back_on_change(self, watched_file):
        changed = threading.Event()
        watcher = SettingsWatcher(watched_file, changed.set, poll_interval=0.01)
        watcher.start()
        try:
            replace_file(watched_file, '{"external": true}')
            assert changed.wait(timeout=5.0)
        finally:
            watcher.stop()

    def test_callback_errors_do_not_stop_thread(self, watched_file):
        calls = []

        def callback():
            calls.append(time.time())
            raise RuntimeError("callback failed")

        watcher = SettingsWatcher(watched_file, callback, poll_interval=0.01)
        watcher.start()
        try:
            replace_file(watched_file, '{"first": 1}')
            deadline = time.time() + 5.0
            while not calls and time.time() < deadline:
                time.sleep(0.01)

            replace_file(watched_file, '{"second": 22}')
            while len(calls) < 2 and time.time() < deadline:
                time.sleep(0.01)

            assert len(calls) == 2
            assert watcher.is_running
        finally:
            watcher.stop()

    def test_stop_from_callback(self, watched_file):
        """The callback may stop its own watcher without deadlocking."""
        stopped = threading.Event()
        watcher = None

        def callback():
            watcher.stop()
            stopped.set()

        watcher = SettingsWatcher(watched_file, callback, poll_interval=0.01)
        watcher.start()
        replace_file(watched_file, '{"stop": true}')

        assert stopped.wait(timeout=5.0)
        assert watcher._thread is None

    def test_own_write_is_not_reported(self, watched_file):
        watcher = SettingsWatcher(watched_file, Mock())
        watcher.rebaseline()

        with watcher.own_write():
            replace_file(watched_file, '{"written": "here"}')

        assert watcher.check() is False

    def test_check_waits_for_own_write(self, watched_file):
        watcher = SettingsWatcher(watched_file, Mock())
        watcher.rebaseline()
        results = []

        with watcher.own_write():
            checker = threading.Thread(target=lambda: results.append(watcher.check()))
            checker.start()
            replace_file(watched_file, '{"written": "here"}')
            time.sleep(0.05)
            assert results == []

        checker.join(timeout=5.0)
        assert results == [False]
