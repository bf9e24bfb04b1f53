"""
Pytest configuration and shared fixtures for IgnoreTouchpad tests.

This module provides fake device backends, temporary settings locations and
helpers used across all test modules.
"""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Add the project root to Python path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from ignoretouchpad.backends.base import DeviceHandle, PlatformBackend
from ignoretouchpad.backends.exceptions import DeviceIoError, EnumerationError
from ignoretouchpad.events import EventManager
from ignoretouchpad.logging_config import IgnoreTouchpadLogger
from ignoretouchpad.manager import IgnoreTouchpad
from ignoretouchpad.models import DeviceInfo, DeviceType
from ignoretouchpad.preferences import PreferenceStore, SETTINGS_TAG, SETTINGS_VERSION


# Test markers configuration
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "slow: marks tests as slow running tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "linux: marks tests that require Linux platform")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on test names and paths."""
    for item in items:
        if "slow" in item.name.lower():
            item.add_marker(pytest.mark.slow)
        if "monitoring" in item.name.lower():
            item.add_marker(pytest.mark.integration)


class FakeHandle(DeviceHandle):
    """In-memory device handle that records every call made on it."""

    def __init__(self, name: str, device_type: DeviceType = DeviceType.POINTING,
                 running: bool = True, fail_start: bool = False, fail_stop: bool = False,
                 fail_read: bool = False):
        self._name = name
        self._device_type = device_type
        self.running = running
        self.fail_start = fail_start
        self.fail_stop = fail_stop
        self.fail_read = fail_read
        self.start_calls = 0
        self.stop_calls = 0
        self.release_calls = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def device_type(self) -> DeviceType:
        return self._device_type

    def is_running(self) -> bool:
        if self.fail_read:
            raise DeviceIoError(self._name, message=f"Cannot read state of '{self._name}'")
        return self.running

    def start(self) -> None:
        self.start_calls += 1
        if self.fail_start:
            raise DeviceIoError(self._name, 5)
        self.running = True

    def stop(self) -> None:
        self.stop_calls += 1
        if self.fail_stop:
            raise DeviceIoError(self._name, 5)
        self.running = False

    def release(self) -> None:
        self.release_calls += 1

    @property
    def device_calls(self) -> int:
        return self.start_calls + self.stop_calls


class FakeBackend(PlatformBackend):
    """Backend over a mutable list of FakeHandles."""

    def __init__(self, handles: Optional[List[FakeHandle]] = None):
        self.handles = list(handles or [])
        self.fail_enumerate = False
        self.fail_start_all = False
        self.enumerate_calls = 0
        self.start_all_calls: List[DeviceType] = []

    @property
    def platform_name(self) -> str:
        return "fake"

    def enumerate_devices(self) -> List[DeviceHandle]:
        self.enumerate_calls += 1
        if self.fail_enumerate:
            raise EnumerationError("Enumeration unavailable", platform="fake")
        return list(self.handles)

    def start_all(self, device_type: DeviceType = DeviceType.POINTING) -> None:
        self.start_all_calls.append(device_type)
        if self.fail_start_all:
            raise DeviceIoError("all pointing devices", 5)
        for handle in self.handles:
            if handle.device_type == device_type:
                handle.running = True

    def handle(self, name: str) -> FakeHandle:
        for handle in self.handles:
            if handle.name == name:
                return handle
        raise KeyError(name)

    def attach(self, handle: FakeHandle) -> None:
        self.handles.append(handle)

    def detach(self, name: str) -> None:
        self.handles = [handle for handle in self.handles if handle.name != name]


def live(name: str, running: bool = True, ordinal: int = 0) -> DeviceInfo:
    """Catalog-style DeviceInfo with a fake handle."""
    return DeviceInfo(name=name, handle=FakeHandle(name, running=running),
                      running=running, ignored=None, ordinal=ordinal)


def write_settings(path: Path, records: Dict[str, bool], tag: str = SETTINGS_TAG,
                   version: str = SETTINGS_VERSION) -> None:
    """Write a settings document as another process would."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {
        "tag": tag,
        "version": version,
        "last_modified": "2025-01-01T00:00:00",
        "devices": [{"name": name, "ignored": ignored} for name, ignored in records.items()],
    }
    tmp_path = path.with_name(path.name + ".writing")
    tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    os.replace(tmp_path, path)


def read_settings(path: Path) -> Dict[str, bool]:
    data = json.loads(path.read_text(encoding="utf-8"))
    return {entry["name"]: entry["ignored"] for entry in data["devices"]}


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep every test away from the real user configuration."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.delenv("IGNORETOUCHPAD_SETTINGS", raising=False)
    monkeypatch.delenv("IGNORETOUCHPAD_BACKEND", raising=False)
    monkeypatch.delenv("IGNORETOUCHPAD_LOG_LEVEL", raising=False)


@pytest.fixture
def reset_logging():
    """Undo IgnoreTouchpadLogger configuration after a test."""
    root_logger = logging.getLogger()
    level = root_logger.level
    IgnoreTouchpadLogger.reset()
    yield
    IgnoreTouchpadLogger.reset()
    root_logger.setLevel(level)


@pytest.fixture
def settings_path(tmp_path):
    """Path of a settings file that does not exist yet."""
    return tmp_path / "settings" / "IgnoreTouchpad.json"


@pytest.fixture
def touchpad():
    return FakeHandle("SynPS/2 Synaptics TouchPad")


@pytest.fixture
def mouse():
    return FakeHandle("Logitech USB Optical Mouse")


@pytest.fixture
def keyboard():
    return FakeHandle("AT Translated Set 2 keyboard", device_type=DeviceType.KEYBOARD)


@pytest.fixture
def backend(touchpad, mouse, keyboard):
    """Fake backend with a touchpad, a mouse and a keyboard attached."""
    return FakeBackend([touchpad, keyboard, mouse])


@pytest.fixture
def events():
    return EventManager()


@pytest.fixture
def store(settings_path, events):
    store = PreferenceStore(settings_path, events=events, poll_interval=0.05)
    yield store
    store.stop_monitoring()


@pytest.fixture
def manager(settings_path, backend):
    """Opened IgnoreTouchpad manager over the fake backend."""
    manager = IgnoreTouchpad(settings_path=settings_path, backend=backend, poll_interval=0.05)
    manager.open()
    yield manager
    manager.close()
