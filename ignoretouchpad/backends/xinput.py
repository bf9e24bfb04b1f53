"""
X11 input backend driven by the ``xinput`` command-line tool.

Only slave devices are reported; masters and the virtual XTEST devices that
the X server creates for itself are skipped.
"""

import logging
import re
import subprocess
from typing import List, Optional

from ..models import DeviceType
from .base import DeviceHandle, PlatformBackend
from .exceptions import DeviceIoError, EnumerationError

logger = logging.getLogger(__name__)

XINPUT_BIN = "xinput"
COMMAND_TIMEOUT = 10

_LIST_LINE = re.compile(
    r"^[\s⎡⎜⎣↳∼]*(?P<name>.*?)\s+id=(?P<id>\d+)\s+\[(?P<role>[^\]]*)\]"
)
_ENABLED_PROP = re.compile(r"^\s*Device Enabled \(\d+\):\s*(?P<value>\d)", re.MULTILINE)


def _run_xinput(*args: str, xinput_bin: str = XINPUT_BIN) -> subprocess.CompletedProcess:
    return subprocess.run(
        [xinput_bin, *args],
        capture_output=True,
        text=True,
        timeout=COMMAND_TIMEOUT
    )


def parse_list_output(output: str) -> List[dict]:
    """
    Parse ``xinput list --short`` into dicts with name, id and device_type.

    Args:
        output: Raw stdout of the command

    Returns:
        List[dict]: Slave devices in listing order
    """
    devices = []
    for line in output.splitlines():
        match = _LIST_LINE.match(line)
        if not match:
            continue
        role = " ".join(match.group("role").split())
        name = match.group("name").strip()
        if role.startswith("master") or "XTEST" in name:
            continue
        if "pointer" in role:
            device_type = DeviceType.POINTING
        elif "keyboard" in role:
            device_type = DeviceType.KEYBOARD
        else:
            device_type = DeviceType.OTHER
        devices.append({
            'name': name,
            'id': int(match.group("id")),
            'device_type': device_type,
        })
    return devices


class XInputDeviceHandle(DeviceHandle):
    """Handle for one X input slave device, addressed by its xinput id."""

    def __init__(self, device_id: int, name: str, device_type: DeviceType, xinput_bin: str = XINPUT_BIN):
        self.device_id = device_id
        self._name = name
        self._device_type = device_type
        self._xinput_bin = xinput_bin

    @property
    def name(self) -> str:
        return self._name

    @property
    def device_type(self) -> DeviceType:
        return self._device_type

    def is_running(self) -> bool:
        result = self._call("list-props")
        match = _ENABLED_PROP.search(result.stdout)
        if not match:
            raise DeviceIoError(self._name, message=f"No 'Device Enabled' property for '{self._name}'")
        return match.group("value") == "1"

    def start(self) -> None:
        self._call("enable")

    def stop(self) -> None:
        self._call("disable")

    def _call(self, action: str) -> subprocess.CompletedProcess:
        try:
            result = _run_xinput(action, str(self.device_id), xinput_bin=self._xinput_bin)
        except (OSError, subprocess.SubprocessError) as e:
            raise DeviceIoError(self._name, getattr(e, "errno", None), cause=e)
        if result.returncode != 0:
            raise DeviceIoError(
                self._name, result.returncode,
                message=f"xinput {action} {self.device_id} failed: {result.stderr.strip()}"
            )
        return result


class XInputBackend(PlatformBackend):
    """Input backend for X11 sessions."""

    def __init__(self, xinput_bin: Optional[str] = None):
        self._xinput_bin = xinput_bin or XINPUT_BIN

    @property
    def platform_name(self) -> str:
        return "xinput"

    def enumerate_devices(self) -> List[DeviceHandle]:
        """
        Enumerate X input slave devices.

        Raises:
            EnumerationError: If xinput is missing or fails
        """
        try:
            result = _run_xinput("list", "--short", xinput_bin=self._xinput_bin)
        except (OSError, subprocess.SubprocessError) as e:
            raise EnumerationError(f"Failed to run {self._xinput_bin}: {e}", platform="xinput", cause=e)
        if result.returncode != 0:
            raise EnumerationError(
                f"xinput list failed: {result.stderr.strip()}", platform="xinput"
            )

        return [
            XInputDeviceHandle(entry['id'], entry['name'], entry['device_type'], self._xinput_bin)
            for entry in parse_list_output(result.stdout)
        ]

    def start_all(self, device_type: DeviceType = DeviceType.POINTING) -> None:
        failures = []
        for handle in self.enumerate_devices():
            if handle.device_type != device_type:
                continue
            try:
                handle.start()
            except DeviceIoError as e:
                failures.append(e)
        if failures:
            first = failures[0]
            raise DeviceIoError(
                first.name, first.code,
                message=f"Failed to start {len(failures)} {device_type.value} device(s)",
                cause=first
            )
