"""
Tests for the IgnoreTouchpad CLI.

This module tests command parsing, list rendering, exit codes and the
interactive mode, using a real manager over a fake backend where state
matters and a mocked manager elsewhere.
"""

import json
from unittest.mock import Mock, patch

import pytest
from click.testing import CliRunner

from ignoretouchpad.cli import (
    CommandType,
    ParsedCommand,
    USAGE,
    cli,
    execute_command,
    format_device,
    parse_command,
    render_view,
)
from ignoretouchpad.manager import CommandResult, IgnoreTouchpad, ResultStatus
from ignoretouchpad.models import DeviceInfo

from conftest import FakeHandle, read_settings


@pytest.fixture(autouse=True)
def no_logging_setup():
    """Keep CLI invocations from reconfiguring the root logger."""
    with patch("ignoretouchpad.cli.setup_logging") as mock_setup:
        yield mock_setup


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def real_manager(backend):
    """Patch the CLI to build managers over the fake backend."""
    fake_backend = backend
    created = []

    def factory(settings_path=None, backend=None):
        manager = IgnoreTouchpad(settings_path=settings_path, backend=fake_backend)
        created.append(manager)
        return manager

    with patch("ignoretouchpad.cli.IgnoreTouchpad", side_effect=factory):
        yield created


def invoke(runner, settings_path, *args, **kwargs):
    return runner.invoke(cli, ["--settings-path", str(settings_path), *args], **kwargs)


class TestParseCommand:
    """Test cases for command parsing."""

    @pytest.mark.parametrize("args,expected", [
        (["list"], CommandType.LIST),
        (["refresh"], CommandType.LIST),
        (["enable_all"], CommandType.ENABLE_ALL),
        (["ea"], CommandType.ENABLE_ALL),
        (["EA"], CommandType.ENABLE_ALL),
        (["help"], CommandType.HELP),
        (["?"], CommandType.HELP),
        (["interactive"], CommandType.INTERACTIVE),
        (["quit"], CommandType.QUIT),
        (["exit"], CommandType.QUIT),
        ([], CommandType.HELP),
    ])
    def test_simple_commands(self, args, expected):
        assert parse_command(args).type == expected

    @pytest.mark.parametrize("action", ["enable", "e", "E"])
    def test_enable_aliases(self, action):
        assert parse_command([action, "3"]) == ParsedCommand(CommandType.ENABLE, ordinal=3)

    @pytest.mark.parametrize("action", ["disable", "d", "D"])
    def test_disable_aliases(self, action):
        assert parse_command([action, "0"]) == ParsedCommand(CommandType.DISABLE, ordinal=0)

    def test_missing_number(self):
        command = parse_command(["disable"])

        assert command.type == CommandType.UNKNOWN
        assert "exactly one device number" in command.error

    def test_not_a_number(self):
        command = parse_command(["e", "first"])

        assert command.type == CommandType.UNKNOWN
        assert "'first' is not a device number" == command.error

    def test_unknown_command(self):
        command = parse_command(["frobnicate"])

        assert command.type == CommandType.UNKNOWN
        assert "Type 'help'" in command.error


class TestRendering:
    """Test cases for list rendering."""

    def test_format_live_devices(self):
        handle = FakeHandle("Touchpad")

        enabled = DeviceInfo("Touchpad", handle, running=True, ignored=False, ordinal=0)
        disabled = DeviceInfo("Touchpad", handle, running=False, ignored=True, ordinal=1)

        assert format_device(enabled) == " 0. Touchpad - enabled"
        assert format_device(disabled) == " 1. Touchpad - disabled"

    def test_format_discrepancy(self):
        handle = FakeHandle("Touchpad")

        stale = DeviceInfo("Touchpad", handle, running=True, ignored=True, ordinal=0)

        assert format_device(stale) == " 0. Touchpad - enabled (saved as ignored)"

    def test_format_ghost(self):
        ghost = DeviceInfo("Old Mouse", None, running=False, ignored=True, ordinal=2)

        assert format_device(ghost) == " 2. Old Mouse - not attached, ignored"

    def test_format_locked(self):
        handle = FakeHandle("Mouse")
        device = DeviceInfo("Mouse", handle, running=True, ignored=False, ordinal=0)

        assert format_device(device, locked=True) == " 0. Mouse - enabled [last active device]"

    def test_render_empty_view(self):
        from ignoretouchpad.reconciler import MergedView

        assert render_view(MergedView()) == ["No pointing devices found."]


class TestCLI:
    """Test cases for the command group."""

    def test_cli_version(self, runner):
        result = runner.invoke(cli, ['--version'])

        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_no_command_prints_usage(self, runner):
        result = runner.invoke(cli, [])

        assert result.exit_code == 0
        assert "interactive  - (Command line only)" in result.output

    @pytest.mark.parametrize("name", ["help", "?"])
    def test_help_command(self, runner, name):
        result = runner.invoke(cli, [name])

        assert result.exit_code == 0
        assert result.output.strip() == USAGE.strip()

    def test_unknown_command_is_usage_error(self, runner):
        result = runner.invoke(cli, ['frobnicate'])

        assert result.exit_code == 2

    def test_bad_number_is_usage_error(self, runner):
        result = runner.invoke(cli, ['disable', 'first'])

        assert result.exit_code == 2

    def test_unknown_backend_is_usage_error(self, runner):
        result = runner.invoke(cli, ['--backend', 'wayland', 'list'])

        assert result.exit_code == 2

    def test_logging_options(self, runner, no_logging_setup, tmp_path):
        runner.invoke(cli, ['--settings-path', str(tmp_path / "s.json"), '--log-level', 'debug',
                            '--verbose', 'help'])

        no_logging_setup.assert_called_once_with(
            log_level='DEBUG', log_file=tmp_path / "ignoretouchpad.log", console_output=True
        )

    @patch("ignoretouchpad.cli.IgnoreTouchpad")
    def test_options_from_environment(self, mock_class, runner, tmp_path):
        manager = mock_class.return_value
        manager.view = []
        env = {
            "IGNORETOUCHPAD_SETTINGS": str(tmp_path / "env.json"),
            "IGNORETOUCHPAD_BACKEND": "udev",
        }

        result = runner.invoke(cli, ['list'], env=env)

        assert result.exit_code == 0
        mock_class.assert_called_once_with(settings_path=str(tmp_path / "env.json"), backend="udev")

    @patch("ignoretouchpad.cli.IgnoreTouchpad")
    def test_unsupported_platform(self, mock_class, runner):
        from ignoretouchpad.backends import UnsupportedPlatformError

        mock_class.side_effect = UnsupportedPlatformError("Unsupported platform: darwin", platform="darwin")

        result = runner.invoke(cli, ['list'])

        assert result.exit_code == 1
        assert "Device access unavailable" in result.output


class TestListCommand:
    """Test cases for list/refresh against a fake backend."""

    def test_list_table(self, runner, real_manager, settings_path):
        result = invoke(runner, settings_path, 'list')

        assert result.exit_code == 0
        assert result.output.splitlines() == [
            "Connected pointing devices:",
            " 0. SynPS/2 Synaptics TouchPad - enabled",
            " 1. Logitech USB Optical Mouse - enabled",
        ]

    def test_refresh_alias(self, runner, real_manager, settings_path):
        result = invoke(runner, settings_path, 'refresh')

        assert result.exit_code == 0
        assert "Connected pointing devices:" in result.output

    def test_list_json(self, runner, real_manager, settings_path):
        result = invoke(runner, settings_path, 'list', '--format', 'json')

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data[0] == {
            'ordinal': 0,
            'name': "SynPS/2 Synaptics TouchPad",
            'state': "enabled",
            'attached': True,
            'running': True,
            'ignored': False,
            'discrepancy': False,
        }

    def test_list_marks_last_active_device(self, runner, real_manager, settings_path, touchpad):
        touchpad.running = False

        result = invoke(runner, settings_path, 'list')

        assert " 1. Logitech USB Optical Mouse - enabled [last active device]" in result.output

    def test_list_shows_ghosts(self, runner, real_manager, settings_path, backend):
        invoke(runner, settings_path, 'list')
        backend.detach("Logitech USB Optical Mouse")

        result = invoke(runner, settings_path, 'list')

        assert " 1. Logitech USB Optical Mouse - not attached" in result.output


class TestToggleCommands:
    """Test cases for enable/disable/enable_all exit codes and output."""

    @pytest.mark.parametrize("alias", ["disable", "d", "D"])
    def test_disable(self, runner, real_manager, settings_path, touchpad, alias):
        result = invoke(runner, settings_path, alias, '0')

        assert result.exit_code == 0
        assert "'SynPS/2 Synaptics TouchPad' disabled" in result.output
        assert touchpad.running is False
        assert read_settings(settings_path)["SynPS/2 Synaptics TouchPad"] is True

    @pytest.mark.parametrize("alias", ["enable", "e", "E"])
    def test_enable(self, runner, real_manager, settings_path, touchpad, alias):
        invoke(runner, settings_path, 'disable', '0')

        result = invoke(runner, settings_path, alias, '0')

        assert result.exit_code == 0
        assert touchpad.running is True
        assert read_settings(settings_path)["SynPS/2 Synaptics TouchPad"] is False

    def test_enable_running_device_is_no_change(self, runner, real_manager, settings_path):
        result = invoke(runner, settings_path, 'enable', '1')

        assert result.exit_code == 0
        assert "already enabled, nothing to do" in result.output

    def test_last_device_guard_exits_zero(self, runner, real_manager, settings_path, mouse):
        invoke(runner, settings_path, 'disable', '0')

        result = invoke(runner, settings_path, 'disable', '1')

        assert result.exit_code == 0
        assert "last active pointing device" in result.output
        assert mouse.running is True

    def test_unknown_ordinal_exits_one(self, runner, real_manager, settings_path):
        result = invoke(runner, settings_path, 'enable', '9')

        assert result.exit_code == 1
        assert "No device number 9" in result.output

    def test_io_error_exits_one(self, runner, real_manager, settings_path, touchpad):
        touchpad.fail_stop = True

        result = invoke(runner, settings_path, 'disable', '0')

        assert result.exit_code == 1
        assert "Error:" in result.output

    @pytest.mark.parametrize("alias", ["enable_all", "ea", "EA"])
    def test_enable_all(self, runner, real_manager, settings_path, backend, touchpad, alias):
        invoke(runner, settings_path, 'disable', '0')

        result = invoke(runner, settings_path, alias)

        assert result.exit_code == 0
        assert "All pointing devices enabled" in result.output
        assert touchpad.running is True
        assert len(backend.start_all_calls) == 1


class TestInteractive:
    """Test cases for interactive mode."""

    def test_session(self, runner, real_manager, settings_path, touchpad):
        result = invoke(runner, settings_path, 'interactive',
                        input="list\nd 0\nfrobnicate\ne 0\nquit\nlist\n")

        assert result.exit_code == 0
        assert result.output.count("Connected pointing devices:") == 1
        assert "'SynPS/2 Synaptics TouchPad' disabled" in result.output
        assert "Unknown command 'frobnicate'" in result.output
        assert "'SynPS/2 Synaptics TouchPad' enabled" in result.output
        assert touchpad.running is True

    def test_ends_on_eof(self, runner, real_manager, settings_path):
        result = invoke(runner, settings_path, 'interactive', input="help\n")

        assert result.exit_code == 0
        assert "Supported commands" in result.output

    def test_blank_lines_and_bad_quotes(self, runner, real_manager, settings_path):
        result = invoke(runner, settings_path, 'interactive', input='\n   \nd "0\nexit\n')

        assert result.exit_code == 0
        assert "Could not parse command" in result.output

    def test_nested_interactive(self, runner, real_manager, settings_path):
        result = invoke(runner, settings_path, 'interactive', input="interactive\nquit\n")

        assert "Already in interactive mode." in result.output

    def test_new_device_is_numbered_last(self, runner, real_manager, settings_path, backend):
        backend.attach(FakeHandle("Trackball"))

        result = invoke(runner, settings_path, 'interactive', input="d 2\nquit\n")

        assert "'Trackball' disabled" in result.output

    def test_monitoring_stops_on_exit(self, runner, real_manager, settings_path):
        result = invoke(runner, settings_path, 'interactive', input="quit\n")

        assert result.exit_code == 0
        assert len(real_manager) == 1
        assert not real_manager[0].store.watch_active


class TestExecuteCommand:
    """Test cases for execute_command with a mocked manager."""

    def test_guard_result(self):
        manager = Mock()
        manager.disable.return_value = CommandResult(ResultStatus.LAST_DEVICE_GUARD, "Refusing to disable 'Mouse'")

        assert execute_command(manager, ParsedCommand(CommandType.DISABLE, ordinal=0)) == 0

    def test_refresh_before_toggle(self):
        manager = Mock()
        manager.enable.return_value = CommandResult(ResultStatus.OK, "'Mouse' enabled")

        execute_command(manager, ParsedCommand(CommandType.ENABLE, ordinal=1), refresh=True)

        manager.refresh.assert_called_once_with()
        manager.enable.assert_called_once_with(1)

    def test_quit_outside_interactive(self):
        assert execute_command(Mock(), ParsedCommand(CommandType.QUIT)) == 1

    def test_unknown(self):
        assert execute_command(Mock(), ParsedCommand(CommandType.UNKNOWN, error="bad")) == 1
