"""
Command-line interface for IgnoreTouchpad.

This module provides the ``ignoretouchpad`` command: one-shot commands for
listing, enabling and disabling pointing devices, plus an interactive mode
that accepts the same commands line by line.
"""

import json
import shlex
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence

import click

from . import __version__
from .backends import ConfigurationError, DeviceDetector, UnsupportedPlatformError
from .logging_config import setup_logging
from .manager import IgnoreTouchpad, ResultStatus
from .models import DeviceInfo
from .reconciler import MergedView


USAGE = """\
This utility disables or enables a pointing device (mouse or touchpad). Its aim
is to ignore accidental clicks on the touchpad when an external pointing device
is connected to a notebook.
It can run in either interactive or non-interactive mode.

Supported commands (in both modes, unless stated otherwise):
  list         - Build and print a numbered list of the pointing input devices.
                 Note: this command recreates the list of devices and updates it.
  refresh      - Equals to "list".
  enable #     - Enable device number #. The number comes from the "list" command.
                 If the device is already enabled, nothing happens.
  e # or E #   - Equals to "enable #".
  disable #    - Disable device number #. The number comes from the "list" command.
                 If the device is already disabled, nothing happens.
                 The last active pointing device is never disabled.
  d # or D #   - Equals to "disable #".
  enable_all   - Immediately enable all pointing devices.
  EA or ea     - Equals to "enable_all".
  help or ?    - Display the list of available commands.
  interactive  - (Command line only) Enter interactive mode.
  quit or exit - (Interactive mode only) Quit interactive mode.
"""


class CommandType(Enum):
    """Commands understood by both the command line and interactive mode."""
    LIST = "list"
    ENABLE = "enable"
    DISABLE = "disable"
    ENABLE_ALL = "enable_all"
    HELP = "help"
    INTERACTIVE = "interactive"
    QUIT = "quit"
    UNKNOWN = "unknown"


ALIASES = {
    "list": CommandType.LIST,
    "refresh": CommandType.LIST,
    "enable": CommandType.ENABLE,
    "e": CommandType.ENABLE,
    "E": CommandType.ENABLE,
    "disable": CommandType.DISABLE,
    "d": CommandType.DISABLE,
    "D": CommandType.DISABLE,
    "enable_all": CommandType.ENABLE_ALL,
    "ea": CommandType.ENABLE_ALL,
    "EA": CommandType.ENABLE_ALL,
    "help": CommandType.HELP,
    "?": CommandType.HELP,
    "interactive": CommandType.INTERACTIVE,
    "quit": CommandType.QUIT,
    "exit": CommandType.QUIT,
}


@dataclass(frozen=True)
class ParsedCommand:
    type: CommandType
    ordinal: Optional[int] = None
    error: Optional[str] = None


def parse_command(args: Sequence[str]) -> ParsedCommand:
    """
    Turn a tokenized command line into a ParsedCommand.

    An empty line is a request for help. Enable and disable take exactly one
    integer argument; anything else parses as UNKNOWN with an error message.
    """
    if not args:
        return ParsedCommand(CommandType.HELP)

    action = args[0]
    command_type = ALIASES.get(action)
    if command_type is None:
        return ParsedCommand(CommandType.UNKNOWN, error=f"Unknown command '{action}'. Type 'help'.")

    if command_type in (CommandType.ENABLE, CommandType.DISABLE):
        if len(args) != 2:
            return ParsedCommand(CommandType.UNKNOWN, error=f"'{action}' takes exactly one device number")
        try:
            ordinal = int(args[1])
        except ValueError:
            return ParsedCommand(CommandType.UNKNOWN, error=f"'{args[1]}' is not a device number")
        return ParsedCommand(command_type, ordinal=ordinal)

    return ParsedCommand(command_type)


def format_device(device: DeviceInfo, locked: bool = False) -> str:
    """Render one line of the device list."""
    if device.is_ghost:
        state = "not attached"
        if device.ignored:
            state += ", ignored"
    else:
        state = "enabled" if device.running else "disabled"
        if device.has_discrepancy:
            state += " (saved as ignored)" if device.ignored else " (saved as active)"
        if locked:
            state += " [last active device]"
    return f" {device.ordinal}. {device.name} - {state}"


def render_view(view: MergedView, manager: Optional[IgnoreTouchpad] = None) -> List[str]:
    """Render the merged view the way ``list`` prints it."""
    if not len(view):
        return ["No pointing devices found."]
    lines = ["Connected pointing devices:"]
    for device in view:
        locked = bool(manager is not None and device.is_live and device.running
                      and not manager.can_disable(device.ordinal))
        lines.append(format_device(device, locked))
    return lines


def view_to_json(view: MergedView) -> str:
    device_data = []
    for device in view:
        device_data.append({
            'ordinal': device.ordinal,
            'name': device.name,
            'state': device.state.value,
            'attached': device.is_live,
            'running': device.running,
            'ignored': bool(device.ignored),
            'discrepancy': device.has_discrepancy,
        })
    return json.dumps(device_data, indent=2)


def execute_command(manager: IgnoreTouchpad, command: ParsedCommand,
                    output_format: str = "table", refresh: bool = False) -> int:
    """
    Run one parsed command against an opened manager.

    Args:
        manager: Opened IgnoreTouchpad manager
        command: Command to run
        output_format: 'table' or 'json' for the list command
        refresh: Rebuild the view before resolving ordinals

    Returns:
        int: Exit code, 0 on success and 1 on failure
    """
    if command.type == CommandType.LIST:
        view = manager.refresh() if refresh else manager.view
        if output_format == 'json':
            click.echo(view_to_json(view))
        else:
            for line in render_view(view, manager):
                click.echo(line)
        return 0

    if command.type == CommandType.HELP:
        click.echo(USAGE)
        return 0

    if command.type == CommandType.UNKNOWN:
        click.echo(command.error or "Unknown command. Type 'help'.", err=True)
        return 1

    if command.type in (CommandType.INTERACTIVE, CommandType.QUIT):
        click.echo(f"'{command.type.value}' is not available here", err=True)
        return 1

    if refresh:
        manager.refresh()

    if command.type == CommandType.ENABLE:
        result = manager.enable(command.ordinal)
    elif command.type == CommandType.DISABLE:
        result = manager.disable(command.ordinal)
    else:
        result = manager.enable_all()

    if result.status == ResultStatus.OK:
        click.echo(result.message)
    elif result.status == ResultStatus.NO_CHANGE:
        click.echo(f"{result.message}, nothing to do")
    elif result.status == ResultStatus.LAST_DEVICE_GUARD:
        click.echo(result.message, err=True)
    else:
        click.echo(f"Error: {result.message}", err=True)

    return 1 if result.failed else 0


def run_interactive(manager: IgnoreTouchpad) -> None:
    """
    Read commands from stdin until EOF, ``quit`` or ``exit``.

    The device view is rebuilt before every command, so ordinals always
    refer to the list as it is right now.
    """
    def on_reload(view: MergedView) -> None:
        click.echo("\nSettings changed on disk, device list reloaded.")

    manager.start_monitoring(on_reload)
    stdin = click.get_text_stream('stdin')
    try:
        while True:
            click.echo("> ", nl=False)
            line = stdin.readline()
            if not line:
                click.echo()
                break
            try:
                args = shlex.split(line)
            except ValueError as e:
                click.echo(f"Could not parse command: {e}", err=True)
                continue
            if not args:
                continue

            command = parse_command(args)
            if command.type == CommandType.QUIT:
                break
            if command.type == CommandType.INTERACTIVE:
                click.echo("Already in interactive mode.")
                continue
            execute_command(manager, command, refresh=True)
    finally:
        manager.stop_monitoring()


def _open_manager(ctx: click.Context) -> IgnoreTouchpad:
    options = ctx.obj or {}
    try:
        manager = IgnoreTouchpad(
            settings_path=options.get('settings_path'),
            backend=options.get('backend'),
        )
    except (ConfigurationError, UnsupportedPlatformError) as e:
        click.echo(f"Device access unavailable: {e}", err=True)
        ctx.exit(1)
    ctx.call_on_close(manager.close)
    manager.open()
    return manager


def _run_one(ctx: click.Context, command: ParsedCommand, output_format: str = "table") -> None:
    manager = _open_manager(ctx)
    ctx.exit(execute_command(manager, command, output_format))


class AliasedGroup(click.Group):
    """Group that resolves the short command aliases (e, D, ea, ?, ...)."""

    def get_command(self, ctx, cmd_name):
        command = super().get_command(ctx, cmd_name)
        if command is not None:
            return command
        command_type = ALIASES.get(cmd_name)
        if command_type is None:
            return None
        return super().get_command(ctx, command_type.value)

    def resolve_command(self, ctx, args):
        _, command, args = super().resolve_command(ctx, args)
        return (command.name if command else None), command, args


@click.group(cls=AliasedGroup, invoke_without_command=True)
@click.version_option(version=__version__)
@click.option(
    '--settings-path',
    type=click.Path(dir_okay=False),
    envvar='IGNORETOUCHPAD_SETTINGS',
    help='Custom path for the settings file'
)
@click.option(
    '--backend',
    type=click.Choice(DeviceDetector.BACKEND_NAMES),
    default='auto',
    envvar='IGNORETOUCHPAD_BACKEND',
    show_default=True,
    help='Device access backend'
)
@click.option(
    '--log-level',
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], case_sensitive=False),
    default='INFO',
    envvar='IGNORETOUCHPAD_LOG_LEVEL',
    help='Logging level'
)
@click.option('--verbose', '-v', is_flag=True, help='Also print log messages to stderr')
@click.pass_context
def cli(ctx, settings_path: Optional[str], backend: str, log_level: str, verbose: bool):
    """
    IgnoreTouchpad - enable or disable pointing devices and remember the choice.

    Disable the touchpad while an external mouse is attached; the choice is
    saved and shown again the next time the device list is built.
    """
    log_file = Path(settings_path).parent / "ignoretouchpad.log" if settings_path else None
    setup_logging(log_level=log_level, log_file=log_file, console_output=verbose)

    ctx.ensure_object(dict)
    ctx.obj['settings_path'] = settings_path
    ctx.obj['backend'] = backend

    if ctx.invoked_subcommand is None:
        click.echo(USAGE)


@cli.command(name='list')
@click.option(
    '--format',
    'output_format',
    type=click.Choice(['table', 'json']),
    default='table',
    help='Output format for device list'
)
@click.pass_context
def list_devices(ctx, output_format: str):
    """
    Build and print a numbered list of the pointing devices (alias: refresh).

    Devices that are remembered but not attached are listed after the
    attached ones and cannot be enabled or disabled.
    """
    _run_one(ctx, ParsedCommand(CommandType.LIST), output_format)


@cli.command()
@click.argument('number', type=int)
@click.pass_context
def enable(ctx, number: int):
    """Enable device NUMBER from the list (aliases: e, E)."""
    _run_one(ctx, ParsedCommand(CommandType.ENABLE, ordinal=number))


@cli.command()
@click.argument('number', type=int)
@click.pass_context
def disable(ctx, number: int):
    """Disable device NUMBER from the list (aliases: d, D)."""
    _run_one(ctx, ParsedCommand(CommandType.DISABLE, ordinal=number))


@cli.command(name='enable_all')
@click.pass_context
def enable_all(ctx):
    """Enable all pointing devices (aliases: ea, EA)."""
    _run_one(ctx, ParsedCommand(CommandType.ENABLE_ALL))


@cli.command(name='help')
def help_command():
    """Display the list of available commands (alias: ?)."""
    click.echo(USAGE)


@cli.command()
@click.pass_context
def interactive(ctx):
    """Enter interactive mode."""
    manager = _open_manager(ctx)
    run_interactive(manager)


def main(args=None):
    """Main entry point for the CLI."""
    cli(args)


if __name__ == '__main__':
    main()
