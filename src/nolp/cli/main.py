"""NOLP CLI - interactive serial terminal."""

from __future__ import annotations

import json
import sys

import click

from nolp.models.port import EncodingMode
from nolp.settings import Settings
from nolp.utils.logging import DEFAULT_LOG_FILE, setup_logging


def _build_form(port: str | None, baud: int | None, mode: str | None):
    from nolp.ui.menu import FieldIndex, MenuForm

    form = MenuForm()
    if port:
        form.set_port(port)
    if baud is not None:
        form.fields[FieldIndex.BAUD_RATE].value = str(baud)
    if mode:
        form.fields[FieldIndex.MODE].value = EncodingMode(mode).label
    return form


@click.group(invoke_without_command=True)
@click.option("--debug", is_flag=True, envvar="NOLP_DEBUG", help="Enable debug logging")
@click.option("--json-logs", is_flag=True, envvar="NOLP_JSON_LOGS", help="Write log records as JSON lines")
@click.option(
    "--log-file",
    default=DEFAULT_LOG_FILE,
    show_default=True,
    envvar="NOLP_LOG_FILE",
    help="Log destination; '-' for stderr",
)
@click.option(
    "--tick-ms",
    type=click.IntRange(min=10),
    default=100,
    show_default=True,
    envvar="NOLP_TICK_MS",
    help="Input wait and redraw interval",
)
@click.option(
    "--scrollback",
    type=click.IntRange(min=1),
    default=1000,
    show_default=True,
    envvar="NOLP_SCROLLBACK",
    help="Lines kept per session",
)
@click.option("--port", default=None, envvar="NOLP_PORT", help="Pre-fill the menu port field")
@click.option("--baud", type=click.IntRange(min=1), default=None, envvar="NOLP_BAUD", help="Pre-fill the menu baudrate")
@click.option(
    "--mode",
    type=click.Choice([m.value for m in EncodingMode], case_sensitive=False),
    default=None,
    envvar="NOLP_MODE",
    help="Pre-fill the menu encoding mode",
)
@click.pass_context
def cli(
    ctx: click.Context,
    debug: bool,
    json_logs: bool,
    log_file: str,
    tick_ms: int,
    scrollback: int,
    port: str | None,
    baud: int | None,
    mode: str | None,
) -> None:
    """NOLP - serial terminal for talking to embedded devices."""
    ctx.ensure_object(dict)
    settings = Settings(tick_ms=tick_ms, scrollback_capacity=scrollback, log_file=log_file)
    ctx.obj["settings"] = settings
    setup_logging(level="DEBUG" if debug else "WARNING", json_output=json_logs, log_file=log_file)

    if ctx.invoked_subcommand is not None:
        return

    from nolp.app import Application
    from nolp.exceptions import TerminalError
    from nolp.transport import PySerialLinkFactory
    from nolp.ui.terminal import CursesTerminal

    app = Application(
        settings,
        PySerialLinkFactory(),
        form=_build_form(port, baud, mode.lower() if mode else None),
    )
    try:
        with CursesTerminal() as terminal:
            app.run(terminal)
    except TerminalError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@cli.command("list-ports")
@click.option("--json-output", is_flag=True, help="Output in JSON format")
def list_ports(json_output: bool) -> None:
    """List serial ports known to the OS."""
    from nolp.core.discovery import list_devices

    devices = list_devices()

    if json_output:
        click.echo(json.dumps([d.model_dump() for d in devices], indent=2))
        return
    if not devices:
        click.echo("No devices available.")
        return
    click.echo(f"Found {len(devices)} device(s):")
    for dev in devices:
        line = f"  {dev.device}"
        if dev.description and dev.description != "n/a":
            line += f"  {dev.description}"
        if dev.hwid and dev.hwid != "n/a":
            line += f"  [{dev.hwid}]"
        click.echo(line)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
