from __future__ import annotations

from typing import Annotated

import typer

from wakemate.utils.logging import setup_logging

from . import config as config_cmd
from .commands.devices import register as register_devices
from .commands.diagnose import register as register_diagnose
from .commands.discover import register as register_discover
from .commands.info import register as register_info
from .commands.init import register as register_init
from .commands.mock import register as register_mock
from .commands.send import register as register_send
from .commands.status import register as register_status

app = typer.Typer(
    help="WakeMATE - wake, monitor and control computers on your LAN",
    no_args_is_help=True,
)

app.add_typer(config_cmd.app, name="config")

register_init(app)
register_info(app)
register_discover(app)
register_devices(app)
register_status(app)
register_send(app)
register_diagnose(app)
register_mock(app)


@app.callback(invoke_without_command=True)
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", help="Show version and exit"),
    ] = False,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Override the LOGLEVEL environment variable"),
    ] = None,
) -> None:
    """WakeMATE CLI."""
    setup_logging(log_level)

    if version:
        from importlib.metadata import version as get_version

        typer.echo(f"wakemate version {get_version('wakemate')}")
        raise typer.Exit()
