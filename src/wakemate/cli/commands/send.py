from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console

from wakemate.cli.common import (
    build_database,
    load_settings_or_exit,
    parse_params,
    run_or_exit,
)
from wakemate.errors import DeviceNotFoundError
from wakemate.models import ACTION_ALIASES, ACTION_NAMES
from wakemate.services import WakeMate


def register(app: typer.Typer) -> None:
    @app.command()
    def send(
        action: Annotated[
            str,
            typer.Argument(
                help=f"One of: {', '.join([*ACTION_NAMES, *ACTION_ALIASES])}"
            ),
        ],
        device: Annotated[str, typer.Argument(help="Device id, name or IP")],
        param: Annotated[
            list[str] | None,
            typer.Option("--param", "-p", help="Action parameter as key=value"),
        ] = None,
    ) -> None:
        """Send an action to a device through the companion server.

        Power actions other than wake refresh the device status before the
        command exits; the delayed recheck after wake is left to `watch`.
        """
        console = Console()
        settings = load_settings_or_exit()
        params = parse_params(param)

        service = WakeMate(settings, build_database(settings))
        try:
            target = service.registry.find(device)
        except DeviceNotFoundError as exc:
            console.print(f"[yellow]![/yellow] {exc}")
            raise typer.Exit(1) from exc

        async def _send() -> bool:
            await service.start(sync=False, scan=False)
            try:
                return await service.perform(
                    action, target.id, params, await_recheck=True
                )
            finally:
                await service.stop()

        if run_or_exit(_send()):
            console.print(f"[green]✓[/green] '{action}' sent to {target.name}")
        else:
            console.print(f"[red]✗[/red] '{action}' failed on {target.name}")
            raise typer.Exit(1)
