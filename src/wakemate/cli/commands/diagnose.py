from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from wakemate.cli.common import build_database, load_settings_or_exit, run_or_exit
from wakemate.core import run_diagnostics


def register(app: typer.Typer) -> None:
    @app.command()
    def diagnose(
        ip: Annotated[
            str | None,
            typer.Argument(help="Server address; defaults to the discovered one"),
        ] = None,
        timeout: Annotated[
            float, typer.Option("--timeout", help="Seconds per check")
        ] = 3.0,
    ) -> None:
        """Check that the companion server answers on both endpoints."""
        console = Console()
        settings = load_settings_or_exit()

        if ip is None:
            ip = build_database(settings).load_server_address()
            if ip is None:
                console.print("No server address known. Run 'wakemate discover' first.")
                raise typer.Exit(1)

        port = settings.server.port
        console.print(f"Running diagnostics against {ip}:{port}...")
        report = run_or_exit(run_diagnostics(ip, port, timeout))

        table = Table()
        table.add_column("Check", style="cyan")
        table.add_column("Result")
        table.add_column("Details")
        for step in report.steps:
            result = "[green]ok[/green]" if step.success else "[red]failed[/red]"
            table.add_row(step.name, result, step.message)
        console.print(table)

        if not report.overall:
            raise typer.Exit(1)
        console.print("\n[green]All checks passed[/green]")
