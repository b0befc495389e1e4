from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from wakemate.config import DEFAULT_PORT
from wakemate.core import run_mock_server


def register(app: typer.Typer) -> None:
    @app.command()
    def mock(
        name: str = typer.Option("mock-companion", "--name", "-n", help="Server name"),
        host: str = typer.Option("0.0.0.0", "--host", help="Interface to bind"),
        port: int = typer.Option(
            DEFAULT_PORT, "--port", "-p", help="Port to listen on"
        ),
    ) -> None:
        """Run a mock companion server for development."""
        console = Console()
        console.print(f"Starting mock companion server '{name}' on {host}:{port}...")
        console.print("Press Ctrl+C to stop.\n")

        try:
            asyncio.run(run_mock_server(host=host, port=port, name=name))
        except KeyboardInterrupt:
            console.print("\n[green]Mock server stopped.[/green]")
