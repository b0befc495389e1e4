from __future__ import annotations

import typer
from rich.console import Console

from wakemate.cli.common import (
    build_database,
    load_settings_or_exit,
    resolve_config_path_or_exit,
)


def register(app: typer.Typer) -> None:
    @app.command()
    def info() -> None:
        """Show data directory, configuration and registry statistics."""
        settings = load_settings_or_exit()
        db = build_database(settings)
        devices = db.load_devices()
        server_ip = db.load_server_address()

        config_path, config_exists = resolve_config_path_or_exit(allow_missing=True)

        console = Console()

        console.print("[bold]WakeMATE Info[/bold]\n")
        console.print(f"Data directory: {db.path}")
        console.print(f"Device registry: {db.devices_path}")
        console.print(f"Config file: {config_path if config_exists else 'defaults'}")

        discovery = settings.discovery
        console.print("\n[bold]Configuration[/bold]")
        console.print(f"Server port: {settings.server.port}")
        console.print(
            f"Discovery range: {discovery.subnet_prefix}{discovery.first_host}"
            f"-{discovery.last_host} (timeout {discovery.timeout:g}s)"
        )
        console.print(f"Status interval: {settings.sync.interval:g}s")

        console.print("\n[bold]Statistics[/bold]")
        online = sum(1 for device in devices if device.online)
        console.print(f"Devices: {len(devices)} ({online} online at last check)")
        if server_ip:
            console.print(f"Companion server: {server_ip}")
        else:
            console.print("Companion server: not discovered yet")
