from __future__ import annotations

import asyncio
import logging

import typer
from rich.console import Console

from wakemate.cli.common import (
    build_database,
    device_table,
    load_settings_or_exit,
    run_or_exit,
)
from wakemate.core import DeviceRegistry, StatusSynchronizer

logger = logging.getLogger(__name__)


def register(app: typer.Typer) -> None:
    @app.command()
    def status() -> None:
        """Probe every registered device once and show the result."""
        console = Console()
        settings = load_settings_or_exit()
        registry = DeviceRegistry(build_database(settings))

        if not len(registry):
            console.print("No devices registered.")
            return

        synchronizer = StatusSynchronizer(
            registry, settings.sync, settings.server.port
        )
        console.print(f"Checking {len(registry)} device(s)...")
        changed = run_or_exit(synchronizer.run_once())

        console.print(device_table(registry.list_devices()))
        if changed:
            console.print("[dim]Registry updated with new statuses[/dim]")

    @app.command()
    def watch() -> None:
        """Keep device statuses up to date until interrupted."""
        console = Console()
        settings = load_settings_or_exit()
        registry = DeviceRegistry(build_database(settings))
        synchronizer = StatusSynchronizer(
            registry, settings.sync, settings.server.port
        )

        def _on_change(reg: DeviceRegistry) -> None:
            console.print(device_table(reg.list_devices()))

        registry.subscribe(_on_change)
        console.print(device_table(registry.list_devices()))
        console.print(
            f"Watching {len(registry)} device(s) every "
            f"{settings.sync.interval:g}s. Press Ctrl+C to stop.\n"
        )

        async def _run() -> None:
            synchronizer.start()
            try:
                await asyncio.Event().wait()
            finally:
                await synchronizer.stop()

        try:
            asyncio.run(_run())
        except KeyboardInterrupt:
            console.print("\n[green]Stopped.[/green]")
