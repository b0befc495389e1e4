from __future__ import annotations

import typer
from rich.console import Console

from wakemate.cli.common import build_database, device_table, load_settings_or_exit
from wakemate.core import DeviceRegistry
from wakemate.errors import DeviceNotFoundError

app = typer.Typer(no_args_is_help=True, help="Manage the local device registry")


def _open_registry() -> DeviceRegistry:
    settings = load_settings_or_exit()
    return DeviceRegistry(build_database(settings))


def _fail(console: Console, message: str) -> typer.Exit:
    console.print(f"[yellow]![/yellow] {message}")
    return typer.Exit(1)


@app.command("list")
def list_devices() -> None:
    """List registered devices with their last known status."""
    registry = _open_registry()
    console = Console()

    devices = registry.list_devices()
    if not devices:
        console.print("No devices registered.")
        console.print("Use 'wakemate devices add NAME MAC IP' to register one.")
        return

    console.print(device_table(devices))


@app.command("add")
def add_device(
    name: str = typer.Argument(..., help="Display name"),
    mac: str = typer.Argument(..., help="MAC address, e.g. AA:BB:CC:DD:EE:FF"),
    ip: str = typer.Argument(..., help="IPv4 address"),
) -> None:
    """Register a new device."""
    registry = _open_registry()
    console = Console()
    try:
        device = registry.add(name, mac, ip)
    except ValueError as exc:
        raise _fail(console, str(exc)) from exc
    console.print(
        f"[green]✓[/green] Added '{device.name}' ({device.ip}) as {device.id}"
    )


@app.command("edit")
def edit_device(
    device: str = typer.Argument(..., help="Device id, name or IP"),
    name: str | None = typer.Option(None, "--name", help="New display name"),
    mac: str | None = typer.Option(None, "--mac", help="New MAC address"),
    ip: str | None = typer.Option(None, "--ip", help="New IPv4 address"),
) -> None:
    """Change the name or addresses of a device."""
    registry = _open_registry()
    console = Console()

    patch = {
        key: value
        for key, value in (("name", name), ("mac", mac), ("ip", ip))
        if value is not None
    }
    if not patch:
        raise _fail(console, "Nothing to change; pass --name, --mac or --ip")
    try:
        current = registry.find(device)
        updated = registry.update(current.id, **patch)
    except (DeviceNotFoundError, ValueError) as exc:
        raise _fail(console, str(exc)) from exc
    console.print(f"[green]✓[/green] Updated '{updated.name}'")


@app.command("remove")
def remove_device(
    device: str = typer.Argument(..., help="Device id, name or IP"),
) -> None:
    """Remove a device from the registry."""
    registry = _open_registry()
    console = Console()
    try:
        removed = registry.remove(registry.find(device).id)
    except DeviceNotFoundError as exc:
        raise _fail(console, str(exc)) from exc
    console.print(f"[green]✓[/green] Removed device '{removed.name}'")


def register(parent: typer.Typer) -> None:
    parent.add_typer(app, name="devices")
