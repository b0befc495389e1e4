from __future__ import annotations

import asyncio
import json
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from wakemate.config import (
    Settings,
    data_dir_from_settings,
    get_settings,
    resolve_config_path,
)
from wakemate.errors import WakeMateError
from wakemate.models import Device, DeviceStatus
from wakemate.storage import Database

T = TypeVar("T")


def load_settings_or_exit() -> Settings:
    try:
        return get_settings()
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def resolve_config_path_or_exit(allow_missing: bool = False) -> tuple[Path, bool]:
    try:
        return resolve_config_path(allow_missing=allow_missing)
    except FileNotFoundError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def build_database(settings: Settings, data_dir: Path | None = None) -> Database:
    path = data_dir or data_dir_from_settings(settings)
    return Database(path)


def run_or_exit(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine, turning wakemate errors into a message and exit code 1."""
    try:
        return asyncio.run(coro)
    except (WakeMateError, ValueError) as exc:
        Console(stderr=True).print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc


def parse_params(values: list[str] | None) -> dict[str, Any]:
    """``key=value`` pairs; values are read as JSON when possible."""
    params: dict[str, Any] = {}
    for item in values or []:
        key, sep, raw = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got '{item}'")
        try:
            params[key] = json.loads(raw)
        except ValueError:
            params[key] = raw
    return params


def device_table(devices: list[Device]) -> Table:
    table = Table()
    table.add_column("Name", style="cyan")
    table.add_column("IP", style="green")
    table.add_column("MAC Address")
    table.add_column("Status")
    table.add_column("ID", style="dim")

    for device in devices:
        if device.status is DeviceStatus.ONLINE:
            status = "[green]online[/green]"
        else:
            status = "[red]offline[/red]"
        table.add_row(device.name, device.ip, device.mac, status, device.id)
    return table
