from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console

from wakemate.config import (
    CONFIG_ENV_VAR,
    Settings,
    data_dir_from_settings,
    render_settings_toml,
    write_settings,
)

from .common import load_settings_or_exit, resolve_config_path_or_exit

app = typer.Typer(no_args_is_help=True, help="Show or create the configuration file")


@app.command("show")
def show_config() -> None:
    """Print the effective configuration as TOML."""
    settings = load_settings_or_exit()
    path, exists = resolve_config_path_or_exit(allow_missing=True)

    typer.echo(f"# source: {path if exists else 'defaults'}")
    typer.echo(render_settings_toml(settings))


@app.command("path")
def show_paths() -> None:
    """Print where the config file and the data directory live."""
    settings = load_settings_or_exit()
    path, exists = resolve_config_path_or_exit(allow_missing=True)

    console = Console()
    suffix = "" if exists else " [dim](not created)[/dim]"
    console.print(f"Config file: {path}{suffix}")
    console.print(f"Data directory: {data_dir_from_settings(settings)}")
    console.print(f"[dim]Override the config location with ${CONFIG_ENV_VAR}[/dim]")


@app.command("init")
def init_config(
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite existing config"),
    ] = False,
) -> None:
    """Write a config file with default values."""
    path, exists = resolve_config_path_or_exit(allow_missing=True)

    if exists and not force:
        typer.echo(f"Config already exists at {path} (use --force to overwrite)")
        return

    write_settings(Settings(), path)
    typer.echo(f"Wrote default config to {path}")
