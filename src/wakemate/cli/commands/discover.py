from __future__ import annotations

import logging
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console

from wakemate.cli.common import build_database, load_settings_or_exit, run_or_exit
from wakemate.config import DiscoveryConfig
from wakemate.core import detect_subnet_prefix
from wakemate.services import WakeMate

logger = logging.getLogger(__name__)


def register(app: typer.Typer) -> None:
    @app.command()
    def discover(
        prefix: Annotated[
            str | None,
            typer.Option("--prefix", help="Subnet prefix such as 192.168.1."),
        ] = None,
        first: Annotated[
            int | None, typer.Option("--first", help="First host number")
        ] = None,
        last: Annotated[
            int | None, typer.Option("--last", help="Last host number")
        ] = None,
        detect: Annotated[
            bool,
            typer.Option("--detect", help="Use the subnet of the local interface"),
        ] = False,
    ) -> None:
        """Scan the subnet for a companion server and remember its address."""
        console = Console()
        settings = load_settings_or_exit()

        overrides: dict[str, object] = {}
        if detect:
            try:
                overrides["subnet_prefix"] = detect_subnet_prefix()
            except RuntimeError as exc:
                console.print(f"[red]Error:[/red] {exc}")
                raise typer.Exit(1) from exc
        if prefix is not None:
            overrides["subnet_prefix"] = prefix.rstrip(".") + "."
        if first is not None:
            overrides["first_host"] = first
        if last is not None:
            overrides["last_host"] = last
        if overrides:
            try:
                discovery = DiscoveryConfig.model_validate(
                    {**settings.discovery.model_dump(), **overrides}
                )
            except ValidationError as exc:
                raise typer.BadParameter(str(exc)) from exc
            settings = settings.model_copy(update={"discovery": discovery})

        cfg = settings.discovery
        console.print(
            f"Scanning {cfg.subnet_prefix}{cfg.first_host}-{cfg.last_host} "
            f"on port {settings.server.port}..."
        )
        logger.info(
            "Discovery settings: timeout=%.2fs, parallel_probes=%d",
            cfg.timeout,
            cfg.parallel_probes,
        )

        service = WakeMate(settings, build_database(settings))
        address = run_or_exit(service.rediscover())

        if address is None:
            console.print("[yellow]No companion server found.[/yellow]")
            raise typer.Exit(1)
        console.print(f"[green]✓[/green] Companion server found at {address}")
