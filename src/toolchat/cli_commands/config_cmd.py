"""``toolchat config`` — inspect provider configuration files."""

from __future__ import annotations

import sys
from pathlib import Path

import click
from rich.markup import escape

from toolchat.cli_commands._output import console, print_providers
from toolchat.config import ConfigError, ProvidersLoader, find_config


@click.group()
def config() -> None:
    """Inspect provider configuration."""


@config.command("show")
@click.argument("path", required=False, type=click.Path())
@click.option("--json", "as_json", is_flag=True, help="Print JSON output.")
def show(path: str | None, as_json: bool) -> None:
    """Validate and print PATH (or the default config file in the current directory)."""
    config_path = Path(path) if path else find_config()
    if config_path is None:
        console.print("[yellow]No provider config found.[/yellow]")
        sys.exit(1)

    try:
        providers = ProvidersLoader(config_path).load()
    except ConfigError as exc:
        console.print(f"[red]Config error:[/red] {escape(str(exc))}")
        sys.exit(1)

    if as_json:
        console.print_json(providers.model_dump_json(by_alias=True))
        return

    console.print(f"[green]{escape(str(config_path))} is valid.[/green]")
    print_providers(providers)
