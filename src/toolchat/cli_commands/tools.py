"""``toolchat tools`` — discover and inspect a provider's tools."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import click
from rich.markup import escape

from toolchat.cli_commands._output import configure_logging, console, print_tools_table
from toolchat.config import ConfigError

if TYPE_CHECKING:
    from toolchat.core.registry.models import Tool
    from toolchat.core.registry.registry import ToolRegistry


def _connection_options(func: Callable[..., Any]) -> Callable[..., Any]:
    func = click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")(func)
    func = click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table.")(func)
    func = click.option("--category", default=None, help="Only tools in this category.")(func)
    func = click.option("--timeout", default=30.0, type=float, envvar="TOOLCHAT_TIMEOUT", show_default=True)(func)
    func = click.option("--url", default=None, help="Provider URL, overrides --config.")(func)
    func = click.option("--provider", "-p", default=None, help="Provider name from the config file.")(func)
    func = click.option("--config", "-c", "config_path", default=None, type=click.Path(), help="Provider config file.")(
        func
    )
    return func


def _discover(
    config_path: str | None,
    provider: str | None,
    url: str | None,
    timeout: float,
    select: Callable[[ToolRegistry], list[Tool]],
) -> list[Tool]:
    from toolchat.cli_commands._provider import connect_registry, resolve_endpoint

    try:
        endpoint = resolve_endpoint(config_path, provider, url)
    except ConfigError as exc:
        console.print(f"[red]Config error:[/red] {escape(str(exc))}")
        sys.exit(1)

    async def _run() -> list[Tool]:
        client, registry = await connect_registry(endpoint, timeout)
        try:
            return select(registry)
        finally:
            await client.close()

    try:
        return asyncio.run(_run())
    except Exception as exc:
        console.print(f"[red]Discovery error:[/red] {escape(str(exc))}")
        sys.exit(1)


def _show(found: list[Tool], category: str | None, as_json: bool) -> None:
    if category:
        wanted = category.lower()
        found = [tool for tool in found if (tool.category or "").lower() == wanted]
    if not found:
        console.print("[yellow]No tools discovered.[/yellow]")
        return
    print_tools_table(found, as_json=as_json)


@click.group()
def tools() -> None:
    """Discover and inspect tools."""


@tools.command("list")
@_connection_options
def list_tools(
    config_path: str | None,
    provider: str | None,
    url: str | None,
    timeout: float,
    category: str | None,
    as_json: bool,
    verbose: bool,
) -> None:
    """List every tool the provider offers, with inferred parameters."""
    configure_logging(verbose)

    def select(registry: ToolRegistry) -> list[Tool]:
        return registry.tools

    _show(_discover(config_path, provider, url, timeout, select), category, as_json)


@tools.command("search")
@click.argument("query")
@_connection_options
def search(
    query: str,
    config_path: str | None,
    provider: str | None,
    url: str | None,
    timeout: float,
    category: str | None,
    as_json: bool,
    verbose: bool,
) -> None:
    """Tools whose name, description, or category contains QUERY."""
    configure_logging(verbose)

    def select(registry: ToolRegistry) -> list[Tool]:
        return registry.search(query)

    _show(_discover(config_path, provider, url, timeout, select), category, as_json)
