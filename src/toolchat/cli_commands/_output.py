"""Shared CLI output formatters."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from toolchat.agent.models import AgentResponse
    from toolchat.config import ProvidersFile
    from toolchat.core.registry.models import Tool
    from toolchat.core.routing.router import RouteDecision

console = Console()


def configure_logging(verbose: bool) -> None:
    """Send library logs to stderr; DEBUG with ``--verbose``, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def print_tools_table(tools: list[Tool], *, as_json: bool = False) -> None:
    """Pretty-print tools with their inferred parameters."""
    if as_json:
        console.print_json(json.dumps([tool.model_dump() for tool in tools]))
        return

    table = Table(title="Discovered Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Category")
    table.add_column("Parameters")
    table.add_column("Description")

    for tool in tools:
        params = escape(", ".join(_format_param(p.name, p.type, p.required) for p in tool.parameters))
        if tool.needs_caution:
            params = "[yellow](none inferred)[/yellow]"
        table.add_row(
            tool.name,
            tool.category or "-",
            params or "-",
            escape(_truncate(tool.description)),
        )

    console.print(table)


def print_route(decision: RouteDecision, kind: str, *, as_json: bool = False) -> None:
    if as_json:
        console.print_json(
            json.dumps(
                {
                    "kind": kind,
                    "tool": decision.tool_name,
                    "arguments": decision.arguments,
                    "rule": decision.rule,
                }
            )
        )
        return
    console.print(f"[bold]{kind}[/bold] via {decision.rule}")
    console.print(f"  Tool: [cyan]{escape(decision.tool_name)}[/cyan]")
    console.print(f"  Arguments: {escape(decision.arguments) or '(none)'}")


def print_providers(providers: ProvidersFile) -> None:
    """Pretty-print the providers of a config file."""
    table = Table(title="Providers")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("URL")
    table.add_column("Command")

    for name, provider in providers.providers.items():
        label = f"{name} (default)" if name == providers.default_name else name
        table.add_row(
            label,
            provider.type or "-",
            provider.url or "-",
            escape(_truncate(provider.command_line)) or "-",
        )

    console.print(table)


def print_response(response: AgentResponse, *, content: bool = True) -> None:
    """Print an agent answer with its bookkeeping line; streamed answers skip the content."""
    if content:
        console.print(escape(response.content))
    if response.tools_executed:
        console.print(f"[dim]tools: {', '.join(response.tools_executed)}[/dim]")
    console.print(f"[dim]confidence {response.confidence:.2f}, {response.iterations} iteration(s)[/dim]")


def print_server_output(server: str, text: str) -> None:
    console.print(f"[green][←] {escape(server)}:[/green] {escape(text)}")


def _format_param(name: str, type_: str, required: bool) -> str:
    return f"{name}: {type_}" if required else f"[{name}: {type_}]"


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
