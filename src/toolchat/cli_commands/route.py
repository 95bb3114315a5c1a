"""``toolchat route`` — show where a line of input would go, without connecting."""

from __future__ import annotations

import sys

import click
from rich.markup import escape

from toolchat.cli_commands._output import console, print_route


@click.command("route")
@click.argument("text")
@click.option("--tool", "-t", "tools", multiple=True, help="A registered tool name (repeatable).")
@click.option("--meta", "-m", "meta_commands", multiple=True, help="A meta-command of the umbrella tool (repeatable).")
@click.option("--umbrella", "-u", default=None, help="The provider's umbrella tool.")
@click.option("--json", "as_json", is_flag=True, help="Print JSON output.")
def route_cmd(
    text: str,
    tools: tuple[str, ...],
    meta_commands: tuple[str, ...],
    umbrella: str | None,
    as_json: bool,
) -> None:
    """Classify TEXT and print the routing decision."""
    from toolchat.core.routing.router import classify, route

    known = set(tools)
    if umbrella:
        known.add(umbrella)

    try:
        decision = route(text, known, meta_commands, umbrella)
    except ValueError as exc:
        console.print(f"[red]Routing error:[/red] {escape(str(exc))}")
        sys.exit(1)

    kind = classify(text, known, meta_commands, umbrella)
    print_route(decision, kind, as_json=as_json)
