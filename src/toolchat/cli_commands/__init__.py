"""CLI subcommand registration."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all subcommands on the CLI group."""
    from toolchat.cli_commands.chat import chat
    from toolchat.cli_commands.config_cmd import config
    from toolchat.cli_commands.route import route_cmd
    from toolchat.cli_commands.tools import tools

    cli.add_command(chat)
    cli.add_command(tools)
    cli.add_command(route_cmd)
    cli.add_command(config)
