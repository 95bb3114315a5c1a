"""toolchat CLI entrypoint."""

from __future__ import annotations

import click

from toolchat import __version__


@click.group()
@click.version_option(version=__version__, prog_name="toolchat")
def main() -> None:
    """toolchat — drive MCP tool providers by hand or through an LLM."""


# Register subcommands
from toolchat.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
