"""Resolve which provider to talk to and open a registry against it."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from toolchat.config import ConfigError, ProvidersLoader, find_config

if TYPE_CHECKING:
    from toolchat.core.registry.registry import ToolRegistry
    from toolchat.protocols.mcp.client import MCPClient


@dataclass(frozen=True)
class Endpoint:
    name: str | None
    url: str


def resolve_endpoint(config: str | None, provider: str | None, url: str | None) -> Endpoint:
    """Pick the provider URL from ``--url`` or from a provider config file.

    Raises:
        ConfigError: No usable config file, unknown provider, or a provider
            that only has a ``command``.
    """
    if url:
        return Endpoint(name=provider, url=url)

    path = Path(config) if config else find_config()
    if path is None:
        msg = "No provider config found; pass --url or --config"
        raise ConfigError(msg)

    name, entry = ProvidersLoader(path).load().get(provider)
    if not entry.url:
        msg = f"Provider {name!r} has no url; start it externally ({entry.command_line}) and set url"
        raise ConfigError(msg)
    return Endpoint(name=name, url=entry.url)


async def connect_registry(endpoint: Endpoint, timeout: float) -> tuple[MCPClient, ToolRegistry]:
    """Connect, discover tools, and ask the umbrella tool for its meta-commands.

    The caller owns the returned client and must close it.
    """
    from toolchat.core.registry.registry import ToolRegistry
    from toolchat.protocols.mcp.client import MCPClient
    from toolchat.protocols.mcp.transport import transport_for_url

    client = MCPClient(transport_for_url(endpoint.url), timeout=timeout, fallback_name=endpoint.name)
    context = await client.connect()
    registry = ToolRegistry(client, umbrella_tool=context.umbrella_tool)
    try:
        await registry.refresh()
        await registry.discover_meta_commands()
    except BaseException:
        await client.close()
        raise
    return client, registry
