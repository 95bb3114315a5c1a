"""ToolProvider protocol — what the registry needs from a connected provider.

:class:`~toolchat.protocols.mcp.client.MCPClient` satisfies it; tests use
plain mocks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from toolchat.protocols.mcp.models import CallToolResult, MCPToolDef


@runtime_checkable
class ToolProvider(Protocol):
    """Lists and executes tools exposed by an external service."""

    async def list_tools(self) -> list[MCPToolDef]:
        """Return the raw tool definitions, schemas untouched."""
        ...

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> CallToolResult:
        """Execute a tool by name and return its content segments."""
        ...
