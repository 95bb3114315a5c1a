"""MCPClient — connects to an MCP server and exposes its tools.

Implements the ``initialize`` handshake, tool discovery (``tools/list``),
execution (``tools/call``), and ``ping`` on top of an :class:`RpcSession`.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from toolchat import __version__
from toolchat.protocols.errors import ProtocolError
from toolchat.protocols.mcp.models import CallToolResult, MCPToolDef, ServerInfo
from toolchat.protocols.mcp.session import DEFAULT_TIMEOUT, NotificationHandler, RpcSession

if TYPE_CHECKING:
    from toolchat.protocols.mcp.transport import MCPTransport

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
CLIENT_NAME = "toolchat"


@dataclass(frozen=True)
class ConnectionContext:
    """What the client learned about the provider during the handshake.

    Passed explicitly to the router and agent instead of living in a global.
    """

    server_name: str = ""
    server_version: str = ""
    protocol_version: str = PROTOCOL_VERSION
    capabilities: dict[str, Any] | None = None

    @property
    def umbrella_tool(self) -> str | None:
        """The provider's umbrella tool is named after the provider itself."""
        return self.server_name or None


class MCPClient:
    """Async context manager that connects to an MCP server.

    Usage::

        async with MCPClient(StreamTransport("127.0.0.1", 9000)) as client:
            tools = await client.list_tools()
            result = await client.call_tool("read_file", {"path": "/tmp/x"})
    """

    def __init__(
        self,
        transport: MCPTransport,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        fallback_name: str | None = None,
    ) -> None:
        self._session = RpcSession(transport)
        self._timeout = timeout
        self._fallback_name = fallback_name
        self.context = ConnectionContext(server_name=fallback_name or "")

    async def __aenter__(self) -> MCPClient:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    @property
    def session(self) -> RpcSession:
        return self._session

    @property
    def connected(self) -> bool:
        return self._session.connected

    async def connect(self) -> ConnectionContext:
        """Connect the session and perform the initialize handshake."""
        await self._session.connect()
        try:
            result = await self._session.call(
                "initialize",
                {
                    "protocolVersion": PROTOCOL_VERSION,
                    "capabilities": {},
                    "clientInfo": {"name": CLIENT_NAME, "version": __version__},
                },
                timeout=self._timeout,
            )
            await self._session.notify("notifications/initialized")
        except BaseException:
            await self._session.disconnect()
            raise

        result = result if isinstance(result, dict) else {}
        info = ServerInfo.model_validate(result.get("serverInfo") or {})
        self.context = ConnectionContext(
            server_name=info.name or self._fallback_name or "",
            server_version=info.version,
            protocol_version=str(result.get("protocolVersion", PROTOCOL_VERSION)),
            capabilities=result.get("capabilities"),
        )
        logger.info("Connected to %s %s", self.context.server_name, self.context.server_version)
        return self.context

    async def close(self) -> None:
        await self._session.disconnect()

    def on_notification(self, handler: NotificationHandler) -> None:
        self._session.on_notification(handler)

    async def list_tools(self) -> list[MCPToolDef]:
        """Send ``tools/list`` and parse the returned definitions."""
        result = await self._session.call("tools/list", {}, timeout=self._timeout)
        raw_tools = result.get("tools", []) if isinstance(result, dict) else []
        try:
            return [MCPToolDef.model_validate(raw) for raw in raw_tools]
        except ValidationError as exc:
            msg = f"Malformed tools/list result: {exc.error_count()} invalid field(s)"
            raise ProtocolError(msg) from exc

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> CallToolResult:
        """Send ``tools/call`` for the named tool."""
        result = await self._session.call(
            "tools/call",
            {"name": name, "arguments": arguments},
            timeout=self._timeout,
        )
        return CallToolResult.from_response(name, result)

    async def ping(self) -> float:
        """Round-trip a ``ping`` request; returns the latency in seconds."""
        started = time.monotonic()
        await self._session.call("ping", timeout=self._timeout)
        return time.monotonic() - started
