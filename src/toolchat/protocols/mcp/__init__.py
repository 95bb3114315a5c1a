"""MCP protocol — Model Context Protocol client."""

from toolchat.protocols.mcp.client import ConnectionContext, MCPClient
from toolchat.protocols.mcp.models import CallToolResult, JsonRpcError, JsonRpcMessage, MCPToolDef
from toolchat.protocols.mcp.session import RpcSession
from toolchat.protocols.mcp.transport import (
    MCPTransport,
    StreamTransport,
    WebSocketTransport,
    transport_for_url,
)

__all__ = [
    "CallToolResult",
    "ConnectionContext",
    "JsonRpcError",
    "JsonRpcMessage",
    "MCPClient",
    "MCPToolDef",
    "MCPTransport",
    "RpcSession",
    "StreamTransport",
    "WebSocketTransport",
    "transport_for_url",
]
