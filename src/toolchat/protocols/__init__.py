"""Protocol layer — JSON-RPC session and MCP client."""

from toolchat.protocols.errors import (
    ConnectionFailedError,
    NotConnectedError,
    ProtocolError,
    RemoteError,
    RequestTimeoutError,
    ToolExecutionError,
    ToolNotFoundError,
)

__all__ = [
    "ConnectionFailedError",
    "NotConnectedError",
    "ProtocolError",
    "RemoteError",
    "RequestTimeoutError",
    "ToolExecutionError",
    "ToolNotFoundError",
]
