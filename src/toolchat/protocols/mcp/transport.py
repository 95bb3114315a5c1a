"""MCP transports — byte-frame channels under the RPC session.

Each transport satisfies the :class:`MCPTransport` protocol, providing
``connect``, ``send``, ``receive``, and ``close`` methods. Transports move
opaque frames only; JSON encoding and request correlation belong to
:class:`~toolchat.protocols.mcp.session.RpcSession`.
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol, runtime_checkable
from urllib.parse import urlparse

from toolchat.protocols.errors import ConnectionFailedError, NotConnectedError


@runtime_checkable
class MCPTransport(Protocol):
    """Abstract duplex frame stream for MCP JSON-RPC communication."""

    async def connect(self) -> None: ...
    async def send(self, data: bytes) -> None: ...
    async def receive(self) -> bytes: ...
    async def close(self) -> None: ...


class StreamTransport:
    """Newline-delimited frames over a TCP connection.

    The provider process is started elsewhere; this only dials it.
    """

    def __init__(self, host: str, port: int) -> None:
        self._host = host
        self._port = port
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None

    async def connect(self) -> None:
        """Open the TCP connection."""
        try:
            self._reader, self._writer = await asyncio.open_connection(self._host, self._port)
        except OSError as exc:
            raise ConnectionFailedError(str(exc)) from exc

    async def send(self, data: bytes) -> None:
        """Write one frame followed by a newline."""
        if self._writer is None:
            raise NotConnectedError("transport not connected")
        self._writer.write(data.rstrip(b"\n") + b"\n")
        await self._writer.drain()

    async def receive(self) -> bytes:
        """Read one newline-terminated frame; skips blank lines."""
        if self._reader is None:
            raise NotConnectedError("transport not connected")
        while True:
            line = await self._reader.readline()
            if not line:
                raise ConnectionFailedError("stream closed by peer")
            line = line.strip()
            if line:
                return line

    async def close(self) -> None:
        """Close the TCP connection."""
        if self._writer is not None:
            writer = self._writer
            self._writer = None
            self._reader = None
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass


class WebSocketTransport:
    """Communicates with an MCP server over WebSocket, one message per frame.

    Requires the ``websockets`` package (optional dependency ``mcp-ws``).
    """

    def __init__(self, url: str) -> None:
        self._url = url
        self._ws: Any = None  # websockets ClientConnection

    async def connect(self) -> None:
        """Open the WebSocket connection."""
        try:
            import websockets  # type: ignore[import-untyped]
        except ImportError as exc:
            msg = "websockets package required — install with: pip install toolchat[mcp-ws]"
            raise ImportError(msg) from exc
        try:
            self._ws = await websockets.connect(self._url)  # type: ignore[no-untyped-call]
        except OSError as exc:
            raise ConnectionFailedError(str(exc)) from exc

    async def send(self, data: bytes) -> None:
        """Send one frame as a text message."""
        if self._ws is None:
            raise NotConnectedError("transport not connected")
        await self._ws.send(data.decode())

    async def receive(self) -> bytes:
        """Receive one frame."""
        if self._ws is None:
            raise NotConnectedError("transport not connected")
        try:
            raw = await self._ws.recv()
        except Exception as exc:  # websockets raises ConnectionClosed subclasses
            raise ConnectionFailedError(str(exc)) from exc
        return raw.encode() if isinstance(raw, str) else bytes(raw)

    async def close(self) -> None:
        """Close the WebSocket connection."""
        if self._ws is not None:
            ws = self._ws
            self._ws = None
            await ws.close()


def transport_for_url(url: str) -> MCPTransport:
    """Pick a transport from a provider URL (``tcp://host:port`` or ``ws(s)://...``)."""
    parsed = urlparse(url)
    if parsed.scheme == "tcp":
        if not parsed.hostname or parsed.port is None:
            msg = f"tcp URL must include host and port: {url}"
            raise ValueError(msg)
        return StreamTransport(parsed.hostname, parsed.port)
    if parsed.scheme in ("ws", "wss"):
        return WebSocketTransport(url)
    msg = f"Unsupported provider URL scheme: {parsed.scheme!r}"
    raise ValueError(msg)
