"""Tests for MCPClient over an in-memory transport."""

from __future__ import annotations

import pytest

from tests.conftest import READ_FILE, QueueTransport, mcp_responder
from toolchat.protocols.errors import ProtocolError, RemoteError, ToolExecutionError
from toolchat.protocols.mcp.client import PROTOCOL_VERSION, ConnectionContext, MCPClient


class TestMCPClientConnect:
    async def test_connect_performs_handshake(self) -> None:
        transport = QueueTransport(responder=mcp_responder())
        client = MCPClient(transport)

        context = await client.connect()

        assert transport.sent_methods() == ["initialize", "notifications/initialized"]
        init = transport.sent[0]
        assert init["params"]["protocolVersion"] == PROTOCOL_VERSION
        assert init["params"]["clientInfo"]["name"] == "toolchat"
        assert init["params"]["capabilities"] == {}
        assert context.server_name == "fs"
        assert context.server_version == "1.2.3"
        assert context.capabilities == {"tools": {}}
        await client.close()

    async def test_server_name_wins_over_fallback(self) -> None:
        transport = QueueTransport(responder=mcp_responder(server_name="xcf"))
        async with MCPClient(transport, fallback_name="configured") as client:
            assert client.context.server_name == "xcf"
            assert client.context.umbrella_tool == "xcf"

    async def test_fallback_name_when_server_is_anonymous(self) -> None:
        transport = QueueTransport(responder=mcp_responder(server_name=""))
        async with MCPClient(transport, fallback_name="configured") as client:
            assert client.context.server_name == "configured"

    async def test_failed_handshake_disconnects(self) -> None:
        transport = QueueTransport(
            responder=lambda m: {"jsonrpc": "2.0", "id": m["id"], "error": {"code": -32600, "message": "bad"}}
        )
        client = MCPClient(transport)

        with pytest.raises(RemoteError):
            await client.connect()

        assert not client.connected
        assert transport.close_count == 1


class TestMCPClientTools:
    async def test_list_tools(self) -> None:
        transport = QueueTransport(responder=mcp_responder(tools=[READ_FILE, {"name": "bare"}]))
        async with MCPClient(transport) as client:
            tools = await client.list_tools()

        assert [t.name for t in tools] == ["read_file", "bare"]
        assert tools[0].input_schema["required"] == ["path"]
        assert tools[1].input_schema is None

    async def test_call_tool(self) -> None:
        results = {"read_file": {"content": [{"type": "text", "text": "hello"}]}}
        transport = QueueTransport(responder=mcp_responder(tools=[READ_FILE], results=results))
        async with MCPClient(transport) as client:
            result = await client.call_tool("read_file", {"path": "/tmp/x"})

        call = transport.sent[-1]
        assert call["method"] == "tools/call"
        assert call["params"] == {"name": "read_file", "arguments": {"path": "/tmp/x"}}
        assert result.text == "hello"
        assert not result.is_error

    async def test_malformed_call_result_is_an_execution_failure(self) -> None:
        results = {"read_file": {"content": "not a list"}}
        transport = QueueTransport(responder=mcp_responder(tools=[READ_FILE], results=results))
        async with MCPClient(transport) as client:
            with pytest.raises(ToolExecutionError, match="malformed result") as exc_info:
                await client.call_tool("read_file", {"path": "/tmp/x"})

        assert exc_info.value.name == "read_file"

    async def test_malformed_tool_list_is_a_protocol_error(self) -> None:
        transport = QueueTransport(responder=mcp_responder(tools=[{"description": "no name"}]))
        async with MCPClient(transport) as client:
            with pytest.raises(ProtocolError, match="Malformed tools/list"):
                await client.list_tools()

    async def test_ping_returns_latency(self) -> None:
        transport = QueueTransport(responder=mcp_responder())
        async with MCPClient(transport) as client:
            latency = await client.ping()
        assert latency >= 0


class TestConnectionContext:
    def test_no_umbrella_without_name(self) -> None:
        assert ConnectionContext().umbrella_tool is None
