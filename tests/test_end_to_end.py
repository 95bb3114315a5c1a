"""End-to-end: client, session, registry, and router over an in-memory provider."""

from __future__ import annotations

from tests.conftest import READ_FILE, QueueTransport, mcp_responder
from toolchat.core.registry.registry import ToolRegistry
from toolchat.core.routing.router import classify, route
from toolchat.protocols.mcp.client import MCPClient

XCF = {
    "name": "xcf",
    "description": "Umbrella tool",
    "inputSchema": {"properties": {"action": {"type": "string"}}, "required": ["action"]},
}

HELP = "- help: Show help\n- list: List projects\n- build: Build the project\n"


class TestProviderSession:
    async def test_discover_route_and_invoke(self) -> None:
        results = {
            "xcf": {"content": [{"type": "text", "text": HELP}]},
            "read_file": {"content": [{"type": "text", "text": "file body"}]},
        }
        transport = QueueTransport(responder=mcp_responder(tools=[XCF, READ_FILE], results=results, server_name="xcf"))

        async with MCPClient(transport) as client:
            registry = ToolRegistry(client, umbrella_tool=client.context.umbrella_tool)
            await registry.refresh()
            meta = await registry.discover_meta_commands()

            assert registry.names == ["read_file", "xcf"]
            assert meta == ["help", "list", "build"]

            text = "read_file /etc/hosts"
            assert classify(text, registry.names, meta, registry.umbrella) == "direct"
            tool, argument = route(text, registry.names, meta, registry.umbrella)
            assert await registry.invoke_text(tool, argument) == "file body"

        calls = [m["params"] for m in transport.sent if m.get("method") == "tools/call"]
        assert calls == [
            {"name": "xcf", "arguments": {"action": "help"}},
            {"name": "read_file", "arguments": {"path": "/etc/hosts"}},
        ]
        assert not client.connected
