"""Shared fakes: an in-memory transport, a scripted tool provider, and LiteLLM response mocks."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

from toolchat.protocols.mcp.models import CallToolResult, MCPToolDef


class QueueTransport:
    """Transport whose inbound frames come from a queue.

    Frames the session sends are decoded into ``sent``. ``responder`` (if set)
    is called with every sent message and may return a reply to enqueue.
    """

    def __init__(self, responder: Callable[[dict[str, Any]], Any] | None = None) -> None:
        self.sent: list[dict[str, Any]] = []
        self.inbox: asyncio.Queue[Any] = asyncio.Queue()
        self.responder = responder
        self.connected = False
        self.close_count = 0

    async def connect(self) -> None:
        self.connected = True

    async def send(self, data: bytes) -> None:
        message = json.loads(data)
        self.sent.append(message)
        if self.responder is not None:
            reply = self.responder(message)
            if reply is not None:
                self.feed(reply)

    async def receive(self) -> bytes:
        item = await self.inbox.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        self.connected = False
        self.close_count += 1

    def feed(self, item: dict[str, Any] | bytes | BaseException) -> None:
        if isinstance(item, dict):
            item = json.dumps(item).encode()
        self.inbox.put_nowait(item)

    def reply(self, request_id: Any, result: Any) -> None:
        self.feed({"jsonrpc": "2.0", "id": request_id, "result": result})

    def sent_methods(self) -> list[str]:
        return [m["method"] for m in self.sent if "method" in m]


def mcp_responder(
    tools: list[dict[str, Any]] | None = None,
    results: dict[str, Any] | None = None,
    server_name: str = "fs",
) -> Callable[[dict[str, Any]], Any]:
    """Answer initialize, tools/list, tools/call and ping like a small MCP server."""
    tools = tools or []
    results = results or {}

    def respond(message: dict[str, Any]) -> dict[str, Any] | None:
        if "id" not in message:
            return None
        method = message["method"]
        result: Any
        if method == "initialize":
            result = {
                "protocolVersion": "2024-11-05",
                "capabilities": {"tools": {}},
                "serverInfo": {"name": server_name, "version": "1.2.3"},
            }
        elif method == "tools/list":
            result = {"tools": tools}
        elif method == "tools/call":
            name = message["params"]["name"]
            result = results.get(name, {"content": [{"type": "text", "text": f"{name} ok"}]})
        else:
            result = {}
        return {"jsonrpc": "2.0", "id": message["id"], "result": result}

    return respond


class FakeProvider:
    """A :class:`ToolProvider` with canned definitions and results."""

    def __init__(
        self,
        definitions: list[dict[str, Any]] | None = None,
        results: dict[str, dict[str, Any]] | None = None,
    ) -> None:
        self.definitions = definitions or []
        self.results = results or {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.list_error: Exception | None = None

    async def list_tools(self) -> list[MCPToolDef]:
        if self.list_error is not None:
            raise self.list_error
        return [MCPToolDef.model_validate(d) for d in self.definitions]

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> CallToolResult:
        self.calls.append((name, arguments))
        raw = self.results.get(name, {"content": [{"type": "text", "text": f"{name} ok"}]})
        return CallToolResult.from_response(name, raw)


READ_FILE = {
    "name": "read_file",
    "description": "Read a file from disk",
    "inputSchema": {
        "type": "object",
        "properties": {"path": {"type": "string", "description": "File path"}},
        "required": ["path"],
    },
}

LIST_DIR = {
    "name": "list_dir",
    "description": "List a directory",
    "inputSchema": {},
}


def make_mock_litellm_response(
    content: str = "",
    tool_calls: list[Any] | None = None,
    finish_reason: str = "stop",
) -> MagicMock:
    """A ``MagicMock`` shaped like LiteLLM's ``choices[0].message`` response."""
    message = MagicMock()
    message.content = content or None
    message.tool_calls = tool_calls

    choice = MagicMock()
    choice.message = message
    choice.finish_reason = finish_reason

    usage = MagicMock()
    usage.prompt_tokens = 10
    usage.completion_tokens = 20
    usage.total_tokens = 30

    response = MagicMock()
    response.choices = [choice]
    response.usage = usage
    return response


def make_tool_call(name: str, arguments: str = "{}", call_id: str = "call_1") -> MagicMock:
    call = MagicMock()
    call.id = call_id
    call.function.name = name
    call.function.arguments = arguments
    return call


async def stream_of(chunks: list[dict[str, Any]]) -> Any:
    """Async iterator over streamed chunk dicts."""
    for chunk in chunks:
        yield chunk
