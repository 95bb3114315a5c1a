"""toolchat — chat client that drives MCP tool providers by hand or through an LLM."""

from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from toolchat.agent.loop import AgentLoop as AgentLoop
    from toolchat.core.registry.registry import ToolRegistry as ToolRegistry
    from toolchat.protocols.mcp.client import MCPClient as MCPClient

_LAZY_EXPORTS = {
    "AgentLoop": "toolchat.agent.loop",
    "ToolRegistry": "toolchat.core.registry.registry",
    "MCPClient": "toolchat.protocols.mcp.client",
}


def __getattr__(name: str) -> object:
    module_path = _LAZY_EXPORTS.get(name)
    if module_path is not None:
        import importlib

        mod = importlib.import_module(module_path)
        return getattr(mod, name)
    raise AttributeError(f"module 'toolchat' has no attribute {name!r}")
