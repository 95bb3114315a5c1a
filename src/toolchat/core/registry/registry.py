"""ToolRegistry — the in-memory table of discovered tools.

Discovery runs every raw ``inputSchema`` through schema inference and swaps
the whole table in one assignment, so readers see either the old set or the
new one. Invocation validates arguments against the inferred parameters
before anything goes over the wire.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from toolchat.core.registry.models import ParameterSpec, Tool
from toolchat.core.schema.inference import check_inferred, infer, is_empty_schema
from toolchat.protocols.errors import (
    InvalidEnumValueError,
    InvalidParameterTypeError,
    MissingRequiredParameterError,
    ToolExecutionError,
    ToolNotFoundError,
)
from toolchat.utils.telemetry import ATTR_TOOL_COUNT, ATTR_TOOL_NAME, get_tracer

if TYPE_CHECKING:
    from toolchat.protocols.mcp.models import MCPToolDef
    from toolchat.protocols.provider import ToolProvider

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

# First keyword contained in the lower-cased tool name wins, in table order.
TOOL_CATEGORIES: dict[str, tuple[str, ...]] = {
    "file": ("read", "write", "create", "delete", "list"),
    "project": ("build", "run", "test", "clean"),
    "code": ("analyze", "format", "refactor", "snippet"),
    "git": ("commit", "push", "pull", "status", "diff"),
    "system": ("exec", "env", "info", "help"),
}

FALLBACK_ARGUMENT = "text"

_TRUE_WORDS = frozenset({"true", "1", "yes"})
_FALSE_WORDS = frozenset({"false", "0", "no"})


def categorize(name: str) -> str | None:
    lowered = name.lower()
    for category, keywords in TOOL_CATEGORIES.items():
        if any(keyword in lowered for keyword in keywords):
            return category
    return None


def generate_examples(name: str, parameters: list[ParameterSpec]) -> list[str]:
    """Usage hints shown next to a tool, e.g. ``read_file path: <string>``."""
    examples: list[str] = []
    if parameters:
        required = [p for p in parameters if p.required]
        if required:
            examples.append(f"{name} " + ", ".join(f"{p.name}: <{p.type}>" for p in required))
    else:
        examples.append(name)

    if "file" in name or "read" in name:
        examples.append(f"{name} path: /Users/example/file.txt")
    elif "project" in name:
        examples.append(f"{name} name: MyProject")
    return examples


def build_tool(definition: MCPToolDef) -> Tool:
    """Turn a raw MCP definition into a :class:`Tool` with inferred parameters."""
    params = infer(definition.input_schema)
    check_inferred(definition.name, definition.input_schema, params)
    # Stable: declared order is kept within the required and optional groups.
    params = sorted(params, key=lambda p: not p.required)
    return Tool(
        name=definition.name,
        description=definition.description,
        parameters=params,
        category=categorize(definition.name),
        examples=generate_examples(definition.name, params),
        schema_was_empty=is_empty_schema(definition.input_schema),
    )


def parse_help_output(text: str) -> tuple[list[str], dict[str, str]]:
    """Parse umbrella-tool ``help`` output into meta-commands and descriptions.

    Recognises ``- action: description`` lines; following non-bullet lines
    are appended to the description of the last action.
    """
    commands: list[str] = []
    descriptions: dict[str, str] = {}
    current: str | None = None

    for line in text.splitlines():
        stripped = line.strip()
        if stripped.startswith("-"):
            name, _, description = stripped[1:].partition(":")
            name = name.strip()
            if not name:
                continue
            if name not in commands:
                commands.append(name)
            current = name
            description = description.strip()
            if description:
                descriptions[name] = description
        elif current is not None and stripped:
            existing = descriptions.get(current)
            descriptions[current] = f"{existing} {stripped}" if existing else stripped

    return commands, descriptions


def convert_argument(text: str, param_type: str) -> Any:
    """Convert router text to the declared type; the raw string when that fails."""
    value = text.strip()
    if param_type == "integer":
        try:
            return int(value)
        except ValueError:
            return text
    if param_type == "number":
        try:
            return float(value)
        except ValueError:
            return text
    if param_type == "boolean":
        lowered = value.lower()
        if lowered in _TRUE_WORDS:
            return True
        if lowered in _FALSE_WORDS:
            return False
        return text
    if param_type in ("array", "object"):
        try:
            parsed = json.loads(value)
        except ValueError:
            return text
        expected = list if param_type == "array" else dict
        return parsed if isinstance(parsed, expected) else text
    return text


def _matches_type(value: Any, param_type: str) -> bool:
    if param_type == "string":
        return isinstance(value, str)
    if param_type == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if param_type == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if param_type == "boolean":
        return isinstance(value, bool)
    if param_type == "array":
        return isinstance(value, (list, tuple))
    if param_type == "object":
        return isinstance(value, dict)
    return True


def _enum_key(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


class ToolRegistry:
    """Discovered tools for one provider connection.

    Usage::

        registry = ToolRegistry(client, umbrella_tool="xcf")
        await registry.refresh()
        text = await registry.invoke("read_file", {"path": "/tmp/x"})
    """

    def __init__(self, provider: ToolProvider, *, umbrella_tool: str | None = None) -> None:
        self._provider = provider
        self.umbrella_tool = umbrella_tool
        self._tools: dict[str, Tool] = {}
        self._refresh_lock = asyncio.Lock()
        self.meta_commands: list[str] = []
        self.meta_descriptions: dict[str, str] = {}

    # -- discovery -----------------------------------------------------------

    async def refresh(self) -> list[Tool]:
        """Re-list tools from the provider and replace the table wholesale.

        If listing fails the previous table is left untouched and the error
        propagates.
        """
        async with self._refresh_lock:
            with _tracer.start_as_current_span("registry.refresh") as span:
                definitions = await self._provider.list_tools()
                table: dict[str, Tool] = {}
                for definition in definitions:
                    if definition.name in table:
                        logger.warning("Provider listed tool %r twice; keeping the last", definition.name)
                    table[definition.name] = build_tool(definition)
                self._tools = dict(sorted(table.items()))
                span.set_attribute(ATTR_TOOL_COUNT, len(self._tools))
        logger.debug("Registry refreshed with %d tool(s)", len(self._tools))
        return self.tools

    async def discover_meta_commands(self) -> list[str]:
        """Ask the umbrella tool for ``help`` and record its meta-commands.

        Returns an empty list when there is no umbrella tool or the call fails.
        """
        umbrella = self.umbrella
        if umbrella is None:
            self.meta_commands, self.meta_descriptions = [], {}
            return []
        try:
            text = await self.invoke_text(umbrella, "help")
        except Exception as exc:
            logger.warning("Could not discover meta-commands via %r: %s", umbrella, exc)
            self.meta_commands, self.meta_descriptions = [], {}
            return []
        self.meta_commands, self.meta_descriptions = parse_help_output(text)
        logger.debug("Discovered meta-commands: %s", ", ".join(self.meta_commands))
        return list(self.meta_commands)

    # -- lookup --------------------------------------------------------------

    @property
    def umbrella(self) -> str | None:
        """The umbrella tool name, only while the provider actually lists it."""
        if self.umbrella_tool and self.umbrella_tool in self._tools:
            return self.umbrella_tool
        return None

    @property
    def tools(self) -> list[Tool]:
        return list(self._tools.values())

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def find(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def search(self, query: str) -> list[Tool]:
        """Case-insensitive substring match over name, description, and category."""
        needle = query.lower()
        return [
            tool
            for tool in self._tools.values()
            if needle in tool.name.lower()
            or needle in tool.description.lower()
            or (tool.category is not None and needle in tool.category.lower())
        ]

    def by_category(self, category: str) -> list[Tool]:
        wanted = category.lower()
        return [tool for tool in self._tools.values() if (tool.category or "").lower() == wanted]

    def categories(self) -> list[str]:
        return sorted({tool.category for tool in self._tools.values() if tool.category})

    # -- invocation ----------------------------------------------------------

    @staticmethod
    def validate(tool: Tool, arguments: Mapping[str, Any]) -> None:
        """Check *arguments* against *tool*'s parameters.

        ``None`` counts as absent. Arguments the tool does not declare are
        passed through unchecked.

        Raises
        ------
        MissingRequiredParameterError, InvalidParameterTypeError, InvalidEnumValueError
        """
        for param in tool.parameters:
            if param.required and arguments.get(param.name) is None:
                raise MissingRequiredParameterError(param.name)

        for name, value in arguments.items():
            param = tool.parameter(name)
            if param is None or value is None:
                continue
            if not _matches_type(value, param.type):
                raise InvalidParameterTypeError(name, param.type)
            if param.enum_values is not None and _enum_key(value) not in param.enum_values:
                raise InvalidEnumValueError(name, param.enum_values)

    async def invoke(self, tool: Tool | str, arguments: Mapping[str, Any] | None = None) -> str:
        """Validate and execute a tool; returns its rendered content.

        Raises
        ------
        ToolNotFoundError
            *tool* is a name the registry does not know.
        ToolExecutionError
            The provider flagged the result with ``isError``.
        """
        resolved = self._resolve(tool)
        args = dict(arguments or {})
        self.validate(resolved, args)

        with _tracer.start_as_current_span("registry.invoke") as span:
            span.set_attribute(ATTR_TOOL_NAME, resolved.name)
            result = await self._provider.call_tool(resolved.name, args)

        if result.is_error:
            raise ToolExecutionError(resolved.name, result.text)
        return result.text

    async def invoke_text(self, name: str, text: str) -> str:
        """Invoke a tool with a single free-text argument.

        The text goes to the tool's first parameter (required ones come
        first), converted to its declared type. A tool whose schema was empty
        is called with no arguments; one whose schema yielded no parameters
        gets the raw text under ``text``.
        """
        tool = self._resolve(name)
        arguments: dict[str, Any] = {}
        if text.strip():
            if tool.parameters:
                first = tool.parameters[0]
                arguments[first.name] = convert_argument(text, first.type)
            elif tool.needs_caution:
                arguments[FALLBACK_ARGUMENT] = text.strip()
        return await self.invoke(tool, arguments)

    def _resolve(self, tool: Tool | str) -> Tool:
        if isinstance(tool, Tool):
            return tool
        found = self._tools.get(tool)
        if found is None:
            raise ToolNotFoundError(tool)
        return found

    # -- export --------------------------------------------------------------

    def export_for_remote_api(self) -> list[dict[str, Any]]:
        """Tools in the OpenAI function-calling shape, rebuilt from parameters."""
        return [export_tool(tool) for tool in self._tools.values()]


def export_tool(tool: Tool) -> dict[str, Any]:
    properties: dict[str, Any] = {}
    required: list[str] = []
    for param in tool.parameters:
        prop: dict[str, Any] = {"type": param.type}
        if param.description:
            prop["description"] = param.description
        if param.enum_values:
            prop["enum"] = list(param.enum_values)
        properties[param.name] = prop
        if param.required:
            required.append(param.name)
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description,
            "parameters": {"type": "object", "properties": properties, "required": required},
        },
    }
