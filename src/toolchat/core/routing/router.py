"""Command router — turns a line of user input into a tool name and argument text.

Pure functions only: no I/O, no registry access. Callers pass in what they
know (tool names, the umbrella tool, its meta-commands).

Precedence, first match wins:

1. The whole input is ``use <umbrella>``: umbrella tool, input as argument.
2. First token is the umbrella tool: passed through unchanged.
3. First token is a meta-command: umbrella tool with ``<token> <rest>``.
4. First token is a registered tool: that tool with the rest as argument.
5. Several tokens and nothing matched: umbrella tool with the full input.
6. A single unmatched token: tried as a tool name with no argument.

Rule 5 is a heuristic. Unknown multi-word input is taken to be provider
syntax, which misroutes conversational text; :func:`classify` keeps such
text away from the router in the first place.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Iterator
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

# Prefixes that always mean "talk to the provider directly".
DIRECT_PREFIXES: tuple[str, ...] = ("mcp__", "--")

RouteRule = Literal["use-phrase", "umbrella", "meta-command", "tool", "umbrella-default", "literal"]


@dataclass(frozen=True)
class RouteDecision:
    """Where a line of input goes: ``tool_name`` called with ``arguments`` text."""

    tool_name: str
    arguments: str
    rule: RouteRule

    def __iter__(self) -> Iterator[str]:
        # Lets callers unpack ``tool, args = route(...)``.
        yield self.tool_name
        yield self.arguments


def _split(text: str) -> tuple[str, str]:
    parts = text.split(maxsplit=1)
    if not parts:
        return "", ""
    return parts[0], parts[1] if len(parts) > 1 else ""


def _lower_set(values: Iterable[str]) -> set[str]:
    return {value.lower() for value in values}


def route(
    text: str,
    known_tools: Collection[str],
    meta_commands: Iterable[str] = (),
    umbrella_tool: str | None = None,
) -> RouteDecision:
    """Decide which tool *text* addresses.

    Without an umbrella tool the umbrella rules (1, 2, 3, 4, 6) never apply.

    Raises
    ------
    ValueError
        *text* is empty or whitespace.
    """
    stripped = text.strip()
    if not stripped:
        msg = "cannot route empty input"
        raise ValueError(msg)

    token, rest = _split(stripped)
    decision: RouteDecision

    if umbrella_tool and stripped.lower() == f"use {umbrella_tool}".lower():
        decision = RouteDecision(umbrella_tool, stripped, "use-phrase")
    elif umbrella_tool and token.lower() == umbrella_tool.lower():
        decision = RouteDecision(umbrella_tool, rest, "umbrella")
    elif umbrella_tool and token.lower() in _lower_set(meta_commands):
        decision = RouteDecision(umbrella_tool, f"{token} {rest}" if rest else token, "meta-command")
    elif token in known_tools:
        decision = RouteDecision(token, rest, "tool")
    elif umbrella_tool and rest:
        decision = RouteDecision(umbrella_tool, stripped, "umbrella-default")
    else:
        decision = RouteDecision(token, rest, "literal")

    logger.debug("Routed %r -> %s(%r) via %s", stripped, decision.tool_name, decision.arguments, decision.rule)
    return decision


def classify(
    text: str,
    known_tools: Collection[str],
    meta_commands: Iterable[str] = (),
    umbrella_tool: str | None = None,
) -> Literal["direct", "agent"]:
    """Decide whether *text* is a direct provider command or chat for the agent.

    Direct: starts with ``<umbrella> ``, ``mcp__`` or ``--``; its first token
    is a registered tool; or the whole input is a lone meta-command. Everything
    else is chat, so "help me fix this" reaches the agent while "help" does not.
    """
    stripped = text.strip()
    lowered = stripped.lower()
    prefixes = DIRECT_PREFIXES + ((f"{umbrella_tool.lower()} ",) if umbrella_tool else ())
    if any(lowered.startswith(prefix) for prefix in prefixes):
        return "direct"
    token, rest = _split(stripped)
    if not token:
        return "agent"
    if umbrella_tool and token.lower() == umbrella_tool.lower():
        return "direct"
    if token in known_tools:
        return "direct"
    if not rest and token.lower() in _lower_set(meta_commands):
        return "direct"
    return "agent"
