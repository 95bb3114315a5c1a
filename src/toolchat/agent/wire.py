"""Wire mapping — transcript to OpenAI chat-completion messages and back.

LiteLLM speaks OpenAI's message format for every provider, so this is the
only mapping the agent needs. Response parsing accepts both LiteLLM's
attribute-style objects and plain dicts.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from toolchat.agent.models import ConversationMessage, ToolCallIntent

if TYPE_CHECKING:
    from toolchat.agent.models import Transcript


def field(obj: Any, name: str, default: Any = None) -> Any:
    """Read *name* from a dict or an attribute-style response object."""
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def message_to_openai(msg: ConversationMessage) -> dict[str, Any]:
    """Convert a single transcript message to OpenAI format."""
    result: dict[str, Any] = {"role": msg.role}

    if msg.role == "tool":
        result["tool_call_id"] = msg.tool_call_id
        result["content"] = msg.content
        return result

    if msg.tool_calls:
        result["content"] = msg.content or None
        result["tool_calls"] = [
            {
                "id": call.id,
                "type": "function",
                "function": {"name": call.tool_name, "arguments": call.arguments_json or "{}"},
            }
            for call in msg.tool_calls
        ]
    else:
        result["content"] = msg.content
    return result


def transcript_to_openai(transcript: Transcript) -> list[dict[str, Any]]:
    return [message_to_openai(msg) for msg in transcript]


def parse_tool_calls(raw_calls: Any) -> list[ToolCallIntent]:
    """Turn ``message.tool_calls`` from a response into intents.

    Entries without a function name are skipped. Arguments stay an opaque
    string; dict arguments (some providers send those) are re-serialised.
    """
    intents: list[ToolCallIntent] = []
    for raw in raw_calls or []:
        function = field(raw, "function")
        name = field(function, "name")
        if not name:
            continue
        arguments = field(function, "arguments", "{}")
        if not isinstance(arguments, str):
            arguments = json.dumps(arguments)
        call_id = field(raw, "id")
        intent = ToolCallIntent(tool_name=name, arguments_json=arguments or "{}")
        if call_id:
            intent = intent.model_copy(update={"id": str(call_id)})
        intents.append(intent)
    return intents


def usage_dict(response: Any) -> dict[str, int] | None:
    usage = field(response, "usage")
    if not usage:
        return None
    return {
        "prompt_tokens": int(field(usage, "prompt_tokens", 0) or 0),
        "completion_tokens": int(field(usage, "completion_tokens", 0) or 0),
        "total_tokens": int(field(usage, "total_tokens", 0) or 0),
    }
