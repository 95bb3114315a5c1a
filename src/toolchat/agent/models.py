"""Conversation models — the transcript the agent loop owns and mutates.

Messages mirror the chat-completion shape closely (role, content, tool
calls, tool call id) so the wire layer stays a thin mapping.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

Role = Literal["system", "user", "assistant", "tool"]

DEFAULT_SYSTEM_PROMPT = """\
You are an expert assistant connected to a tool provider through the Model Context Protocol.
The tools let you read, write and modify files, build and run projects, analyze code,
and run system commands on the user's machine.

TOOL USAGE:
- When you need a tool, call it; it will be executed for you automatically
- You can chain several tool calls to finish a larger task
- Check each tool result before moving on

THINKING PROCESS:
- Use <thinking> tags to show your reasoning when solving complex problems
- Break tasks into smaller steps

RESPONSE STYLE:
- Be concise and direct
- Explain the actions you took
- Ask for clarification when needed"""


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Tool calling
# ---------------------------------------------------------------------------


class ToolCallIntent(BaseModel):
    """A tool invocation requested by the model; consumed once by the loop."""

    id: str = Field(default_factory=lambda: f"call_{uuid4().hex[:12]}")
    tool_name: str
    arguments_json: str = "{}"

    def arguments(self) -> dict[str, Any]:
        """Decode ``arguments_json``; an empty payload means no arguments.

        Raises
        ------
        ValueError
            The payload is not a JSON object.
        """
        if not self.arguments_json.strip():
            return {}
        parsed = json.loads(self.arguments_json)
        if not isinstance(parsed, dict):
            msg = f"Tool arguments for {self.tool_name} must be a JSON object"
            raise ValueError(msg)
        return parsed


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


class ConversationMessage(BaseModel):
    """One entry of the agent transcript."""

    role: Role
    content: str = ""
    tool_calls: list[ToolCallIntent] | None = None
    tool_call_id: str | None = None
    timestamp: datetime = Field(default_factory=_now)

    @model_validator(mode="after")
    def _check_tool_correlation(self) -> ConversationMessage:
        if self.role == "tool" and not self.tool_call_id:
            msg = "tool messages must carry tool_call_id"
            raise ValueError(msg)
        if self.role != "tool" and self.tool_call_id is not None:
            msg = "only tool messages may carry tool_call_id"
            raise ValueError(msg)
        return self

    @classmethod
    def system(cls, text: str) -> ConversationMessage:
        return cls(role="system", content=text)

    @classmethod
    def user(cls, text: str) -> ConversationMessage:
        return cls(role="user", content=text)

    @classmethod
    def assistant(cls, text: str = "", tool_calls: list[ToolCallIntent] | None = None) -> ConversationMessage:
        return cls(role="assistant", content=text, tool_calls=tool_calls or None)

    @classmethod
    def tool(cls, tool_call_id: str, text: str) -> ConversationMessage:
        return cls(role="tool", content=text, tool_call_id=tool_call_id)


class Transcript(BaseModel):
    """Ordered conversation that always starts with one system message.

    Append-only except for :meth:`clear` and the loop's own rollback.
    """

    messages: list[ConversationMessage] = []

    @classmethod
    def with_system_prompt(cls, prompt: str = DEFAULT_SYSTEM_PROMPT) -> Transcript:
        return cls(messages=[ConversationMessage.system(prompt)])

    @model_validator(mode="after")
    def _ensure_system_message(self) -> Transcript:
        if not self.messages or self.messages[0].role != "system":
            self.messages.insert(0, ConversationMessage.system(DEFAULT_SYSTEM_PROMPT))
        return self

    def append(self, message: ConversationMessage) -> None:
        self.messages.append(message)

    def extend(self, messages: list[ConversationMessage]) -> None:
        self.messages.extend(messages)

    def clear(self) -> None:
        """Drop everything but the leading system message."""
        del self.messages[1:]

    def truncate(self, length: int) -> None:
        """Roll back to the first *length* messages (never below the system message)."""
        del self.messages[max(length, 1):]

    def export(self) -> str:
        """Render as ``ROLE: content`` lines, one per message."""
        return "\n".join(f"{m.role.upper()}: {m.content}" for m in self.messages)

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self):  # type: ignore[override]
        return iter(self.messages)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class AgentResponse(BaseModel):
    """Outcome of one agent turn."""

    content: str
    tools_executed: list[str] = []
    thinking: str | None = None
    confidence: float = Field(default=0.95, ge=0.0, le=1.0)
    iterations: int = 1
    direct: bool = False
    """``True`` when the turn bypassed the model and ran a tool directly."""


class ChatEntry(BaseModel):
    """A line of the visible chat log, including provider-originated output."""

    sender: str
    content: str
    timestamp: datetime = Field(default_factory=_now)
    from_server: bool = False


class AgentConfig(BaseModel):
    """Settings for the agent loop and its completion requests.

    The ``model`` field uses LiteLLM's naming convention
    (``provider/model_name``, e.g. ``openai/gpt-4o``).
    """

    model: str = "openai/gpt-4o-mini"
    api_key: str | None = None
    api_base: str | None = None
    temperature: float = 0.7
    max_tokens: int | None = 4000
    max_iterations: int = Field(default=5, ge=1)
    tool_choice: str | None = "auto"
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    heuristic_tool_calls: bool = False
    direct_invocation: bool = True
