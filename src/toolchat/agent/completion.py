"""CompletionClient — the agent's async interface to chat-completion models via LiteLLM.

``complete`` returns one parsed :class:`Completion`; ``stream`` yields text
deltas as they arrive and finishes with the accumulated :class:`Completion`.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field as dataclass_field
from typing import TYPE_CHECKING, Any

import litellm

from toolchat.agent.errors import CompletionError
from toolchat.agent.models import ToolCallIntent
from toolchat.agent.wire import field, parse_tool_calls, transcript_to_openai, usage_dict
from toolchat.utils.telemetry import (
    ATTR_FINISH_REASON,
    ATTR_MODEL,
    ATTR_TOKENS_COMPLETION,
    ATTR_TOKENS_PROMPT,
    ATTR_TOKENS_TOTAL,
    get_tracer,
)

if TYPE_CHECKING:
    from toolchat.agent.models import AgentConfig, Transcript

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)


@dataclass
class Completion:
    """One assistant reply: free text and/or structured tool calls."""

    content: str = ""
    tool_calls: list[ToolCallIntent] = dataclass_field(default_factory=list)
    finish_reason: str | None = None
    usage: dict[str, int] | None = None


class CompletionClient:
    """Async client for chat completions via LiteLLM.

    Usage::

        client = CompletionClient(AgentConfig(model="openai/gpt-4o"))
        completion = await client.complete(transcript, tools)
    """

    def __init__(self, config: AgentConfig) -> None:
        self.config = config

    def build_request(
        self,
        transcript: Transcript,
        tools: list[dict[str, Any]] | None,
        *,
        stream: bool,
    ) -> dict[str, Any]:
        """Keyword arguments for ``litellm.acompletion``."""
        request: dict[str, Any] = {
            "model": self.config.model,
            "messages": transcript_to_openai(transcript),
            "temperature": self.config.temperature,
            "stream": stream,
        }
        if self.config.max_tokens is not None:
            request["max_tokens"] = self.config.max_tokens
        if tools:
            request["tools"] = tools
            if self.config.tool_choice:
                request["tool_choice"] = self.config.tool_choice
        if self.config.api_key:
            request["api_key"] = self.config.api_key
        if self.config.api_base:
            request["api_base"] = self.config.api_base
        return request

    async def complete(self, transcript: Transcript, tools: list[dict[str, Any]] | None = None) -> Completion:
        """Request one non-streamed completion."""
        with _tracer.start_as_current_span("completion.generate") as span:
            span.set_attribute(ATTR_MODEL, self.config.model)
            request = self.build_request(transcript, tools, stream=False)
            try:
                response = await litellm.acompletion(**request)  # pyright: ignore[reportUnknownMemberType]
            except Exception as exc:
                raise CompletionError(self.config.model, str(exc)) from exc

            choices = field(response, "choices") or []
            if not choices:
                raise CompletionError(self.config.model, "response has no choices")
            message = field(choices[0], "message")
            completion = Completion(
                content=field(message, "content") or "",
                tool_calls=parse_tool_calls(field(message, "tool_calls")),
                finish_reason=field(choices[0], "finish_reason"),
                usage=usage_dict(response),
            )
            _record(span, completion)
            return completion

    async def stream(
        self,
        transcript: Transcript,
        tools: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[str | Completion]:
        """Stream a completion: ``str`` deltas, then the final :class:`Completion`.

        Tool-call deltas are accumulated by their ``index``; ids and names
        arrive once, argument fragments are concatenated.
        """
        with _tracer.start_as_current_span("completion.generate") as span:
            span.set_attribute(ATTR_MODEL, self.config.model)
            request = self.build_request(transcript, tools, stream=True)
            try:
                response = await litellm.acompletion(**request)  # pyright: ignore[reportUnknownMemberType]
            except Exception as exc:
                raise CompletionError(self.config.model, str(exc)) from exc

            content_parts: list[str] = []
            calls: dict[int, dict[str, str]] = {}
            finish_reason: str | None = None
            usage: dict[str, int] | None = None

            try:
                async for chunk in response:
                    usage = usage_dict(chunk) or usage
                    choices = field(chunk, "choices") or []
                    if not choices:
                        continue
                    choice = choices[0]
                    finish_reason = field(choice, "finish_reason") or finish_reason
                    delta = field(choice, "delta")
                    text = field(delta, "content")
                    if text:
                        content_parts.append(text)
                        yield text
                    for raw_call in field(delta, "tool_calls") or []:
                        _accumulate_call(calls, raw_call)
            except CompletionError:
                raise
            except Exception as exc:
                raise CompletionError(self.config.model, str(exc)) from exc

            completion = Completion(
                content="".join(content_parts),
                tool_calls=parse_tool_calls(
                    {"id": call["id"], "function": {"name": call["name"], "arguments": call["arguments"]}}
                    for _, call in sorted(calls.items())
                ),
                finish_reason=finish_reason,
                usage=usage,
            )
            _record(span, completion)
            yield completion


def _accumulate_call(calls: dict[int, dict[str, str]], raw_call: Any) -> None:
    index = field(raw_call, "index")
    if index is None:
        index = len(calls)
    slot = calls.setdefault(int(index), {"id": "", "name": "", "arguments": ""})
    call_id = field(raw_call, "id")
    if call_id:
        slot["id"] = str(call_id)
    function = field(raw_call, "function")
    name = field(function, "name")
    if name:
        slot["name"] = name
    arguments = field(function, "arguments")
    if arguments:
        slot["arguments"] += arguments


def _record(span: Any, completion: Completion) -> None:
    if completion.usage:
        span.set_attribute(ATTR_TOKENS_PROMPT, completion.usage["prompt_tokens"])
        span.set_attribute(ATTR_TOKENS_COMPLETION, completion.usage["completion_tokens"])
        span.set_attribute(ATTR_TOKENS_TOTAL, completion.usage["total_tokens"])
    if completion.finish_reason is not None:
        span.set_attribute(ATTR_FINISH_REASON, str(completion.finish_reason))
    logger.debug(
        "Completion finished (%s) with %d tool call(s)", completion.finish_reason, len(completion.tool_calls)
    )
