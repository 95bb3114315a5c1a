"""Tests for CompletionClient with LiteLLM mocked out."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from tests.conftest import make_mock_litellm_response, make_tool_call, stream_of
from toolchat.agent.completion import Completion, CompletionClient
from toolchat.agent.errors import CompletionError
from toolchat.agent.models import AgentConfig, ConversationMessage, Transcript

TOOLS = [{"type": "function", "function": {"name": "read_file", "parameters": {"type": "object"}}}]


@pytest.fixture
def transcript() -> Transcript:
    t = Transcript.with_system_prompt("sys")
    t.append(ConversationMessage.user("hi"))
    return t


class TestBuildRequest:
    def test_with_tools(self, transcript: Transcript) -> None:
        client = CompletionClient(AgentConfig(model="openai/gpt-4o", api_base="http://localhost:4000", api_key="k"))
        request = client.build_request(transcript, TOOLS, stream=False)

        assert request["model"] == "openai/gpt-4o"
        assert request["messages"][1] == {"role": "user", "content": "hi"}
        assert request["tools"] == TOOLS
        assert request["tool_choice"] == "auto"
        assert request["max_tokens"] == 4000
        assert request["temperature"] == 0.7
        assert request["api_base"] == "http://localhost:4000"
        assert request["api_key"] == "k"
        assert request["stream"] is False

    def test_without_tools(self, transcript: Transcript) -> None:
        request = CompletionClient(AgentConfig()).build_request(transcript, None, stream=True)
        assert "tools" not in request
        assert "tool_choice" not in request
        assert "api_key" not in request
        assert request["stream"] is True


class TestComplete:
    async def test_text_response(self, transcript: Transcript) -> None:
        mock = AsyncMock(return_value=make_mock_litellm_response("Hello"))
        with patch("litellm.acompletion", mock):
            completion = await CompletionClient(AgentConfig()).complete(transcript, TOOLS)

        assert completion.content == "Hello"
        assert completion.tool_calls == []
        assert completion.finish_reason == "stop"
        assert completion.usage == {"prompt_tokens": 10, "completion_tokens": 20, "total_tokens": 30}
        assert mock.await_args.kwargs["tools"] == TOOLS

    async def test_tool_calls(self, transcript: Transcript) -> None:
        response = make_mock_litellm_response(
            tool_calls=[make_tool_call("read_file", '{"path": "/x"}', call_id="call_9")],
            finish_reason="tool_calls",
        )
        with patch("litellm.acompletion", AsyncMock(return_value=response)):
            completion = await CompletionClient(AgentConfig()).complete(transcript, TOOLS)

        assert completion.content == ""
        assert len(completion.tool_calls) == 1
        assert completion.tool_calls[0].id == "call_9"
        assert completion.tool_calls[0].arguments() == {"path": "/x"}

    async def test_api_failure_wrapped(self, transcript: Transcript) -> None:
        with patch("litellm.acompletion", AsyncMock(side_effect=RuntimeError("rate limited"))):
            with pytest.raises(CompletionError, match="rate limited"):
                await CompletionClient(AgentConfig()).complete(transcript)

    async def test_no_choices(self, transcript: Transcript) -> None:
        response = make_mock_litellm_response("x")
        response.choices = []
        with patch("litellm.acompletion", AsyncMock(return_value=response)):
            with pytest.raises(CompletionError, match="no choices"):
                await CompletionClient(AgentConfig()).complete(transcript)


class TestStream:
    async def test_deltas_then_completion(self, transcript: Transcript) -> None:
        chunks = [
            {"choices": [{"delta": {"content": "Hel"}}]},
            {"choices": [{"delta": {"content": "lo"}}]},
            {
                "choices": [
                    {
                        "delta": {
                            "tool_calls": [
                                {"index": 0, "id": "call_x", "function": {"name": "read_file", "arguments": '{"pa'}}
                            ]
                        }
                    }
                ]
            },
            {
                "choices": [
                    {
                        "delta": {"tool_calls": [{"index": 0, "function": {"arguments": 'th": "/x"}'}}]},
                        "finish_reason": "tool_calls",
                    }
                ]
            },
            {"choices": [], "usage": {"prompt_tokens": 1, "completion_tokens": 2, "total_tokens": 3}},
        ]
        mock = AsyncMock(return_value=stream_of(chunks))
        with patch("litellm.acompletion", mock):
            items = [item async for item in CompletionClient(AgentConfig()).stream(transcript, TOOLS)]

        assert items[:2] == ["Hel", "lo"]
        final = items[-1]
        assert isinstance(final, Completion)
        assert final.content == "Hello"
        assert final.finish_reason == "tool_calls"
        assert final.usage == {"prompt_tokens": 1, "completion_tokens": 2, "total_tokens": 3}
        assert [(c.id, c.tool_name) for c in final.tool_calls] == [("call_x", "read_file")]
        assert final.tool_calls[0].arguments() == {"path": "/x"}
        assert mock.await_args.kwargs["stream"] is True

    async def test_stream_failure_wrapped(self, transcript: Transcript) -> None:
        async def broken():  # type: ignore[no-untyped-def]
            yield {"choices": [{"delta": {"content": "partial"}}]}
            raise RuntimeError("connection reset")

        with patch("litellm.acompletion", AsyncMock(return_value=broken())):
            with pytest.raises(CompletionError, match="connection reset"):
                async for _ in CompletionClient(AgentConfig()).stream(transcript):
                    pass
