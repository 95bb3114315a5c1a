"""Tests for the transcript <-> OpenAI wire mapping."""

from __future__ import annotations

from toolchat.agent.models import ConversationMessage, ToolCallIntent, Transcript
from toolchat.agent.wire import message_to_openai, parse_tool_calls, transcript_to_openai, usage_dict


class TestMessageToOpenAI:
    def test_plain(self) -> None:
        assert message_to_openai(ConversationMessage.user("hi")) == {"role": "user", "content": "hi"}

    def test_tool_result(self) -> None:
        msg = ConversationMessage.tool("call_1", "output")
        assert message_to_openai(msg) == {"role": "tool", "tool_call_id": "call_1", "content": "output"}

    def test_assistant_tool_calls(self) -> None:
        intent = ToolCallIntent(id="call_1", tool_name="read_file", arguments_json='{"path": "/x"}')
        data = message_to_openai(ConversationMessage.assistant("", tool_calls=[intent]))
        assert data["content"] is None
        assert data["tool_calls"] == [
            {"id": "call_1", "type": "function", "function": {"name": "read_file", "arguments": '{"path": "/x"}'}}
        ]

    def test_transcript_order(self) -> None:
        transcript = Transcript.with_system_prompt("sys")
        transcript.append(ConversationMessage.user("hi"))
        assert [m["role"] for m in transcript_to_openai(transcript)] == ["system", "user"]


class TestParseToolCalls:
    def test_dicts(self) -> None:
        intents = parse_tool_calls(
            [
                {"id": "call_a", "function": {"name": "read_file", "arguments": '{"path": "/x"}'}},
                {"id": "call_b", "function": {"name": "list_dir", "arguments": {"path": "/"}}},
                {"id": "call_c", "function": {"arguments": "{}"}},
            ]
        )
        assert [(i.id, i.tool_name) for i in intents] == [("call_a", "read_file"), ("call_b", "list_dir")]
        assert intents[1].arguments() == {"path": "/"}

    def test_missing_id_gets_generated(self) -> None:
        intents = parse_tool_calls([{"function": {"name": "x", "arguments": ""}}])
        assert intents[0].id.startswith("call_")
        assert intents[0].arguments() == {}

    def test_none(self) -> None:
        assert parse_tool_calls(None) == []


class TestUsage:
    def test_usage_dict(self) -> None:
        usage = usage_dict({"usage": {"prompt_tokens": 3, "completion_tokens": 4, "total_tokens": 7}})
        assert usage == {"prompt_tokens": 3, "completion_tokens": 4, "total_tokens": 7}

    def test_no_usage(self) -> None:
        assert usage_dict({"choices": []}) is None
