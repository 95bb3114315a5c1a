"""Tests for the protocol error taxonomy."""

from __future__ import annotations

from toolchat.protocols.errors import (
    FAILURE_MARKER,
    InvalidEnumValueError,
    InvalidParameterTypeError,
    MissingRequiredParameterError,
    NotConnectedError,
    ParameterValidationError,
    ProtocolError,
    RemoteError,
    ToolExecutionError,
    ToolNotFoundError,
    format_failure,
)


class TestErrorMessages:
    def test_parameter_errors_share_a_base(self) -> None:
        for error in (
            MissingRequiredParameterError("path"),
            InvalidParameterTypeError("count", "integer"),
            InvalidEnumValueError("mode", ["fast", "slow"]),
        ):
            assert isinstance(error, ParameterValidationError)
            assert isinstance(error, ProtocolError)

    def test_messages(self) -> None:
        assert str(MissingRequiredParameterError("path")) == "Missing required parameter: path"
        assert str(InvalidParameterTypeError("count", "integer")) == (
            "Invalid type for parameter 'count'. Expected: integer"
        )
        assert str(InvalidEnumValueError("mode", ["fast", "slow"])).endswith("Allowed values: fast, slow")
        assert str(ToolNotFoundError("nope")) == "Tool not found: nope"
        assert str(ToolExecutionError("build", "exit 1")) == "Tool execution failed: build - exit 1"
        assert str(RemoteError(-32601, "Method not found")) == "Server error -32601: Method not found"
        assert str(NotConnectedError()) == "Not connected to tool provider"

    def test_format_failure(self) -> None:
        assert format_failure(ToolNotFoundError("x")) == f"{FAILURE_MARKER} Tool not found: x"
        assert format_failure("plain").startswith(FAILURE_MARKER)
