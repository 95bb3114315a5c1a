"""Shared error types for the protocol and tool layers."""

from __future__ import annotations

from typing import Any

FAILURE_MARKER = "❌"


class ProtocolError(Exception):
    """Base error for all protocol-layer failures."""


class NotConnectedError(ProtocolError):
    """The session has no live transport (never connected, or torn down)."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__("Not connected to tool provider" + (f": {detail}" if detail else ""))


class ConnectionFailedError(ProtocolError):
    """The transport could not be opened or broke while in use."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Connection failed: {reason}")


class RequestTimeoutError(ProtocolError):
    """No response arrived for a request within its timeout."""

    def __init__(self, method: str, timeout: float) -> None:
        self.method = method
        self.timeout = timeout
        super().__init__(f"Request '{method}' timed out after {timeout}s")


class RemoteError(ProtocolError):
    """The provider answered a request with a JSON-RPC ``error`` object."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"Server error {code}: {message}")


class ToolNotFoundError(ProtocolError):
    """Requested tool does not exist in the registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool not found: {name}")


class ToolExecutionError(ProtocolError):
    """A tool invocation failed at the provider side."""

    def __init__(self, name: str, detail: str = "") -> None:
        self.name = name
        self.detail = detail
        super().__init__(f"Tool execution failed: {name}" + (f" - {detail}" if detail else ""))


class ParameterValidationError(ProtocolError):
    """Arguments for a tool failed validation before dispatch."""


class MissingRequiredParameterError(ParameterValidationError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Missing required parameter: {name}")


class InvalidParameterTypeError(ParameterValidationError):
    def __init__(self, name: str, expected: str) -> None:
        self.name = name
        self.expected = expected
        super().__init__(f"Invalid type for parameter '{name}'. Expected: {expected}")


class InvalidEnumValueError(ParameterValidationError):
    def __init__(self, name: str, allowed: list[str]) -> None:
        self.name = name
        self.allowed = list(allowed)
        super().__init__(
            f"Invalid value for parameter '{name}'. Allowed values: {', '.join(self.allowed)}"
        )


class SchemaInferenceWarning(UserWarning):
    """Zero parameters were inferred from a schema that was not empty.

    Never raised; used as the category name when the caution state is logged.
    """


def format_failure(error: BaseException | str) -> str:
    """Render an error as a short chat line carrying the failure marker."""
    return f"{FAILURE_MARKER} {error}"
