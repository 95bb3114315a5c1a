"""Error types for the agent loop."""

from __future__ import annotations


class AgentError(Exception):
    """Base error for agent-loop failures."""


class AgentBusyError(AgentError):
    """A turn was started while another one is still running on the same transcript."""

    def __init__(self) -> None:
        super().__init__("Agent is already processing a message")


class CompletionError(AgentError):
    """The remote chat-completion API call failed."""

    def __init__(self, model: str, detail: str = "") -> None:
        self.model = model
        self.detail = detail
        super().__init__(f"Completion failed for {model}" + (f": {detail}" if detail else ""))
