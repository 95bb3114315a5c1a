"""Agent layer — transcript, completion client, and the tool-use loop."""

from toolchat.agent.errors import AgentBusyError, AgentError, CompletionError
from toolchat.agent.loop import AgentLoop, AgentStream, compute_confidence
from toolchat.agent.models import (
    AgentConfig,
    AgentResponse,
    ChatEntry,
    ConversationMessage,
    ToolCallIntent,
    Transcript,
)

__all__ = [
    "AgentBusyError",
    "AgentConfig",
    "AgentError",
    "AgentLoop",
    "AgentResponse",
    "AgentStream",
    "ChatEntry",
    "CompletionError",
    "ConversationMessage",
    "ToolCallIntent",
    "Transcript",
    "compute_confidence",
]
