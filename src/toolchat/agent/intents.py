"""Free-text extraction — ``<thinking>`` segments and heuristic tool mentions.

Structured ``tool_calls`` from the completion API are the normal path.
The mention extractor is a fallback for models that describe a tool call in
prose instead (ReAct ``Action:`` blocks, "let me use the read_file tool").
"""

from __future__ import annotations

import json
import re
from collections.abc import Collection

from toolchat.agent.models import ToolCallIntent

THINKING_OPEN = "<thinking>"
THINKING_CLOSE = "</thinking>"

_THINKING_RE = re.compile(r"<thinking>(.*?)</thinking>", re.DOTALL)

# ReAct patterns accept optional whitespace and work across multi-line text.
_ACTION_RE = re.compile(r"Action:\s*(.+)")
_ACTION_INPUT_RE = re.compile(r"Action Input:\s*(.+)", re.DOTALL)

EXPLICIT_TOOL_PHRASES: tuple[str, ...] = (
    "let me use the",
    "i'll use the",
    "i will use the",
    "let me run",
    "i'll run",
    "i will run",
)

_WORD_RE = re.compile(r"\s*(?:the\s+)?[`'\"]?([\w.-]+)")


def extract_thinking(text: str) -> str | None:
    """Content of the first ``<thinking>...</thinking>`` pair, or ``None``."""
    match = _THINKING_RE.search(text)
    return match.group(1).strip() if match else None


def clean_response(text: str) -> str:
    """Remove every thinking segment and trim."""
    return _THINKING_RE.sub("", text).strip()


class ThinkingFilter:
    """Strips thinking segments from a stream of text chunks.

    Tags may be split across chunks, so a short tail that could be the start
    of a tag is held back until the next chunk decides it. An unterminated
    segment is released unchanged by :meth:`flush`, matching
    :func:`clean_response`, which only removes closed pairs.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._inside = False
        self._held_thinking = ""

    def feed(self, chunk: str) -> str:
        self._buffer += chunk
        visible: list[str] = []
        while self._buffer:
            if not self._inside:
                start = self._buffer.find(THINKING_OPEN)
                if start >= 0:
                    visible.append(self._buffer[:start])
                    self._buffer = self._buffer[start + len(THINKING_OPEN):]
                    self._inside = True
                    self._held_thinking = ""
                    continue
                keep = _partial_tag_length(self._buffer, THINKING_OPEN)
                visible.append(self._buffer[: len(self._buffer) - keep])
                self._buffer = self._buffer[len(self._buffer) - keep:]
                break
            end = self._buffer.find(THINKING_CLOSE)
            if end >= 0:
                self._buffer = self._buffer[end + len(THINKING_CLOSE):]
                self._inside = False
                self._held_thinking = ""
                continue
            keep = _partial_tag_length(self._buffer, THINKING_CLOSE)
            self._held_thinking += self._buffer[: len(self._buffer) - keep]
            self._buffer = self._buffer[len(self._buffer) - keep:]
            break
        return "".join(visible)

    def flush(self) -> str:
        """Release whatever is still held back at end of stream."""
        if self._inside:
            tail = THINKING_OPEN + self._held_thinking + self._buffer
        else:
            tail = self._buffer
        self._buffer = ""
        self._held_thinking = ""
        self._inside = False
        return tail


def _partial_tag_length(text: str, tag: str) -> int:
    """Length of the longest suffix of *text* that is a proper prefix of *tag*."""
    for size in range(min(len(tag) - 1, len(text)), 0, -1):
        if text.endswith(tag[:size]):
            return size
    return 0


def extract_tool_mentions(text: str, known_tools: Collection[str]) -> list[ToolCallIntent]:
    """Find a tool call described in prose; at most one intent is returned.

    Only names of registered tools count. A ReAct ``Action:`` block wins over
    explicit phrases.
    """
    visible = clean_response(text)
    by_lower = {name.lower(): name for name in known_tools}

    action = _ACTION_RE.search(visible)
    if action:
        name = by_lower.get(action.group(1).strip().strip("`'\"").lower())
        if name is not None:
            return [ToolCallIntent(tool_name=name, arguments_json=_action_input(visible))]

    lowered = visible.lower()
    for phrase in EXPLICIT_TOOL_PHRASES:
        index = lowered.find(phrase)
        while index >= 0:
            match = _WORD_RE.match(visible, index + len(phrase))
            if match:
                name = by_lower.get(match.group(1).rstrip(".").lower())
                if name is not None:
                    return [ToolCallIntent(tool_name=name)]
            index = lowered.find(phrase, index + 1)
    return []


def _action_input(text: str) -> str:
    match = _ACTION_INPUT_RE.search(text)
    if not match:
        return "{}"
    raw = match.group(1).strip()
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return json.dumps({"input": raw})
    return json.dumps(parsed) if isinstance(parsed, dict) else json.dumps({"input": parsed})
