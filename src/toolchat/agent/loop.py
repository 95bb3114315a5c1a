"""AgentLoop — iterative tool-use conversation with a chat-completion model.

One turn: append the user message, ask the model (with the registry's tools),
run every requested tool, feed the results back, and repeat until the model
answers in plain text or the iteration cap is reached. Only one turn runs
per transcript at a time; a second one is rejected with
:class:`AgentBusyError`. A turn that fails or is cancelled leaves the
transcript exactly as it was before the turn started.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from toolchat.agent.completion import Completion, CompletionClient
from toolchat.agent.errors import AgentBusyError
from toolchat.agent.intents import ThinkingFilter, clean_response, extract_thinking, extract_tool_mentions
from toolchat.agent.models import (
    AgentConfig,
    AgentResponse,
    ChatEntry,
    ConversationMessage,
    ToolCallIntent,
    Transcript,
)
from toolchat.protocols.errors import ProtocolError, format_failure
from toolchat.utils.telemetry import ATTR_ITERATION, ATTR_PROVIDER, ATTR_TOOLS_EXECUTED, get_tracer

if TYPE_CHECKING:
    from toolchat.core.registry.models import Tool
    from toolchat.core.registry.registry import ToolRegistry

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

BASE_CONFIDENCE = 0.95
ITERATION_PENALTY = 0.05
TOOL_PENALTY = 0.02

_DIRECT_PREFIX_RE = re.compile(r"^(?:please\s+)?(?:use|run|execute|call)\s+(?:the\s+)?", re.IGNORECASE)

Emit = Callable[[str], Any]


def compute_confidence(iterations: int, tools_executed: int) -> float:
    """Heuristic score in [0, 1]; every extra iteration or tool lowers it."""
    score = BASE_CONFIDENCE - ITERATION_PENALTY * max(iterations - 1, 0) - TOOL_PENALTY * tools_executed
    return min(max(score, 0.0), 1.0)


def normalize_tool_reference(text: str) -> str:
    """``"Run the Read File tool!"`` -> ``"read_file"``."""
    value = _DIRECT_PREFIX_RE.sub("", text.strip())
    value = value.strip().rstrip(".!?").strip()
    if value.lower().endswith(" tool"):
        value = value[: -len(" tool")]
    return re.sub(r"[\s-]+", "_", value.strip()).lower()


class AgentLoop:
    """Drives one conversation against a model and a tool registry.

    Usage::

        agent = AgentLoop(registry, config=AgentConfig(model="openai/gpt-4o"))
        response = await agent.process_message("What's in README.md?")

        async for chunk in agent.stream_message("Summarise it"):
            print(chunk, end="")
    """

    def __init__(
        self,
        registry: ToolRegistry,
        completion: CompletionClient | None = None,
        config: AgentConfig | None = None,
        *,
        server_name: str = "server",
    ) -> None:
        self.config = config or AgentConfig()
        self.registry = registry
        self.completion = completion or CompletionClient(self.config)
        self.server_name = server_name
        self.transcript = Transcript.with_system_prompt(self.config.system_prompt)
        self.chat_log: list[ChatEntry] = []
        self._busy = False
        self._stream_tasks: set[asyncio.Task[AgentResponse]] = set()

    @property
    def busy(self) -> bool:
        return self._busy

    # -- public API ----------------------------------------------------------

    async def process_message(self, text: str) -> AgentResponse:
        """Run one full turn and return the final answer."""
        self._acquire()
        try:
            return await self._turn(text, emit=None)
        finally:
            self._busy = False

    def stream_message(self, text: str) -> AgentStream:
        """Start a turn whose visible text arrives as incremental chunks.

        Must be called with a running event loop. The turn runs in its own
        task, so a consumer that stops iterating early does not stop it: the
        transcript is still updated once the turn completes.
        """
        self._acquire()
        queue: asyncio.Queue[Any] = asyncio.Queue()
        try:
            task = asyncio.get_running_loop().create_task(self._produce(text, queue))
        except BaseException:
            self._busy = False
            raise
        self._stream_tasks.add(task)
        task.add_done_callback(self._stream_done)
        return AgentStream(queue, task)

    def clear_history(self) -> None:
        """Truncate the transcript to its system message."""
        self.transcript.clear()

    def export_history(self) -> str:
        return self.transcript.export()

    def match_direct_tool(self, text: str) -> Tool | None:
        """A registered tool that *text* names (almost) exactly, if any."""
        wanted = normalize_tool_reference(text)
        if not wanted:
            return None
        for tool in self.registry.tools:
            if tool.name.lower() == wanted or tool.name.lower().replace("-", "_") == wanted:
                return tool
        return None

    # -- turn machinery ------------------------------------------------------

    def _acquire(self) -> None:
        if self._busy:
            raise AgentBusyError
        self._busy = True

    async def _produce(self, text: str, queue: asyncio.Queue[Any]) -> AgentResponse:
        try:
            response = await self._turn(text, emit=queue.put_nowait)
        except asyncio.CancelledError:
            queue.put_nowait(_END)
            raise
        except Exception as exc:
            queue.put_nowait(exc)
            raise
        finally:
            self._busy = False
        queue.put_nowait(_END)
        return response

    def _stream_done(self, task: asyncio.Task[AgentResponse]) -> None:
        self._stream_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Streamed turn failed: %s", task.exception())

    async def _turn(self, text: str, emit: Emit | None) -> AgentResponse:
        with _tracer.start_as_current_span("agent.turn") as span:
            span.set_attribute(ATTR_PROVIDER, self.server_name)
            if self.config.direct_invocation:
                tool = self.match_direct_tool(text)
                if tool is not None:
                    response = await self._run_direct(tool, text)
                    if emit is not None:
                        emit(response.content)
                    return response

            checkpoint = len(self.transcript)
            try:
                self.transcript.append(ConversationMessage.user(text))
                response = await self._iterate(emit)
            except BaseException:
                self.transcript.truncate(checkpoint)
                raise
            span.set_attribute(ATTR_ITERATION, response.iterations)
            span.set_attribute(ATTR_TOOLS_EXECUTED, len(response.tools_executed))
            return response

    async def _iterate(self, emit: Emit | None) -> AgentResponse:
        tools = self.registry.export_for_remote_api() or None
        tools_executed: list[str] = []
        thinking: str | None = None
        iterations = 0
        content: str | None = None

        while iterations < self.config.max_iterations:
            iterations += 1
            completion = await self._complete(tools, emit)

            found = extract_thinking(completion.content)
            if found is not None:
                thinking = found

            intents = completion.tool_calls
            if not intents and self.config.heuristic_tool_calls:
                intents = extract_tool_mentions(completion.content, self.registry.names)
            if not intents:
                content = clean_response(completion.content)
                self.transcript.append(ConversationMessage.assistant(content))
                break

            self.transcript.append(
                ConversationMessage.assistant(clean_response(completion.content), tool_calls=intents)
            )
            for intent in intents:
                result = await self._execute(intent)
                tools_executed.append(intent.tool_name)
                self.transcript.append(ConversationMessage.tool(intent.id, result))

        if content is None:
            content = format_failure(
                f"Stopped after {iterations} iterations without a final answer"
            )
            self.transcript.append(ConversationMessage.assistant(content))
            if emit is not None:
                emit(content)

        return AgentResponse(
            content=content,
            tools_executed=tools_executed,
            thinking=thinking,
            confidence=compute_confidence(iterations, len(tools_executed)),
            iterations=iterations,
        )

    async def _complete(self, tools: list[dict[str, Any]] | None, emit: Emit | None) -> Completion:
        if emit is None:
            return await self.completion.complete(self.transcript, tools)

        visible = ThinkingFilter()
        final: Completion | None = None
        async for item in self.completion.stream(self.transcript, tools):
            if isinstance(item, Completion):
                final = item
                continue
            chunk = visible.feed(item)
            if chunk:
                emit(chunk)
        tail = visible.flush()
        if tail:
            emit(tail)
        return final if final is not None else Completion()

    async def _execute(self, intent: ToolCallIntent) -> str:
        """Run one tool call; failures come back as failure-marked text."""
        try:
            arguments = intent.arguments()
        except ValueError as exc:
            logger.warning("Bad arguments for %s: %s", intent.tool_name, exc)
            return format_failure(f"Invalid arguments for {intent.tool_name}: {exc}")
        try:
            return await self.registry.invoke(intent.tool_name, arguments)
        except ProtocolError as exc:
            logger.warning("Tool %s failed: %s", intent.tool_name, exc)
            return format_failure(exc)

    async def _run_direct(self, tool: Tool, text: str) -> AgentResponse:
        """Bypass the model: run *tool* and log the exchange as chat entries."""
        self.chat_log.append(ChatEntry(sender="user", content=text))
        try:
            result = await self.registry.invoke_text(tool.name, "")
        except ProtocolError as exc:
            logger.warning("Direct call to %s failed: %s", tool.name, exc)
            result = format_failure(exc)
        self.chat_log.append(ChatEntry(sender=self.server_name, content=result, from_server=True))
        return AgentResponse(
            content=result,
            tools_executed=[tool.name],
            confidence=compute_confidence(1, 1),
            iterations=0,
            direct=True,
        )


_END = object()


class AgentStream:
    """Finite, non-restartable async iterator over one streamed turn.

    ``await stream.response()`` gives the final :class:`AgentResponse`.
    """

    def __init__(self, queue: asyncio.Queue[Any], task: asyncio.Task[AgentResponse]) -> None:
        self._queue = queue
        self._task = task
        self._finished = False

    def __aiter__(self) -> AgentStream:
        return self

    async def __anext__(self) -> str:
        if self._finished:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END:
            self._finished = True
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            self._finished = True
            raise item
        return str(item)

    async def aclose(self) -> None:
        """Stop consuming; the turn itself keeps running to completion."""
        self._finished = True

    def cancel(self) -> None:
        """Abort the turn; the transcript is rolled back to where it started."""
        self._finished = True
        self._task.cancel()

    async def response(self) -> AgentResponse:
        return await self._task

    @property
    def done(self) -> bool:
        return self._task.done()
