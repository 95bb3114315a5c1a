"""``toolchat chat`` — interactive session against one tool provider."""

from __future__ import annotations

import asyncio
import sys
from typing import TYPE_CHECKING

import click
from rich.markup import escape

from toolchat.agent.errors import AgentError
from toolchat.agent.models import ChatEntry
from toolchat.cli_commands._output import (
    configure_logging,
    console,
    print_response,
    print_server_output,
    print_tools_table,
)
from toolchat.config import ClientSettings, ConfigError
from toolchat.core.routing.router import classify, route
from toolchat.protocols.errors import ProtocolError, format_failure

if TYPE_CHECKING:
    from toolchat.agent.loop import AgentLoop
    from toolchat.core.registry.registry import ToolRegistry
    from toolchat.protocols.mcp.client import MCPClient

PROMPT = "you> "


class ChatSession:
    """One REPL conversation: direct provider commands or agent turns.

    Each line is classified first. Direct commands are routed and invoked
    without the model; everything else becomes an agent turn.
    """

    def __init__(
        self,
        agent: AgentLoop,
        registry: ToolRegistry,
        *,
        stream: bool = False,
        client: MCPClient | None = None,
    ) -> None:
        self.agent = agent
        self.registry = registry
        self.stream = stream
        self.client = client

    @property
    def server_name(self) -> str:
        return self.agent.server_name

    async def handle(self, line: str) -> bool:
        """Process one input line; ``False`` means the session should end."""
        text = line.strip()
        if not text:
            return True
        if text.startswith("/"):
            return await self._slash(text)

        kind = classify(text, self.registry.names, self.registry.meta_commands, self.registry.umbrella)
        if kind == "direct":
            await self._direct(text)
        else:
            await self._ask(text)
        return True

    async def _slash(self, text: str) -> bool:
        command = text.split()[0].lower()
        if command in ("/quit", "/exit"):
            return False
        if command == "/tools":
            print_tools_table(self.registry.tools)
        elif command == "/clear":
            self.agent.clear_history()
            console.print("[green]History cleared.[/green]")
        elif command == "/history":
            console.print(escape(self.agent.export_history()))
        elif command == "/refresh":
            try:
                await self.registry.refresh()
                await self.registry.discover_meta_commands()
            except ProtocolError as exc:
                console.print(f"[red]Refresh error:[/red] {escape(str(exc))}")
            else:
                console.print(f"[green]{len(self.registry)} tool(s) available.[/green]")
        elif command == "/ping":
            await self._ping()
        else:
            console.print(f"[yellow]Unknown command: {escape(command)}[/yellow]")
        return True

    async def _ping(self) -> None:
        if self.client is None:
            console.print("[yellow]Ping needs a live provider connection.[/yellow]")
            return
        try:
            latency = await self.client.ping()
        except ProtocolError as exc:
            console.print(f"[red]Ping failed:[/red] {escape(str(exc))}")
        else:
            console.print(f"[green]{escape(self.server_name)} answered in {latency * 1000:.1f} ms.[/green]")

    async def _direct(self, text: str) -> None:
        decision = route(text, self.registry.names, self.registry.meta_commands, self.registry.umbrella)
        console.print(f"[cyan][→] {escape(decision.tool_name)}[/cyan] {escape(decision.arguments)}")
        self.agent.chat_log.append(ChatEntry(sender="user", content=text))
        try:
            result = await self.registry.invoke_text(decision.tool_name, decision.arguments)
        except ProtocolError as exc:
            result = format_failure(exc)
        self.agent.chat_log.append(ChatEntry(sender=self.server_name, content=result, from_server=True))
        print_server_output(self.server_name, result)

    async def _ask(self, text: str) -> None:
        try:
            if self.stream:
                stream = self.agent.stream_message(text)
                async for chunk in stream:
                    console.print(chunk, end="", markup=False, highlight=False)
                console.print()
                print_response(await stream.response(), content=False)
            else:
                print_response(await self.agent.process_message(text))
        except (AgentError, ProtocolError) as exc:
            console.print(f"[red]Agent error:[/red] {escape(str(exc))}")


async def run_repl(session: ChatSession) -> None:
    """Read lines until EOF or ``/quit``; ``input`` runs off the event loop."""
    loop = asyncio.get_running_loop()
    while True:
        try:
            line = await loop.run_in_executor(None, input, PROMPT)
        except EOFError:
            break
        if not await session.handle(line):
            break


@click.command()
@click.option("--config", "-c", "config_path", default=None, type=click.Path(), help="Provider config file.")
@click.option("--provider", "-p", default=None, help="Provider name from the config file.")
@click.option("--url", default=None, help="Provider URL (tcp://host:port or ws://...), overrides --config.")
@click.option("--model", "-m", default="openai/gpt-4o-mini", envvar="TOOLCHAT_MODEL", show_default=True)
@click.option("--api-base", default=None, envvar="TOOLCHAT_API_BASE", help="Completion API base URL.")
@click.option("--api-key", default=None, envvar="TOOLCHAT_API_KEY", help="Completion API key.")
@click.option("--temperature", default=0.7, type=float, envvar="TOOLCHAT_TEMPERATURE", show_default=True)
@click.option("--max-tokens", default=4000, type=int, envvar="TOOLCHAT_MAX_TOKENS", show_default=True)
@click.option("--max-iterations", default=5, type=click.IntRange(min=1), envvar="TOOLCHAT_MAX_ITERATIONS",
              show_default=True)
@click.option("--timeout", default=30.0, type=float, envvar="TOOLCHAT_TIMEOUT", show_default=True,
              help="Provider request timeout in seconds.")
@click.option("--stream", is_flag=True, help="Stream agent answers as they are generated.")
@click.option("--heuristics", is_flag=True, help="Detect tool calls described in prose.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option("--telemetry", is_flag=True, help="Print OpenTelemetry spans to the console.")
def chat(
    config_path: str | None,
    provider: str | None,
    url: str | None,
    model: str,
    api_base: str | None,
    api_key: str | None,
    temperature: float,
    max_tokens: int,
    max_iterations: int,
    timeout: float,
    stream: bool,
    heuristics: bool,
    verbose: bool,
    telemetry: bool,
) -> None:
    """Chat with a tool provider; direct commands bypass the model."""
    from toolchat.agent.loop import AgentLoop
    from toolchat.cli_commands._provider import connect_registry, resolve_endpoint

    configure_logging(verbose)

    if telemetry:
        from toolchat.utils.telemetry import configure_telemetry

        try:
            configure_telemetry(service_name="toolchat", export_to_console=True)
        except ImportError as exc:
            console.print(f"[yellow]Telemetry disabled:[/yellow] {exc}")

    try:
        endpoint = resolve_endpoint(config_path, provider, url)
    except ConfigError as exc:
        console.print(f"[red]Config error:[/red] {escape(str(exc))}")
        sys.exit(1)

    settings = ClientSettings(
        model=model,
        api_base=api_base,
        api_key=api_key,
        temperature=temperature,
        max_tokens=max_tokens,
        max_iterations=max_iterations,
        request_timeout=timeout,
        heuristic_tool_calls=heuristics,
    )

    async def _chat() -> None:
        client, registry = await connect_registry(endpoint, settings.request_timeout)
        try:
            server = client.context.server_name or endpoint.name or "server"
            agent = AgentLoop(registry, config=settings.agent_config(), server_name=server)
            console.print(
                f"[green]Connected to {escape(server)}[/green] with {len(registry)} tool(s). "
                "Type /tools, /clear, /history, /refresh, /ping or /quit."
            )
            await run_repl(ChatSession(agent, registry, stream=stream, client=client))
        finally:
            await client.close()

    try:
        asyncio.run(_chat())
    except KeyboardInterrupt:
        console.print()
    except (ProtocolError, OSError, ValueError) as exc:
        console.print(f"[red]Connection error:[/red] {escape(str(exc))}")
        sys.exit(1)
