"""RpcSession — JSON-RPC 2.0 request/response correlation over one transport.

One background task reads frames and demultiplexes them: responses resolve
the pending call with the matching id, anything carrying a ``method`` goes
to the registered notification handlers. Callers suspend on their own
future only, so any number of calls may be outstanding at once.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from toolchat.protocols.errors import (
    ConnectionFailedError,
    NotConnectedError,
    ProtocolError,
    RemoteError,
    RequestTimeoutError,
)
from toolchat.protocols.mcp.models import JsonRpcMessage, RequestId
from toolchat.utils.telemetry import ATTR_RPC_ID, ATTR_RPC_METHOD, get_tracer

if TYPE_CHECKING:
    from toolchat.protocols.mcp.transport import MCPTransport

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

NotificationHandler = Callable[[JsonRpcMessage], Awaitable[None] | None]

DEFAULT_TIMEOUT = 30.0


@dataclass
class PendingCall:
    """One outstanding request waiting for its response."""

    id: RequestId
    method: str
    future: asyncio.Future[Any]
    created_at: float = field(default_factory=time.monotonic)


class RpcSession:
    """Multiplexes JSON-RPC calls and notifications over an :class:`MCPTransport`.

    Usage::

        async with RpcSession(transport) as session:
            result = await session.call("tools/list", timeout=10)
    """

    def __init__(self, transport: MCPTransport) -> None:
        self._transport = transport
        self._pending: dict[RequestId, PendingCall] = {}
        self._handlers: list[NotificationHandler] = []
        self._reader_task: asyncio.Task[None] | None = None
        self._connected = False
        self._next_id = 1

    async def __aenter__(self) -> RpcSession:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.disconnect()

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def connect(self) -> None:
        """Open the transport and start the read loop."""
        if self._connected:
            return
        try:
            await self._transport.connect()
        except ProtocolError:
            raise
        except OSError as exc:
            raise ConnectionFailedError(str(exc)) from exc
        self._connected = True
        self._reader_task = asyncio.create_task(self._read_loop(), name="toolchat-rpc-reader")

    async def disconnect(self) -> None:
        """Tear down the session. Safe to call repeatedly or before ``connect``."""
        was_connected = self._connected
        self._connected = False

        task = self._reader_task
        self._reader_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        self._fail_pending(NotConnectedError("disconnected"))

        if was_connected:
            await self._transport.close()

    def on_notification(self, handler: NotificationHandler) -> None:
        """Register a handler for server-initiated messages (called in registration order)."""
        self._handlers.append(handler)

    async def call(self, method: str, params: Any = None, timeout: float = DEFAULT_TIMEOUT) -> Any:
        """Send a request and wait for its result.

        Raises
        ------
        NotConnectedError
            The session is not connected, or was torn down while waiting.
        ConnectionFailedError
            The transport broke while the call was outstanding.
        RequestTimeoutError
            No response within *timeout* seconds.
        RemoteError
            The provider answered with an ``error`` object.
        """
        if not self._connected:
            raise NotConnectedError

        request_id = self._next_id
        self._next_id += 1
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = PendingCall(id=request_id, method=method, future=future)

        with _tracer.start_as_current_span("rpc.call") as span:
            span.set_attribute(ATTR_RPC_METHOD, method)
            span.set_attribute(ATTR_RPC_ID, request_id)
            try:
                await self._write(JsonRpcMessage.request(method, request_id, params))
                return await asyncio.wait_for(future, timeout)
            except asyncio.TimeoutError:
                raise RequestTimeoutError(method, timeout) from None
            finally:
                # Released exactly once, whichever of response/timeout/cancel won.
                self._pending.pop(request_id, None)

    async def notify(self, method: str, params: Any = None) -> None:
        """Send a notification; no response is expected."""
        if not self._connected:
            raise NotConnectedError
        await self._write(JsonRpcMessage.notification(method, params))

    async def _write(self, message: JsonRpcMessage) -> None:
        logger.debug("rpc -> %s id=%s", message.method, message.id)
        data = json.dumps(message.to_wire()).encode()
        try:
            await self._transport.send(data)
        except ProtocolError:
            raise
        except OSError as exc:
            raise ConnectionFailedError(str(exc)) from exc

    async def _read_loop(self) -> None:
        failure: ProtocolError
        try:
            while True:
                frame = await self._transport.receive()
                try:
                    message = JsonRpcMessage.model_validate_json(frame)
                except ValidationError as exc:
                    logger.error("Malformed frame from provider, closing session: %s", exc)
                    failure = ConnectionFailedError("malformed message from provider")
                    break
                await self._dispatch(message)
        except asyncio.CancelledError:
            raise
        except ProtocolError as exc:
            logger.error("Read loop stopped: %s", exc)
            failure = exc
        except Exception as exc:
            logger.error("Read loop stopped: %s", exc)
            failure = ConnectionFailedError(str(exc))

        self._connected = False
        self._fail_pending(failure)
        self._reader_task = None
        await self._transport.close()

    async def _dispatch(self, message: JsonRpcMessage) -> None:
        if message.is_response:
            logger.debug("rpc <- response id=%s", message.id)
            pending = self._pending.get(message.id) if message.id is not None else None
            if pending is None:
                logger.warning("Dropping response with unknown id: %r", message.id)
                return
            if pending.future.done():
                return
            if message.error is not None:
                err = message.error
                pending.future.set_exception(RemoteError(err.code, err.message, err.data))
            else:
                pending.future.set_result(message.result)
            return

        logger.debug("rpc <- %s", message.method)
        for handler in self._handlers:
            try:
                outcome = handler(message)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.warning("Notification handler failed for %s", message.method, exc_info=True)

    def _fail_pending(self, error: ProtocolError) -> None:
        for pending in list(self._pending.values()):
            if not pending.future.done():
                pending.future.set_exception(error)
