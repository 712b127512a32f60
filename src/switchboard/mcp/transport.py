"""In-process transport.

InMemoryTransport connects a server to clients living in the same event
loop. It is the transport used by tests and by ``switchboard tools call``.
Messages are passed as objects; nothing is serialized.

Usage:
    transport = InMemoryTransport()
    server = create_server(transport=transport)
    await server.start()

    client = await transport.connect("s-1", sampling_handler=answer)
    result = await client.call_tool("calculate", {"x": 1, "y": 2, "operation": "add"})
    await client.close()
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import uuid4

import structlog

from switchboard.core.types import Result
from switchboard.mcp.errors import MCPServerError
from switchboard.mcp.server.protocol import (
    CallResponseMessage,
    CancelMessage,
    InboundHandler,
    InboundMessage,
    OutboundMessage,
    ResourceReadMessage,
    SamplingRequestMessage,
    SamplingResponseMessage,
    SessionAckMessage,
    SessionCloseMessage,
    SessionOpenMessage,
    ToolCallMessage,
)
from switchboard.mcp.types import (
    MCPResourceContent,
    MCPToolResult,
    SamplingParams,
    SamplingResult,
)

log = structlog.get_logger(__name__)

SamplingHandler = Callable[[SamplingParams], Awaitable[SamplingResult]]


class InMemoryTransport:
    """Routes messages between one server and any number of in-process clients."""

    def __init__(self) -> None:
        self._handler: InboundHandler | None = None
        self._clients: dict[str, InMemoryClient] = {}

    @property
    def connected_sessions(self) -> tuple[str, ...]:
        return tuple(self._clients)

    def register_inbound_handler(self, handler: InboundHandler) -> None:
        """Register the server callback for inbound messages."""
        self._handler = handler

    async def send(self, session_id: str, message: OutboundMessage) -> None:
        """Deliver a server message to the client of session_id.

        Raises:
            MCPServerError: If no client is connected for the session.
        """
        client = self._clients.get(session_id)
        if client is None:
            raise MCPServerError(
                f"No connection for session: {session_id}",
                details={"session_id": session_id},
            )
        client.deliver(message)

    async def receive(self, session_id: str, message: InboundMessage) -> None:
        """Hand a client message to the server."""
        if self._handler is None:
            raise MCPServerError("Transport has no inbound handler; is the server started?")
        await self._handler(session_id, message)

    async def connect(
        self,
        session_id: str | None = None,
        *,
        sampling_handler: SamplingHandler | None = None,
        credentials: dict[str, str] | None = None,
        user_id: str | None = None,
    ) -> InMemoryClient:
        """Open a session and return its client.

        Raises:
            MCPServerError: If the server refused the session (for example,
                failed authentication or a duplicate id).
        """
        session_id = session_id or uuid4().hex
        if session_id in self._clients:
            raise MCPServerError(f"Session already connected: {session_id}")

        client = InMemoryClient(self, session_id, sampling_handler=sampling_handler)
        self._clients[session_id] = client
        await self.receive(
            session_id,
            SessionOpenMessage(credentials=credentials, user_id=user_id),
        )

        ack = await client.wait_for_ack()
        if not ack.accepted:
            self._clients.pop(session_id, None)
            raise ack.error or MCPServerError("Session refused")
        log.debug("mcp.transport.connected", session_id=session_id)
        return client

    async def disconnect(self, session_id: str, *, reason: str = "client_closed") -> None:
        """Close a client's session and drop the connection."""
        client = self._clients.get(session_id)
        if client is None:
            return
        try:
            await self.receive(session_id, SessionCloseMessage(reason=reason))
        finally:
            self._clients.pop(session_id, None)
            client.fail_pending(MCPServerError("Connection closed"))
        log.debug("mcp.transport.disconnected", session_id=session_id, reason=reason)


class InMemoryClient:
    """The client end of one in-process session."""

    def __init__(
        self,
        transport: InMemoryTransport,
        session_id: str,
        *,
        sampling_handler: SamplingHandler | None = None,
    ) -> None:
        self._transport = transport
        self._session_id = session_id
        self._sampling_handler = sampling_handler
        self._pending: dict[str, asyncio.Future[CallResponseMessage]] = {}
        self._ack: asyncio.Future[SessionAckMessage] = asyncio.get_running_loop().create_future()
        self._sampling_tasks: set[asyncio.Task[None]] = set()
        self.sampling_requests: list[SamplingRequestMessage] = []

    @property
    def session_id(self) -> str:
        return self._session_id

    async def wait_for_ack(self) -> SessionAckMessage:
        return await self._ack

    def deliver(self, message: OutboundMessage) -> None:
        """Receive a message from the server."""
        match message:
            case SessionAckMessage():
                if not self._ack.done():
                    self._ack.set_result(message)
            case CallResponseMessage(request_id=request_id):
                future = self._pending.pop(request_id, None)
                if future is not None and not future.done():
                    future.set_result(message)
            case SamplingRequestMessage():
                self.sampling_requests.append(message)
                task = asyncio.create_task(self._answer_sampling(message))
                self._sampling_tasks.add(task)
                task.add_done_callback(self._sampling_tasks.discard)

    def fail_pending(self, error: MCPServerError) -> None:
        """Fail every call still waiting for a response."""
        for request_id, future in list(self._pending.items()):
            if not future.done():
                future.set_result(CallResponseMessage(request_id=request_id, error=error))
        self._pending.clear()

    async def _answer_sampling(self, request: SamplingRequestMessage) -> None:
        if self._sampling_handler is None:
            response = SamplingResponseMessage(
                correlation_id=request.correlation_id,
                error="Client does not support sampling",
            )
        else:
            try:
                result = await self._sampling_handler(request.params)
            except Exception as e:
                log.warning(
                    "mcp.transport.sampling_handler_failed",
                    session_id=self._session_id,
                    error=str(e),
                )
                response = SamplingResponseMessage(
                    correlation_id=request.correlation_id,
                    error=str(e),
                )
            else:
                response = SamplingResponseMessage(
                    correlation_id=request.correlation_id,
                    result=result,
                )

        if self._session_id in self._transport.connected_sessions:
            await self._transport.receive(self._session_id, response)

    async def _request(
        self,
        message: ToolCallMessage | ResourceReadMessage,
    ) -> Result[Any, MCPServerError]:
        future: asyncio.Future[CallResponseMessage] = asyncio.get_running_loop().create_future()
        self._pending[message.request_id] = future
        await self._transport.receive(self._session_id, message)
        response = await future
        return response.to_result()

    async def call_tool(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        *,
        request_id: str | None = None,
    ) -> Result[MCPToolResult, MCPServerError]:
        """Call a tool and wait for the response."""
        return await self._request(
            ToolCallMessage(
                request_id=request_id or uuid4().hex,
                name=name,
                arguments=dict(arguments or {}),
            )
        )

    async def read_resource(
        self,
        uri: str,
        *,
        request_id: str | None = None,
    ) -> Result[MCPResourceContent, MCPServerError]:
        """Read a resource and wait for the response."""
        return await self._request(
            ResourceReadMessage(request_id=request_id or uuid4().hex, uri=uri)
        )

    async def cancel(self, request_id: str) -> None:
        """Ask the server to cancel an in-flight request."""
        await self._transport.receive(self._session_id, CancelMessage(request_id=request_id))

    async def close(self) -> None:
        """Close the session."""
        await self._transport.disconnect(self._session_id)
