"""MCP Server protocol definitions.

This module defines the interfaces the dispatch runtime is written against:
tool and resource handlers, middleware links, and the transport. It also
defines the messages that travel over a transport in either direction.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from switchboard.core.types import Result
from switchboard.mcp.errors import MCPServerError, MCPToolError
from switchboard.mcp.types import (
    MCPResourceContent,
    MCPResourceDefinition,
    MCPToolDefinition,
    MCPToolResult,
    SamplingParams,
    SamplingResult,
)

if TYPE_CHECKING:
    from switchboard.mcp.server.context import ToolContext
    from switchboard.mcp.server.middleware import CallRequest


class ToolHandler(Protocol):
    """Protocol for tool handler implementations.

    A handler supplies its definition (the schema the registry validates
    against), a decode step from validated arguments to its typed input,
    and the tool logic itself. A handler may set a ``TIMEOUT_SECONDS``
    attribute to override the registry's default timeout.

    Example:
        class GreetHandler:
            @property
            def definition(self) -> MCPToolDefinition:
                return MCPToolDefinition(
                    name="greet",
                    description="Say hello",
                    parameters=(
                        MCPToolParameter(name="name", type=ToolInputType.STRING),
                    ),
                )

            def decode(self, arguments: dict[str, Any]) -> str:
                return arguments["name"]

            async def handle(
                self, params: str, context: ToolContext
            ) -> Result[MCPToolResult, MCPToolError]:
                return Result.ok(MCPToolResult.text(f"Hello, {params}"))
    """

    @property
    def definition(self) -> MCPToolDefinition:
        """Return the tool definition."""
        ...

    def decode(self, arguments: dict[str, Any]) -> Any:
        """Build the typed input from validated arguments."""
        ...

    async def handle(
        self,
        params: Any,
        context: ToolContext,
    ) -> Result[MCPToolResult, MCPToolError]:
        """Handle a tool call.

        Args:
            params: Typed input produced by decode().
            context: Per-call context (session, logger, sampling).

        Returns:
            Result containing the tool result or a tool business failure.
        """
        ...


class ResourceHandler(Protocol):
    """Protocol for resource handler implementations.

    Resource handlers provide read access to resources via URI.
    Each handler is responsible for one or more resource URIs.
    """

    @property
    def definitions(self) -> Sequence[MCPResourceDefinition]:
        """Return the resource definitions this handler serves."""
        ...

    async def handle(
        self,
        uri: str,
        context: ToolContext,
    ) -> Result[MCPResourceContent, MCPServerError]:
        """Handle a resource read.

        Args:
            uri: The URI of the resource to read.
            context: Per-call context of the reading session.

        Returns:
            Result containing the resource content or an error.
        """
        ...


Terminal = Callable[["CallRequest"], Awaitable[Any]]
"""Innermost handler of a middleware chain (the registry invocation)."""

NextHandler = Callable[[], Awaitable[Any]]
"""Continuation handed to a middleware. Call it at most once."""


class Middleware(Protocol):
    """A named interceptor wrapping every tool and resource call.

    Code before ``await call_next()`` runs on the way in (outermost first);
    code after it runs on the way out (innermost first). Not calling
    ``call_next`` short-circuits the chain.
    """

    name: str

    async def __call__(self, request: CallRequest, call_next: NextHandler) -> Any:
        """Intercept a call."""
        ...


# Inbound messages (client -> server)


@dataclass(frozen=True, slots=True)
class ToolCallMessage:
    """Invoke a tool."""

    request_id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ResourceReadMessage:
    """Read a resource."""

    request_id: str
    uri: str


@dataclass(frozen=True, slots=True)
class SamplingResponseMessage:
    """The client's answer to a SamplingRequestMessage.

    Exactly one of result and error is set.
    """

    correlation_id: str
    result: SamplingResult | None = None
    error: str | None = None


@dataclass(frozen=True, slots=True)
class SessionOpenMessage:
    """First contact from a new connection."""

    credentials: dict[str, str] | None = None
    user_id: str | None = None


@dataclass(frozen=True, slots=True)
class SessionCloseMessage:
    """The connection is going away."""

    reason: str = "client_closed"


@dataclass(frozen=True, slots=True)
class CancelMessage:
    """Cancel an in-flight request."""

    request_id: str


InboundMessage = (
    ToolCallMessage
    | ResourceReadMessage
    | SamplingResponseMessage
    | SessionOpenMessage
    | SessionCloseMessage
    | CancelMessage
)


# Outbound messages (server -> client)


@dataclass(frozen=True, slots=True)
class CallResponseMessage:
    """Response to a ToolCallMessage or ResourceReadMessage."""

    request_id: str
    result: MCPToolResult | MCPResourceContent | None = None
    error: MCPServerError | None = None

    @classmethod
    def from_result(
        cls,
        request_id: str,
        result: Result[Any, MCPServerError],
    ) -> CallResponseMessage:
        """Build a response from a server call Result."""
        if result.is_ok:
            return cls(request_id=request_id, result=result.value)
        return cls(request_id=request_id, error=result.error)

    def to_result(self) -> Result[Any, MCPServerError]:
        """Turn the response back into a Result on the client side."""
        if self.error is not None:
            return Result.err(self.error)
        return Result.ok(self.result)


@dataclass(frozen=True, slots=True)
class SamplingRequestMessage:
    """Ask the client to generate a completion."""

    correlation_id: str
    params: SamplingParams


@dataclass(frozen=True, slots=True)
class SessionAckMessage:
    """Answer to a SessionOpenMessage."""

    accepted: bool
    error: MCPServerError | None = None


OutboundMessage = CallResponseMessage | SamplingRequestMessage | SessionAckMessage

InboundHandler = Callable[[str, InboundMessage], Awaitable[None]]
"""Server callback receiving (session_id, message) from a transport."""


class Transport(Protocol):
    """Connection layer between the runtime and its clients.

    The runtime only needs to push a message to a session and to be told
    about inbound messages. Framing, encoding and connection management
    belong to the transport.
    """

    async def send(self, session_id: str, message: OutboundMessage) -> None:
        """Deliver a message to the client owning session_id.

        Raises:
            MCPServerError: If no connection exists for the session.
        """
        ...

    def register_inbound_handler(self, handler: InboundHandler) -> None:
        """Register the callback that receives inbound messages."""
        ...
