"""Shared fixtures for MCP tests."""

import asyncio
from dataclasses import dataclass
from typing import Any

import pytest

from switchboard.core.types import Result
from switchboard.mcp.errors import MCPServerError, MCPToolError
from switchboard.mcp.server.context import ToolContext
from switchboard.mcp.server.protocol import OutboundMessage, SamplingRequestMessage
from switchboard.mcp.server.sessions import Session
from switchboard.mcp.tools.registry import TypedToolHandler
from switchboard.mcp.types import (
    MCPToolDefinition,
    MCPToolParameter,
    MCPToolResult,
    ToolInputType,
)


class RecordingTransport:
    """Transport double that records outbound messages.

    Sessions listed in ``closed`` fail on send like a dropped connection.
    """

    def __init__(self) -> None:
        self.sent: list[tuple[str, OutboundMessage]] = []
        self.closed: set[str] = set()
        self.handler: Any = None
        self.sampling_sent = asyncio.Event()

    async def send(self, session_id: str, message: OutboundMessage) -> None:
        if session_id in self.closed:
            raise MCPServerError(f"No connection for session: {session_id}")
        self.sent.append((session_id, message))
        if isinstance(message, SamplingRequestMessage):
            self.sampling_sent.set()

    def register_inbound_handler(self, handler: Any) -> None:
        self.handler = handler

    def sampling_requests(self) -> list[SamplingRequestMessage]:
        return [m for _, m in self.sent if isinstance(m, SamplingRequestMessage)]


@dataclass(frozen=True, slots=True)
class SleepInput:
    seconds: float


class SleepHandler(TypedToolHandler[SleepInput]):
    """Tool that sleeps, used to keep calls in flight."""

    input_type = SleepInput

    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.finished = False

    @property
    def definition(self) -> MCPToolDefinition:
        return MCPToolDefinition(
            name="sleep",
            description="Sleep for a while",
            parameters=(MCPToolParameter(name="seconds", type=ToolInputType.NUMBER),),
        )

    async def handle(
        self,
        params: SleepInput,
        context: ToolContext,
    ) -> Result[MCPToolResult, MCPToolError]:
        self.started.set()
        await asyncio.sleep(params.seconds)
        self.finished = True
        return Result.ok(MCPToolResult.text(f"slept {params.seconds}"))


class RecordingHandler:
    """Untyped handler that records every call it receives."""

    def __init__(self, name: str = "record") -> None:
        self._name = name
        self.calls: list[dict[str, Any]] = []
        self.contexts: list[ToolContext] = []

    @property
    def definition(self) -> MCPToolDefinition:
        return MCPToolDefinition(
            name=self._name,
            description="Records calls",
            parameters=(
                MCPToolParameter(name="text", type=ToolInputType.STRING),
                MCPToolParameter(
                    name="count",
                    type=ToolInputType.INTEGER,
                    required=False,
                    default=1,
                ),
            ),
        )

    def decode(self, arguments: dict[str, Any]) -> dict[str, Any]:
        return arguments

    async def handle(
        self,
        params: dict[str, Any],
        context: ToolContext,
    ) -> Result[MCPToolResult, MCPToolError]:
        self.calls.append(params)
        self.contexts.append(context)
        return Result.ok(MCPToolResult.text(params["text"] * params["count"]))


@pytest.fixture
def transport() -> RecordingTransport:
    """Create a recording transport."""
    return RecordingTransport()


@pytest.fixture
def session() -> Session:
    """Create a session with execute permission."""
    return Session(session_id="s-1", user_id="alice", permissions=frozenset({"execute"}))


@pytest.fixture
def context(session: Session) -> ToolContext:
    """Create a context without sampling."""
    return ToolContext.create(session, "r-1", server_name="test", target="test")


@pytest.fixture
def sample_tool_definition() -> MCPToolDefinition:
    """Create a sample tool definition."""
    return MCPToolDefinition(
        name="test_tool",
        description="A test tool for unit testing",
        parameters=(
            MCPToolParameter(
                name="input",
                type=ToolInputType.STRING,
                description="The input value",
            ),
            MCPToolParameter(
                name="count",
                type=ToolInputType.INTEGER,
                description="Number of iterations",
                required=False,
                default=1,
                minimum=1,
                maximum=10,
            ),
        ),
    )


@pytest.fixture
def sleep_handler() -> SleepHandler:
    """Create a sleep tool handler."""
    return SleepHandler()


@pytest.fixture
def recording_handler() -> RecordingHandler:
    """Create a recording tool handler named "record"."""
    return RecordingHandler()
