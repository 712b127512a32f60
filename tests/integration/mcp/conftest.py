"""Shared fixtures for MCP integration tests.

Every test runs a real server behind an InMemoryTransport, so calls take
the full inbound path: message, spawned task, hooks, middleware, registry.
"""

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass

import pytest

from switchboard.core.types import Result
from switchboard.mcp.errors import MCPToolError
from switchboard.mcp.server.adapter import MCPServerAdapter, create_server
from switchboard.mcp.server.context import ToolContext
from switchboard.mcp.tools.registry import TypedToolHandler
from switchboard.mcp.transport import InMemoryTransport
from switchboard.mcp.types import (
    MCPToolDefinition,
    MCPToolParameter,
    MCPToolResult,
    SamplingParams,
    SamplingResult,
    ToolInputType,
)


@dataclass(frozen=True, slots=True)
class NapInput:
    seconds: float


class NapHandler(TypedToolHandler[NapInput]):
    """Tool that sleeps, used to keep calls in flight."""

    input_type = NapInput

    def __init__(self) -> None:
        self.started = asyncio.Event()

    @property
    def definition(self) -> MCPToolDefinition:
        return MCPToolDefinition(
            name="nap",
            description="Sleep for a while",
            parameters=(MCPToolParameter(name="seconds", type=ToolInputType.NUMBER),),
        )

    async def handle(
        self,
        params: NapInput,
        context: ToolContext,
    ) -> Result[MCPToolResult, MCPToolError]:
        self.started.set()
        await asyncio.sleep(params.seconds)
        return Result.ok(MCPToolResult.text("rested"))


@pytest.fixture
def transport() -> InMemoryTransport:
    return InMemoryTransport()


@pytest.fixture
def nap() -> NapHandler:
    return NapHandler()


@pytest.fixture
async def server(transport: InMemoryTransport, nap: NapHandler) -> AsyncIterator[MCPServerAdapter]:
    server = create_server(transport=transport)
    server.register_tool(nap)
    await server.start()
    yield server
    await server.shutdown(0)


@pytest.fixture
def upper_sampling():
    """Sampling handler answering with the upper-cased prompt."""

    async def answer(params: SamplingParams) -> SamplingResult:
        return SamplingResult(content=params.messages[-1].content.upper(), model="upper-1")

    return answer
