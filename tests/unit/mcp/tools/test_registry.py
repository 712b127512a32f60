"""Tests for tool registry."""

import asyncio
from dataclasses import dataclass
from typing import Any

import pytest

from switchboard.core.types import Result
from switchboard.mcp.errors import (
    DuplicateNameError,
    MCPToolError,
    SamplingTimeoutError,
    ToolValidationError,
    UnknownToolError,
)
from switchboard.mcp.server.context import ToolContext
from switchboard.mcp.tools.registry import ToolRegistry, TypedToolHandler
from switchboard.mcp.types import (
    MCPToolDefinition,
    MCPToolParameter,
    MCPToolResult,
    ToolInputType,
)


@dataclass(frozen=True, slots=True)
class NoInput:
    pass


class FailingHandler(TypedToolHandler[NoInput]):
    """Tool whose handler misbehaves in a configurable way."""

    input_type = NoInput

    def __init__(self, name: str, exc: BaseException | None = None) -> None:
        self._name = name
        self._exc = exc

    @property
    def definition(self) -> MCPToolDefinition:
        return MCPToolDefinition(name=self._name, description="fails")

    async def handle(
        self,
        params: NoInput,
        context: ToolContext,
    ) -> Result[MCPToolResult, MCPToolError]:
        if self._exc is not None:
            raise self._exc
        return Result.err(MCPToolError("nope", tool_name=self._name, error_code="custom"))


class SlowHandler(TypedToolHandler[NoInput]):
    """Tool that outlives its own timeout."""

    input_type = NoInput
    TIMEOUT_SECONDS = 0.05

    @property
    def definition(self) -> MCPToolDefinition:
        return MCPToolDefinition(name="slow", description="slow")

    async def handle(
        self,
        params: NoInput,
        context: ToolContext,
    ) -> Result[MCPToolResult, MCPToolError]:
        await asyncio.sleep(5)
        return Result.ok(MCPToolResult.text("late"))


class TestToolRegistry:
    """Test registration and lookup."""

    def test_registry_starts_empty(self) -> None:
        """New registry has no tools."""
        assert ToolRegistry().tool_count == 0

    def test_register_tool(self, recording_handler: Any) -> None:
        """register adds a tool handler."""
        registry = ToolRegistry()
        registry.register(recording_handler)

        assert registry.tool_count == 1
        assert registry.has_tool("record")
        assert registry.get("record") is recording_handler
        assert registry.get_definition("record") == recording_handler.definition

    def test_register_duplicate_fails(self, recording_handler: Any) -> None:
        """Registering a duplicate name raises DuplicateNameError."""
        registry = ToolRegistry()
        registry.register(recording_handler)

        with pytest.raises(DuplicateNameError, match="already registered"):
            registry.register(recording_handler)
        assert registry.tool_count == 1

    def test_unregister(self, recording_handler: Any) -> None:
        """unregister removes a tool and reports whether it existed."""
        registry = ToolRegistry()
        registry.register(recording_handler, category="misc")

        assert registry.unregister("record") is True
        assert registry.unregister("record") is False
        assert registry.tools_in_category("misc") == ()

    def test_list_tools_in_registration_order(self) -> None:
        """list_tools keeps registration order and filters by category."""
        registry = ToolRegistry()
        registry.register(FailingHandler("b"), category="x")
        registry.register(FailingHandler("a"), category="y")
        registry.register(FailingHandler("c"), category="x")

        assert [d.name for d in registry.list_tools()] == ["b", "a", "c"]
        assert [d.name for d in registry.list_tools("x")] == ["b", "c"]
        assert registry.list_categories() == ("x", "y")
        assert registry.tools_in_category("x") == ("b", "c")

    def test_clear(self, recording_handler: Any) -> None:
        """clear removes everything."""
        registry = ToolRegistry()
        registry.register(recording_handler)
        registry.clear()
        assert registry.tool_count == 0
        assert registry.list_categories() == ()


class TestInvoke:
    """Test validated invocation."""

    async def test_invoke_passes_validated_arguments(
        self,
        recording_handler: Any,
        context: ToolContext,
    ) -> None:
        """The handler receives coerced arguments with defaults applied."""
        registry = ToolRegistry()
        registry.register(recording_handler)

        result = await registry.invoke("record", {"text": "ab", "count": "2"}, context)

        assert result.text_content == "abab"
        assert recording_handler.calls == [{"text": "ab", "count": 2}]

    async def test_unknown_tool_never_reaches_a_handler(
        self,
        recording_handler: Any,
        context: ToolContext,
    ) -> None:
        """An unknown name raises UnknownToolError."""
        registry = ToolRegistry()
        registry.register(recording_handler)

        with pytest.raises(UnknownToolError) as exc_info:
            await registry.invoke("missing", {"text": "x"}, context)
        assert exc_info.value.tool_name == "missing"
        assert recording_handler.calls == []

    async def test_invalid_arguments_never_reach_the_handler(
        self,
        recording_handler: Any,
        context: ToolContext,
    ) -> None:
        """A missing field raises ToolValidationError before the handler runs."""
        registry = ToolRegistry()
        registry.register(recording_handler)

        with pytest.raises(ToolValidationError) as exc_info:
            await registry.invoke("record", {}, context)
        assert exc_info.value.field == "text"
        assert recording_handler.calls == []

    async def test_reported_error_becomes_error_result(self, context: ToolContext) -> None:
        """A handler's Result.err turns into an is_error result."""
        registry = ToolRegistry()
        registry.register(FailingHandler("f"))

        result = await registry.invoke("f", {}, context)

        assert result.is_error
        assert result.text_content == "nope"
        assert result.meta == {"tool": "f", "error_code": "custom"}

    async def test_exception_becomes_error_result(self, context: ToolContext) -> None:
        """An exception inside the handler is contained in the result."""
        registry = ToolRegistry()
        registry.register(FailingHandler("f", RuntimeError("kaput")))

        result = await registry.invoke("f", {}, context)

        assert result.is_error
        assert result.text_content == "Tool execution failed: kaput"

    async def test_decode_failure_becomes_error_result(
        self,
        recording_handler: Any,
        context: ToolContext,
    ) -> None:
        """A handler whose decode() raises gets an error result, not an exception."""

        def broken_decode(arguments: dict[str, Any]) -> Any:
            raise TypeError("unexpected keyword argument")

        recording_handler.decode = broken_decode
        registry = ToolRegistry()
        registry.register(recording_handler)

        result = await registry.invoke("record", {"text": "x"}, context)

        assert result.is_error
        assert result.meta == {"tool": "record", "error_code": "exception"}
        assert "unexpected keyword argument" in result.text_content
        assert recording_handler.calls == []

    async def test_sampling_error_becomes_error_result(self, context: ToolContext) -> None:
        """A sampling failure inside the handler is reported in the result."""
        registry = ToolRegistry()
        registry.register(FailingHandler("f", SamplingTimeoutError(timeout_seconds=0.1)))

        result = await registry.invoke("f", {}, context)

        assert result.is_error
        assert result.text_content.startswith("Sampling failed:")
        assert result.meta["error_code"] == "SamplingTimeoutError"

    async def test_handler_timeout(self, context: ToolContext) -> None:
        """Handlers are bounded by TIMEOUT_SECONDS."""
        registry = ToolRegistry()
        registry.register(SlowHandler())

        result = await registry.invoke("slow", {}, context)

        assert result.is_error
        assert result.meta["error_code"] == "timeout"

    async def test_default_timeout(self, context: ToolContext) -> None:
        """Handlers without TIMEOUT_SECONDS use the registry default."""
        registry = ToolRegistry(default_timeout=0.05)

        class Sleeper(FailingHandler):
            async def handle(self, params, context):  # type: ignore[no-untyped-def]
                await asyncio.sleep(5)

        registry.register(Sleeper("sleeper"))
        result = await registry.invoke("sleeper", {}, context)

        assert result.meta["error_code"] == "timeout"

    async def test_cancellation_propagates(self, context: ToolContext) -> None:
        """Cancelling the caller cancels the handler instead of reporting an error."""
        registry = ToolRegistry()
        started = asyncio.Event()

        class Blocker(FailingHandler):
            async def handle(self, params, context):  # type: ignore[no-untyped-def]
                started.set()
                await asyncio.sleep(5)

        registry.register(Blocker("block"))
        task = asyncio.create_task(registry.invoke("block", {}, context))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task


class TestTypedToolHandler:
    """Test TypedToolHandler decoding."""

    def test_decode_builds_input_type(self) -> None:
        """decode() instantiates input_type from validated arguments."""

        @dataclass(frozen=True, slots=True)
        class GreetInput:
            name: str

        class GreetHandler(TypedToolHandler[GreetInput]):
            input_type = GreetInput

            @property
            def definition(self) -> MCPToolDefinition:
                return MCPToolDefinition(
                    name="greet",
                    description="greet",
                    parameters=(MCPToolParameter(name="name", type=ToolInputType.STRING),),
                )

            async def handle(self, params, context):  # type: ignore[no-untyped-def]
                return Result.ok(MCPToolResult.text(f"Hello, {params.name}"))

        assert GreetHandler().decode({"name": "Ada"}) == GreetInput(name="Ada")
