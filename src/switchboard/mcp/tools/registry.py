"""Tool registry for managing MCP tool handlers.

This module provides a registry for tool handlers, supporting registration,
discovery, and validated invocation of tools. It also provides
TypedToolHandler, a base class for handlers whose input is a dataclass.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from collections.abc import Mapping, Sequence
from functools import cache
import time
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pydantic import TypeAdapter
import structlog

from switchboard.core.types import Result
from switchboard.mcp.errors import (
    DuplicateNameError,
    MCPToolError,
    SamplingError,
    UnknownToolError,
)
from switchboard.mcp.tools.schema import ArgumentSchema
from switchboard.mcp.types import MCPToolDefinition, MCPToolResult

if TYPE_CHECKING:
    from switchboard.mcp.server.context import ToolContext
    from switchboard.mcp.server.protocol import ToolHandler

log = structlog.get_logger(__name__)

DEFAULT_TOOL_TIMEOUT_SECONDS = 30.0

InputT = TypeVar("InputT")


@cache
def _input_adapter(input_type: type) -> TypeAdapter[Any]:
    return TypeAdapter(input_type)


class TypedToolHandler(ABC, Generic[InputT]):
    """Base class for handlers whose input is a dataclass.

    Subclasses set ``input_type`` and implement ``definition`` and
    ``handle``. The default decode() validates the arguments into
    ``input_type`` with pydantic, so parameter names must match its fields
    and Literal or numeric field types are enforced a second time.

    Example:
        @dataclass(frozen=True, slots=True)
        class GreetInput:
            name: str

        class GreetHandler(TypedToolHandler[GreetInput]):
            input_type = GreetInput

            @property
            def definition(self) -> MCPToolDefinition: ...

            async def handle(self, params, context):
                return Result.ok(MCPToolResult.text(f"Hello, {params.name}"))
    """

    input_type: type[InputT]

    @property
    @abstractmethod
    def definition(self) -> MCPToolDefinition:
        """Return the tool definition."""

    def decode(self, arguments: dict[str, Any]) -> InputT:
        """Build the typed input from validated arguments."""
        return _input_adapter(self.input_type).validate_python(arguments)

    @abstractmethod
    async def handle(
        self,
        params: InputT,
        context: ToolContext,
    ) -> Result[MCPToolResult, MCPToolError]:
        """Run the tool."""


class ToolRegistry:
    """Registry for managing MCP tool handlers.

    Provides a centralized place to register, discover, and invoke tools.
    Supports grouping tools by category. Tool names are unique.

    Example:
        registry = ToolRegistry()

        # Register individual handlers
        registry.register(CalculateHandler())

        # Or register multiple at once
        registry.register_all([EchoHandler(), SummarizeHandler()])

        # Invoke a tool
        result = await registry.invoke("calculate", {"x": 1, "y": 2, "operation": "add"}, ctx)
    """

    def __init__(self, *, default_timeout: float = DEFAULT_TOOL_TIMEOUT_SECONDS) -> None:
        """Initialize the registry.

        Args:
            default_timeout: Handler timeout for handlers without TIMEOUT_SECONDS.
        """
        self._handlers: dict[str, ToolHandler] = {}
        self._schemas: dict[str, ArgumentSchema] = {}
        self._categories: dict[str, set[str]] = {}
        self._default_timeout = default_timeout

    @property
    def tool_count(self) -> int:
        """Return the number of registered tools."""
        return len(self._handlers)

    def register(
        self,
        handler: ToolHandler,
        *,
        category: str = "default",
    ) -> None:
        """Register a tool handler.

        Args:
            handler: The tool handler to register.
            category: Optional category for grouping tools.

        Raises:
            DuplicateNameError: If a tool with the same name is already registered.
        """
        name = handler.definition.name

        if name in self._handlers:
            raise DuplicateNameError(name)

        self._schemas[name] = ArgumentSchema(handler.definition)
        self._handlers[name] = handler
        self._categories.setdefault(category, set()).add(name)

        log.info("mcp.registry.tool_registered", tool=name, category=category)

    def register_all(
        self,
        handlers: Sequence[ToolHandler],
        *,
        category: str = "default",
    ) -> None:
        """Register multiple tool handlers.

        Args:
            handlers: The tool handlers to register.
            category: Optional category for grouping tools.
        """
        for handler in handlers:
            self.register(handler, category=category)

    def unregister(self, name: str) -> bool:
        """Unregister a tool handler.

        Args:
            name: Name of the tool to unregister.

        Returns:
            True if the tool was unregistered, False if not found.
        """
        if name not in self._handlers:
            return False

        del self._handlers[name]
        del self._schemas[name]
        for category_tools in self._categories.values():
            category_tools.discard(name)

        log.info("mcp.registry.tool_unregistered", tool=name)
        return True

    def get(self, name: str) -> ToolHandler | None:
        """Get a tool handler by name, or None if not found."""
        return self._handlers.get(name)

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._handlers

    def get_definition(self, name: str) -> MCPToolDefinition | None:
        """Get the definition for a tool, or None if not found."""
        handler = self._handlers.get(name)
        return handler.definition if handler else None

    def list_tools(self, category: str | None = None) -> Sequence[MCPToolDefinition]:
        """List registered tools in registration order.

        Args:
            category: Optional category to filter by.

        Returns:
            Sequence of tool definitions.
        """
        if category is not None:
            names = self._categories.get(category, set())
            return tuple(h.definition for n, h in self._handlers.items() if n in names)
        return tuple(h.definition for h in self._handlers.values())

    def list_categories(self) -> Sequence[str]:
        """List all tool categories."""
        return tuple(self._categories.keys())

    def tools_in_category(self, category: str) -> Sequence[str]:
        """List tool names in a category."""
        return tuple(sorted(self._categories.get(category, set())))

    def clear(self) -> None:
        """Clear all registered tools."""
        self._handlers.clear()
        self._schemas.clear()
        self._categories.clear()
        log.info("mcp.registry.cleared")

    async def invoke(
        self,
        name: str,
        arguments: Mapping[str, Any] | None,
        context: ToolContext,
    ) -> MCPToolResult:
        """Validate arguments and run a tool.

        Registry-level failures raise before the handler runs. Anything the
        handler does wrong is reported in the returned result with
        ``is_error`` set.

        Args:
            name: Name of the tool to call.
            arguments: Raw arguments from the client.
            context: Per-call context handed to the handler.

        Returns:
            The tool result (possibly an error result).

        Raises:
            UnknownToolError: If no tool with that name is registered.
            ToolValidationError: If the arguments do not satisfy the schema.
        """
        handler = self._handlers.get(name)
        if handler is None:
            raise UnknownToolError(name)

        values = self._schemas[name].validate(arguments)
        timeout = getattr(handler, "TIMEOUT_SECONDS", self._default_timeout)

        log.debug("mcp.registry.calling_tool", tool=name, timeout=timeout)
        start = time.perf_counter()
        try:
            params = handler.decode(values)
            async with asyncio.timeout(timeout):
                result = await handler.handle(params, context)
        except TimeoutError:
            log.warning("mcp.registry.tool_timeout", tool=name, timeout=timeout)
            return MCPToolResult.error(
                f"Tool execution timed out after {timeout}s",
                meta={"tool": name, "error_code": "timeout"},
            )
        except SamplingError as e:
            log.warning("mcp.registry.tool_sampling_failed", tool=name, error=str(e))
            return MCPToolResult.error(
                f"Sampling failed: {e.message}",
                meta={"tool": name, "error_code": type(e).__name__},
            )
        except Exception as e:
            log.exception("mcp.registry.tool_error", tool=name, error=str(e))
            return MCPToolResult.error(
                f"Tool execution failed: {e}",
                meta={"tool": name, "error_code": "exception"},
            )

        duration = time.perf_counter() - start
        if result.is_err:
            error = result.error
            log.info(
                "mcp.registry.tool_reported_error",
                tool=name,
                error=error.message,
                error_code=error.error_code,
            )
            return MCPToolResult.error(
                error.message,
                meta={"tool": name, "error_code": error.error_code},
            )

        log.debug("mcp.registry.tool_completed", tool=name, duration_seconds=round(duration, 4))
        return result.value
