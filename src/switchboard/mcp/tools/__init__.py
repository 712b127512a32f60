"""MCP Tools package.

This package provides tool registration, argument validation and the
built-in tools.

Public API:
    ToolRegistry: Registry for managing tool handlers
    TypedToolHandler: Base class for dataclass-typed handlers
    validate_arguments: Schema validation and coercion
    BUILTIN_TOOLS: calculate, echo, summarize
"""

from switchboard.mcp.tools.registry import ToolRegistry, TypedToolHandler
from switchboard.mcp.tools.schema import ArgumentSchema, validate_arguments
from switchboard.mcp.tools.definitions import (  # noqa: I001
    BUILTIN_TOOLS,
    CalculateHandler,
    EchoHandler,
    SummarizeHandler,
)

__all__ = [
    "ToolRegistry",
    "TypedToolHandler",
    "ArgumentSchema",
    "validate_arguments",
    "BUILTIN_TOOLS",
    "CalculateHandler",
    "EchoHandler",
    "SummarizeHandler",
]
