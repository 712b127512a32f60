"""MCP (Model Context Protocol) dispatch runtime for Switchboard.

Public API:
    Errors:
        MCPError, MCPServerError, MCPAuthError, MCPResourceNotFoundError,
        MCPToolError, UnknownToolError, ToolValidationError, DuplicateNameError,
        SessionExistsError, RateLimitExceededError, MiddlewareError,
        ServerStartupError, ShutdownInProgressError, RequestCancelledError,
        SamplingError, SamplingTimeoutError, SessionClosedError, SamplingRejectedError,
        UnknownExchangeError

    Types:
        MCPToolDefinition, MCPToolParameter, MCPToolResult, MCPContentItem,
        ContentType, ToolInputType, MCPResourceDefinition, MCPResourceContent,
        MCPCapabilities, MCPServerInfo, SamplingMessage, SamplingParams,
        SamplingResult, StopReason, Role

    Server (switchboard.mcp.server):
        MCPServerAdapter, create_server and the runtime components

    Transport (switchboard.mcp.transport):
        InMemoryTransport, InMemoryClient
"""

from switchboard.mcp.errors import (
    DuplicateNameError,
    FieldViolation,
    MCPAuthError,
    MCPError,
    MCPResourceNotFoundError,
    MCPServerError,
    MCPToolError,
    MiddlewareError,
    RateLimitExceededError,
    RequestCancelledError,
    SamplingError,
    SamplingRejectedError,
    SamplingTimeoutError,
    ServerStartupError,
    SessionClosedError,
    SessionExistsError,
    ShutdownInProgressError,
    ToolValidationError,
    UnknownExchangeError,
    UnknownToolError,
)
from switchboard.mcp.types import (
    ContentType,
    MCPCapabilities,
    MCPContentItem,
    MCPResourceContent,
    MCPResourceDefinition,
    MCPServerInfo,
    MCPToolDefinition,
    MCPToolParameter,
    MCPToolResult,
    Role,
    SamplingMessage,
    SamplingParams,
    SamplingResult,
    StopReason,
    ToolInputType,
)

__all__ = [
    # Errors
    "MCPError",
    "MCPServerError",
    "MCPAuthError",
    "MCPResourceNotFoundError",
    "MCPToolError",
    "UnknownToolError",
    "FieldViolation",
    "ToolValidationError",
    "DuplicateNameError",
    "SessionExistsError",
    "RateLimitExceededError",
    "MiddlewareError",
    "ServerStartupError",
    "ShutdownInProgressError",
    "RequestCancelledError",
    "SamplingError",
    "SamplingTimeoutError",
    "SessionClosedError",
    "SamplingRejectedError",
    "UnknownExchangeError",
    # Types
    "ToolInputType",
    "ContentType",
    "MCPToolDefinition",
    "MCPToolParameter",
    "MCPToolResult",
    "MCPContentItem",
    "MCPResourceDefinition",
    "MCPResourceContent",
    "MCPCapabilities",
    "MCPServerInfo",
    "Role",
    "StopReason",
    "SamplingMessage",
    "SamplingParams",
    "SamplingResult",
]
