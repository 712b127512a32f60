"""MCP Server package.

This package provides the request-dispatch runtime of a Switchboard server.

Public API:
    MCPServerAdapter: Wires sessions, hooks, middleware, tools and sampling
    create_server: Composition root building a configured server
    ToolHandler, ResourceHandler, Middleware, Transport: Extension protocols
    HookDispatcher, HookEvent: Lifecycle hooks
    MiddlewarePipeline, CallRequest: Middleware chain
    SessionRegistry, Session: Session state
    SamplingCoordinator: Server-to-client sampling
    ShutdownController: Graceful shutdown
"""

from switchboard.mcp.server.adapter import MCPServerAdapter, create_server
from switchboard.mcp.server.context import ToolContext
from switchboard.mcp.server.hooks import HookDispatcher, HookEvent
from switchboard.mcp.server.middleware import (
    CallKind,
    CallRequest,
    LoggingMiddleware,
    MiddlewarePipeline,
    PermissionMiddleware,
    RateLimitMiddleware,
    ToolFilterMiddleware,
)
from switchboard.mcp.server.protocol import Middleware, ResourceHandler, ToolHandler, Transport
from switchboard.mcp.server.sampling import ExchangeState, SamplingCoordinator, SamplingExchange
from switchboard.mcp.server.security import Authenticator, AuthMethod, SessionRateLimiter
from switchboard.mcp.server.sessions import Session, SessionRegistry
from switchboard.mcp.server.shutdown import ShutdownController, ShutdownReport

__all__ = [
    "MCPServerAdapter",
    "create_server",
    "ToolContext",
    # Protocols
    "ToolHandler",
    "ResourceHandler",
    "Middleware",
    "Transport",
    # Hooks
    "HookDispatcher",
    "HookEvent",
    # Middleware
    "MiddlewarePipeline",
    "CallRequest",
    "CallKind",
    "LoggingMiddleware",
    "PermissionMiddleware",
    "RateLimitMiddleware",
    "ToolFilterMiddleware",
    # Sessions
    "Session",
    "SessionRegistry",
    # Sampling
    "SamplingCoordinator",
    "SamplingExchange",
    "ExchangeState",
    # Security
    "Authenticator",
    "AuthMethod",
    "SessionRateLimiter",
    # Shutdown
    "ShutdownController",
    "ShutdownReport",
]
