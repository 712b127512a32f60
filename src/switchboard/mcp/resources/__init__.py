"""MCP Resources package.

This package provides resource handlers for the MCP server.

Public API:
    SessionResourceHandler: switchboard://session and switchboard://sessions
"""

from switchboard.mcp.resources.handlers import (
    SESSION_URI,
    SESSIONS_URI,
    SessionResourceHandler,
)

__all__ = [
    "SessionResourceHandler",
    "SESSION_URI",
    "SESSIONS_URI",
]
