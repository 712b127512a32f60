"""MCP error hierarchy for Switchboard.

These exceptions cover the dispatch runtime. They are raised to unwind a
call through the middleware chain and are returned inside Result at the
public server surface.

Exception Hierarchy:
    SwitchboardError (base from core.errors)
    └── MCPError (MCP base)
        └── MCPServerError  - Server-side failures
            ├── MCPAuthError              - Authentication/authorization failures
            ├── MCPResourceNotFoundError  - Resource not found
            │   └── UnknownToolError      - Tool name not registered (or filtered)
            ├── MCPToolError              - Tool business failure
            ├── ToolValidationError       - Tool input rejected by its schema
            ├── DuplicateNameError        - Tool name already registered
            ├── SessionExistsError        - Session id already registered
            ├── RateLimitExceededError    - Limiter bucket empty
            ├── MiddlewareError           - Middleware misuse (next() called twice)
            ├── ServerStartupError        - A ServerStart hook failed
            ├── ShutdownInProgressError   - Call refused or aborted by shutdown
            ├── RequestCancelledError     - Call cancelled by its caller or client
            └── SamplingError             - Server-to-client sampling failures
                ├── SamplingTimeoutError  - Client did not answer in time
                ├── SessionClosedError    - Session torn down while waiting
                ├── SamplingRejectedError - Client answered with an error
                └── UnknownExchangeError  - Response for an unknown correlation id
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from switchboard.core.errors import SwitchboardError


class MCPError(SwitchboardError):
    """Base exception for all MCP-related errors.

    Attributes:
        message: Human-readable error description.
        server_name: Name of the MCP server involved (if applicable).
        is_retriable: Whether the operation can be retried.
    """

    def __init__(
        self,
        message: str,
        *,
        server_name: str | None = None,
        is_retriable: bool = False,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the MCP error.

        Args:
            message: Human-readable error description.
            server_name: Name of the MCP server involved.
            is_retriable: Whether the operation can be retried.
            details: Optional dict with additional context.
        """
        super().__init__(message, details)
        self.server_name = server_name
        self.is_retriable = is_retriable

    def __str__(self) -> str:
        """Return string representation of the error."""
        parts = [self.message]
        if self.server_name:
            parts.append(f"server={self.server_name}")
        if self.is_retriable:
            parts.append("retriable=True")
        if self.details:
            parts.append(f"details={self.details}")
        return " ".join(parts)


class MCPServerError(MCPError):
    """Error from MCP server operations.

    Base class for every failure the dispatch runtime reports.
    """


class MCPAuthError(MCPServerError):
    """Authentication or authorization failure.

    Attributes:
        auth_method: The authentication method that failed.
        required_permission: The permission that was required.
    """

    def __init__(
        self,
        message: str,
        *,
        server_name: str | None = None,
        auth_method: str | None = None,
        required_permission: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, server_name=server_name, details=details)
        self.auth_method = auth_method
        self.required_permission = required_permission


class MCPResourceNotFoundError(MCPServerError):
    """Requested resource (tool, resource URI) does not exist.

    Attributes:
        resource_type: Type of resource (tool, resource).
        resource_id: ID or name of the resource.
    """

    def __init__(
        self,
        message: str,
        *,
        server_name: str | None = None,
        resource_type: str | None = None,
        resource_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, server_name=server_name, details=details)
        self.resource_type = resource_type
        self.resource_id = resource_id


class UnknownToolError(MCPResourceNotFoundError):
    """No tool with the requested name is registered (or visible)."""

    def __init__(self, tool_name: str, *, server_name: str | None = None) -> None:
        super().__init__(
            f"Tool not found: {tool_name}",
            server_name=server_name,
            resource_type="tool",
            resource_id=tool_name,
        )
        self.tool_name = tool_name


class MCPToolError(MCPServerError):
    """Error during tool execution.

    Handlers return this inside Result.err to report a business failure.
    The registry turns it into an error tool result rather than a system
    failure.

    Attributes:
        tool_name: Name of the tool that failed.
        error_code: Tool-specific error code if available.
    """

    def __init__(
        self,
        message: str,
        *,
        server_name: str | None = None,
        tool_name: str | None = None,
        error_code: str | None = None,
        is_retriable: bool = False,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            server_name=server_name,
            is_retriable=is_retriable,
            details=details,
        )
        self.tool_name = tool_name
        self.error_code = error_code


@dataclass(frozen=True, slots=True)
class FieldViolation:
    """A single schema violation.

    Attributes:
        path: Dotted path of the offending field.
        reason: Why the value was rejected.
    """

    path: str
    reason: str

    def __str__(self) -> str:
        return f"{self.path}: {self.reason}"


class ToolValidationError(MCPServerError):
    """Tool arguments failed schema validation.

    The handler is never called when this is raised.

    Attributes:
        tool_name: Tool whose schema rejected the input.
        violations: Every violation found, in parameter order.
        field: Path of the first violation.
    """

    def __init__(
        self,
        tool_name: str,
        violations: Sequence[FieldViolation],
        *,
        server_name: str | None = None,
    ) -> None:
        self.tool_name = tool_name
        self.violations = tuple(violations)
        summary = "; ".join(str(v) for v in self.violations)
        super().__init__(
            f"Invalid arguments for {tool_name}: {summary}",
            server_name=server_name,
            details={"violations": [{"path": v.path, "reason": v.reason} for v in self.violations]},
        )

    @property
    def field(self) -> str | None:
        """Return the path of the first violation."""
        return self.violations[0].path if self.violations else None

    @property
    def fields(self) -> tuple[str, ...]:
        """Return the paths of all violations."""
        return tuple(v.path for v in self.violations)


class DuplicateNameError(MCPServerError):
    """A tool with this name is already registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Tool already registered: {name}")
        self.name = name


class SessionExistsError(MCPServerError):
    """A session with this id already exists."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session already exists: {session_id}")
        self.session_id = session_id


class RateLimitExceededError(MCPServerError):
    """The caller's token bucket is empty.

    Attributes:
        retry_after: Seconds until a token becomes available.
    """

    def __init__(self, key: str, *, retry_after: float) -> None:
        super().__init__(
            "Rate limit exceeded",
            is_retriable=True,
            details={"retry_after": round(retry_after, 3)},
        )
        self.key = key
        self.retry_after = retry_after


class MiddlewareError(MCPServerError):
    """A middleware used the pipeline incorrectly."""


class ServerStartupError(MCPServerError):
    """A ServerStart hook failed, so the server did not start."""


class ShutdownInProgressError(MCPServerError):
    """The call was refused or aborted because the server is shutting down."""

    def __init__(self, message: str = "Server is shutting down") -> None:
        super().__init__(message)


class RequestCancelledError(MCPServerError):
    """The caller or client cancelled the call before it finished."""

    def __init__(
        self,
        message: str = "Request cancelled",
        *,
        server_name: str | None = None,
    ) -> None:
        super().__init__(message, server_name=server_name)


class SamplingError(MCPServerError):
    """Base class for sampling failures.

    Attributes:
        session_id: Session the sampling request targeted.
        correlation_id: Exchange identifier.
    """

    def __init__(
        self,
        message: str,
        *,
        session_id: str | None = None,
        correlation_id: str | None = None,
        is_retriable: bool = False,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, is_retriable=is_retriable, details=details)
        self.session_id = session_id
        self.correlation_id = correlation_id


class SamplingTimeoutError(SamplingError):
    """The client did not answer the sampling request before the deadline.

    Attributes:
        timeout_seconds: The timeout that elapsed.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float,
        session_id: str | None = None,
        correlation_id: str | None = None,
    ) -> None:
        super().__init__(
            f"Sampling request timed out after {timeout_seconds}s",
            session_id=session_id,
            correlation_id=correlation_id,
            is_retriable=True,
        )
        self.timeout_seconds = timeout_seconds


class SessionClosedError(SamplingError):
    """The session closed while a sampling request was pending."""

    def __init__(
        self,
        *,
        session_id: str | None = None,
        correlation_id: str | None = None,
    ) -> None:
        super().__init__(
            f"Session closed: {session_id}",
            session_id=session_id,
            correlation_id=correlation_id,
        )


class SamplingRejectedError(SamplingError):
    """The client answered the sampling request with an error."""


class UnknownExchangeError(SamplingError):
    """A sampling response referenced no pending exchange."""

    def __init__(self, correlation_id: str) -> None:
        super().__init__(
            f"No pending sampling exchange: {correlation_id}",
            correlation_id=correlation_id,
        )
