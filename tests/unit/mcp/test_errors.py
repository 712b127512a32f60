"""Unit tests for switchboard.mcp.errors module."""

from switchboard.core.errors import SwitchboardError
from switchboard.mcp.errors import (
    FieldViolation,
    MCPAuthError,
    MCPError,
    MCPResourceNotFoundError,
    MCPServerError,
    RateLimitExceededError,
    SamplingError,
    SamplingTimeoutError,
    SessionClosedError,
    ShutdownInProgressError,
    ToolValidationError,
    UnknownExchangeError,
    UnknownToolError,
)


class TestHierarchy:
    """Test the error hierarchy."""

    def test_everything_is_a_server_error(self) -> None:
        """Runtime errors share MCPServerError and the Switchboard root."""
        errors = [
            MCPAuthError("denied"),
            UnknownToolError("nope"),
            ToolValidationError("t", [FieldViolation("x", "required field is missing")]),
            RateLimitExceededError("session:s-1", retry_after=1.0),
            ShutdownInProgressError(),
            SamplingTimeoutError(timeout_seconds=1.0),
            SessionClosedError(session_id="s-1"),
            UnknownExchangeError("c-1"),
        ]
        for error in errors:
            assert isinstance(error, MCPServerError)
            assert isinstance(error, MCPError)
            assert isinstance(error, SwitchboardError)

    def test_unknown_tool_is_resource_not_found(self) -> None:
        """UnknownToolError is a not-found error for a tool."""
        error = UnknownToolError("calc")
        assert isinstance(error, MCPResourceNotFoundError)
        assert error.resource_type == "tool"
        assert error.resource_id == "calc"
        assert error.message == "Tool not found: calc"

    def test_sampling_errors(self) -> None:
        """Sampling failures share SamplingError."""
        for error in (
            SamplingTimeoutError(timeout_seconds=0.1),
            SessionClosedError(session_id="s-1"),
            UnknownExchangeError("c-1"),
        ):
            assert isinstance(error, SamplingError)


class TestErrorDetails:
    """Test error attributes and rendering."""

    def test_str_includes_server_and_retriable(self) -> None:
        """str() lists server name, retriability and details."""
        error = MCPServerError("down", server_name="sb", is_retriable=True, details={"a": 1})
        text = str(error)
        assert "down" in text
        assert "server=sb" in text
        assert "retriable=True" in text

    def test_tool_validation_error_fields(self) -> None:
        """ToolValidationError lists every violation in order."""
        error = ToolValidationError(
            "calculate",
            [FieldViolation("x", "required field is missing"), FieldViolation("y", "bad")],
        )
        assert error.field == "x"
        assert error.fields == ("x", "y")
        assert "x: required field is missing" in error.message
        assert error.details["violations"][1] == {"path": "y", "reason": "bad"}

    def test_rate_limit_retry_after(self) -> None:
        """RateLimitExceededError is retriable and carries retry_after."""
        error = RateLimitExceededError("session:s-1", retry_after=1.23456)
        assert error.is_retriable
        assert error.retry_after == 1.23456
        assert error.details == {"retry_after": 1.235}

    def test_sampling_timeout_is_retriable(self) -> None:
        """A sampling timeout may be retried."""
        error = SamplingTimeoutError(timeout_seconds=0.1, correlation_id="c-1")
        assert error.is_retriable
        assert error.timeout_seconds == 0.1
        assert error.correlation_id == "c-1"

    def test_shutdown_default_message(self) -> None:
        """ShutdownInProgressError has a default message."""
        assert ShutdownInProgressError().message == "Server is shutting down"
