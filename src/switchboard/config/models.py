"""Pydantic models for Switchboard configuration.

This module defines the configuration schema using Pydantic v2.
All configuration validation happens through these models.

Classes:
    ServerConfig: Server identity and tool execution limits
    SamplingConfig: Defaults for server-to-client sampling requests
    ShutdownConfig: Graceful shutdown deadlines
    RateLimitConfig: Per-session token bucket settings
    AuthConfig: Session authentication method
    LoggingConfig: Logging configuration
    SwitchboardConfig: Top-level configuration combining all sections
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class ServerConfig(BaseModel, frozen=True):
    """Server identity and tool execution limits.

    Attributes:
        name: Server name reported to clients
        version: Server version reported to clients
        tool_timeout_seconds: Default per-call handler timeout
    """

    name: str = Field(default="switchboard", min_length=1)
    version: str = "1.0.0"
    tool_timeout_seconds: float = Field(default=30.0, gt=0)


class SamplingConfig(BaseModel, frozen=True):
    """Defaults applied to sampling requests issued by tool handlers.

    Attributes:
        default_timeout_seconds: Timeout when a handler does not pass one
        default_max_tokens: Token budget when a handler does not pass one
    """

    default_timeout_seconds: float = Field(default=60.0, gt=0)
    default_max_tokens: int = Field(default=512, ge=1)


class ShutdownConfig(BaseModel, frozen=True):
    """Graceful shutdown configuration.

    Attributes:
        deadline_seconds: How long in-flight calls may run after shutdown starts
        grace_seconds: How long to wait for force-cancelled calls to unwind
    """

    deadline_seconds: float = Field(default=10.0, ge=0)
    grace_seconds: float = Field(default=5.0, gt=0)


class RateLimitConfig(BaseModel, frozen=True):
    """Rate limiting configuration.

    Attributes:
        enabled: Whether rate limiting middleware is installed
        requests_per_minute: Sustained request rate per limiter key
        burst_size: Token bucket capacity
        key_by: Whether limiters are keyed by transport session or by user
    """

    enabled: bool = False
    requests_per_minute: int = Field(default=60, ge=1)
    burst_size: int = Field(default=10, ge=1)
    key_by: Literal["session", "user"] = "session"


class AuthConfig(BaseModel, frozen=True):
    """Session authentication configuration.

    Secrets are never read from config.yaml: API keys come from
    SWITCHBOARD_API_KEYS and the token secret from SWITCHBOARD_TOKEN_SECRET.

    Attributes:
        method: Authentication method for new sessions
        required: Whether anonymous sessions are rejected
        default_permissions: Permissions granted to authenticated sessions
    """

    method: Literal["none", "api_key", "bearer_token"] = "none"
    required: bool = False
    default_permissions: list[str] = Field(default_factory=lambda: ["read", "execute"])


class LoggingConfig(BaseModel, frozen=True):
    """Logging configuration.

    Attributes:
        level: Log level (debug, info, warning, error)
        mode: Output mode (dev console or prod JSON)
        log_dir: Directory for rotated log files (relative to config dir)
        enable_file_logging: Whether to also write log files
    """

    level: Literal["debug", "info", "warning", "error"] = "info"
    mode: Literal["dev", "prod"] = "dev"
    log_dir: str = "logs"
    enable_file_logging: bool = False

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: object) -> object:
        """Accept upper-case level names."""
        if isinstance(v, str):
            return v.lower()
        return v


class SwitchboardConfig(BaseModel, frozen=True):
    """Top-level Switchboard configuration.

    It validates against config.yaml in ~/.switchboard/.

    Attributes:
        server: Server identity and tool limits
        sampling: Sampling request defaults
        shutdown: Graceful shutdown deadlines
        rate_limit: Rate limiting configuration
        auth: Authentication configuration
        logging: Logging configuration
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    sampling: SamplingConfig = Field(default_factory=SamplingConfig)
    shutdown: ShutdownConfig = Field(default_factory=ShutdownConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def get_default_config() -> SwitchboardConfig:
    """Get the default Switchboard configuration."""
    return SwitchboardConfig()


def get_config_dir() -> Path:
    """Get the Switchboard configuration directory path.

    Returns:
        Path to ~/.switchboard/
    """
    return Path.home() / ".switchboard"
