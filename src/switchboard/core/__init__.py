"""Switchboard core module - shared types, errors, and primitives."""

from switchboard.core.concurrency import ReadWriteLock
from switchboard.core.errors import (
    ConfigError,
    SwitchboardError,
)
from switchboard.core.security import (
    is_sensitive_field,
    is_sensitive_value,
    mask_secret,
    sanitize_for_logging,
)
from switchboard.core.types import CorrelationId, JSONDict, Result, SessionId

__all__ = [
    # Types
    "Result",
    "JSONDict",
    "SessionId",
    "CorrelationId",
    # Errors
    "SwitchboardError",
    "ConfigError",
    # Concurrency
    "ReadWriteLock",
    # Security utilities
    "is_sensitive_field",
    "is_sensitive_value",
    "mask_secret",
    "sanitize_for_logging",
]
