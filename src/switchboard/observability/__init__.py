"""Observability module for Switchboard.

Provides structured logging built on structlog: configure_logging,
get_logger, and task-local context binding.
"""

from switchboard.observability.logging import (
    LoggingConfig,
    LogMode,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    reset_logging,
    set_console_logging,
    unbind_context,
)

__all__ = [
    "LogMode",
    "LoggingConfig",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "reset_logging",
    "set_console_logging",
    "unbind_context",
]
