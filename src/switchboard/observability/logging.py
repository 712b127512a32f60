"""Structured logging configuration for Switchboard.

This module configures structlog for the dispatch runtime. It supports a
development mode (human-readable console output) and a production mode
(JSON output), plus optional daily-rotated JSON log files.

Standard log keys:
- session_id: Transport session identifier
- request_id: Inbound request identifier
- tool: Tool name for tool calls
- uri: Resource URI for resource reads
- correlation_id: Sampling exchange identifier

Event naming convention:
- Use dot.notation: domain.entity.verb_past_tense
- e.g. "mcp.session.created", "mcp.sampling.timed_out", "mcp.hook.failed"

Usage:
    from switchboard.observability import configure_logging, get_logger, bind_context

    configure_logging(LoggingConfig(mode=LogMode.PROD))

    log = get_logger(__name__)
    bind_context(session_id="s-1", request_id="r-42")
    log.info("mcp.call.started", tool="calculate")
"""

from __future__ import annotations

from enum import Enum
from functools import partialmethod
import logging
from logging.handlers import TimedRotatingFileHandler
import os
from pathlib import Path
import sys
from typing import Any

from pydantic import BaseModel, Field
import structlog

from switchboard.core.security import redact_field


class LogMode(str, Enum):
    """Logging output mode."""

    DEV = "dev"
    PROD = "prod"


class LoggingConfig(BaseModel):
    """Configuration for structured logging.

    Attributes:
        mode: Output mode (dev for human-readable, prod for JSON).
        log_level: Minimum log level to output.
        log_dir: Directory for log files. Defaults to ~/.switchboard/logs/.
        max_log_days: Number of days to retain log files.
        enable_file_logging: Whether to write logs to files.
    """

    mode: LogMode = Field(default=LogMode.DEV)
    log_level: str = Field(default="INFO")
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".switchboard" / "logs")
    max_log_days: int = Field(default=7, ge=1, le=365)
    enable_file_logging: bool = Field(default=False)

    model_config = {"frozen": True}


_configured: bool = False
_current_config: LoggingConfig | None = None
_console_logging_enabled: bool = True

# Rendered lines are mirrored here when file logging is on
_FILE_LOGGER_NAME = "switchboard.logfile"

# structlog's own keys pass through the masking processor untouched
_RESERVED_KEYS = frozenset({"event", "level", "timestamp", "filename", "lineno", "exc_info"})


def _get_mode_from_env() -> LogMode:
    """Read the logging mode from SWITCHBOARD_LOG_MODE (defaults to dev)."""
    env_mode = os.environ.get("SWITCHBOARD_LOG_MODE", "dev").lower()
    return LogMode.PROD if env_mode == "prod" else LogMode.DEV


def _get_log_level(level_name: str) -> int:
    return logging.getLevelNamesMapping().get(level_name.upper(), logging.INFO)


def _detach_file_handlers() -> logging.Logger:
    file_logger = logging.getLogger(_FILE_LOGGER_NAME)
    file_logger.propagate = False
    for handler in file_logger.handlers[:]:
        file_logger.removeHandler(handler)
        handler.close()
    return file_logger


def _configure_file_logger(config: LoggingConfig) -> logging.Logger | None:
    """Point the mirror logger at a daily-rotated file, or detach it."""
    file_logger = _detach_file_handlers()

    if not config.enable_file_logging:
        return None

    config.log_dir.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        filename=str(config.log_dir / "switchboard.log"),
        when="midnight",
        backupCount=config.max_log_days,
        encoding="utf-8",
        utc=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    file_logger.addHandler(handler)
    file_logger.setLevel(_get_log_level(config.log_level))
    return file_logger


def _mask_sensitive_data(
    _logger: Any,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Structlog processor that hides secrets in every entry."""
    for key, value in list(event_dict.items()):
        if key not in _RESERVED_KEYS:
            event_dict[key] = redact_field(key, value)
    return event_dict


def _get_processors(mode: LogMode) -> list[Any]:
    """Build the processor chain, ending in the renderer for the mode."""
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        _mask_sensitive_data,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        ),
        structlog.processors.format_exc_info,
    ]

    if mode == LogMode.DEV:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.append(structlog.processors.JSONRenderer())

    return processors


def set_console_logging(enabled: bool) -> None:
    """Turn stderr output on or off; the log file is unaffected.

    `switchboard tools call` turns it off so log lines do not interleave
    with the result panel unless --verbose is given.
    """
    global _console_logging_enabled
    _console_logging_enabled = enabled


def is_console_logging_enabled() -> bool:
    return _console_logging_enabled


class _StderrSink:
    """Last stop for rendered entries.

    Lines go to stderr, never stdout, which stdio transports own. When a
    file logger is attached, each line is mirrored to it at its level.
    """

    def __init__(self, file_logger: logging.Logger | None) -> None:
        self._file_logger = file_logger

    def _emit(self, level: int, message: str) -> None:
        if _console_logging_enabled:
            print(message, file=sys.stderr, flush=True)
        if self._file_logger is not None:
            self._file_logger.log(level, message)

    debug = partialmethod(_emit, logging.DEBUG)
    info = msg = partialmethod(_emit, logging.INFO)
    warning = warn = partialmethod(_emit, logging.WARNING)
    error = exception = partialmethod(_emit, logging.ERROR)
    critical = fatal = partialmethod(_emit, logging.CRITICAL)


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Configure structlog for the process.

    Safe to call again: the file handler is replaced, not stacked.

    Args:
        config: Logging configuration. If None, defaults are used with the
            mode taken from SWITCHBOARD_LOG_MODE.

    Example:
        configure_logging(LoggingConfig(mode=LogMode.PROD, enable_file_logging=True))
    """
    global _configured, _current_config

    if config is None:
        config = LoggingConfig(mode=_get_mode_from_env())

    _current_config = config
    sink = _StderrSink(_configure_file_logger(config))

    structlog.configure(
        processors=_get_processors(config.mode),
        wrapper_class=structlog.make_filtering_bound_logger(_get_log_level(config.log_level)),
        context_class=dict,
        logger_factory=lambda *_args: sink,
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str | None = None) -> Any:
    """Get a bound logger, configuring logging with defaults on first use.

    Args:
        name: Optional logger name.

    Returns:
        A bound structlog logger.
    """
    if not _configured:
        configure_logging()

    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables that follow the current task across awaits.

    Never bind credentials here.

    Example:
        bind_context(session_id="s-1", request_id="r-42")
        log.info("mcp.call.started")  # includes session_id and request_id
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove context variables from the logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


def get_current_config() -> LoggingConfig | None:
    """Return the active logging configuration, or None if unconfigured."""
    return _current_config


def is_configured() -> bool:
    """Return True if configure_logging has been called."""
    return _configured


def reset_logging() -> None:
    """Reset logging configuration state.

    Intended for tests: clears module state, bound context and the structlog
    configuration.
    """
    global _configured, _current_config
    _configured = False
    _current_config = None
    structlog.contextvars.clear_contextvars()
    _detach_file_handlers()
    structlog.reset_defaults()
