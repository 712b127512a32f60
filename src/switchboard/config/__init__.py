"""Configuration module for Switchboard.

Configuration is stored in ~/.switchboard/config.yaml. Secrets (API keys,
token secret) are read from the environment or a .env file.

Usage:
    from switchboard.config import load_config

    config = load_config()
    timeout = config.sampling.default_timeout_seconds
"""

from switchboard.config.loader import (
    AuthSecrets,
    config_exists,
    create_default_config,
    ensure_config_dir,
    load_auth_secrets,
    load_config,
    to_logging_config,
)
from switchboard.config.models import (
    AuthConfig,
    LoggingConfig,
    RateLimitConfig,
    SamplingConfig,
    ServerConfig,
    ShutdownConfig,
    SwitchboardConfig,
    get_config_dir,
    get_default_config,
)

__all__ = [
    # Models
    "SwitchboardConfig",
    "ServerConfig",
    "SamplingConfig",
    "ShutdownConfig",
    "RateLimitConfig",
    "AuthConfig",
    "LoggingConfig",
    # Loader functions
    "AuthSecrets",
    "load_config",
    "load_auth_secrets",
    "create_default_config",
    "ensure_config_dir",
    "config_exists",
    "to_logging_config",
    # Model helpers
    "get_config_dir",
    "get_default_config",
]
