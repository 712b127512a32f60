"""Configuration loading and management for Switchboard.

Functions:
    load_config: Load configuration from ~/.switchboard/config.yaml
    load_auth_secrets: Read API keys and token secret from the environment
    create_default_config: Write a default config.yaml
    ensure_config_dir: Ensure ~/.switchboard/ exists
    config_exists: Check whether config.yaml exists
    to_logging_config: Map the logging section onto the observability model
"""

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError
import yaml

from switchboard.config.models import (
    SwitchboardConfig,
    get_config_dir,
    get_default_config,
)
from switchboard.core.errors import ConfigError
from switchboard.observability.logging import LoggingConfig as ObservabilityLoggingConfig
from switchboard.observability.logging import LogMode


@dataclass(frozen=True, slots=True)
class AuthSecrets:
    """Authentication secrets taken from the environment.

    Attributes:
        api_keys: Accepted API keys.
        token_secret: HMAC secret for bearer tokens.
    """

    api_keys: frozenset[str] = field(default_factory=frozenset)
    token_secret: str | None = None


def ensure_config_dir() -> Path:
    """Ensure the configuration directory and its logs/ subdirectory exist.

    Returns:
        Path to the configuration directory.
    """
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "logs").mkdir(exist_ok=True)
    return config_dir


def create_default_config(
    config_dir: Path | None = None,
    *,
    overwrite: bool = False,
) -> Path:
    """Create a default config.yaml.

    Args:
        config_dir: Directory to create the file in. Defaults to ~/.switchboard/
        overwrite: If True, overwrite an existing file.

    Returns:
        Path to the written config file.

    Raises:
        ConfigError: If the file exists and overwrite=False.
    """
    if config_dir is None:
        config_dir = ensure_config_dir()
    else:
        config_dir.mkdir(parents=True, exist_ok=True)

    config_path = config_dir / "config.yaml"
    if config_path.exists() and not overwrite:
        raise ConfigError(
            f"Configuration file already exists: {config_path}",
            config_file=str(config_path),
        )

    with config_path.open("w") as f:
        yaml.dump(
            get_default_config().model_dump(mode="json"),
            f,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )

    return config_path


def load_config(config_path: Path | None = None) -> SwitchboardConfig:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to config file. Defaults to ~/.switchboard/config.yaml.

    Returns:
        Validated SwitchboardConfig instance.

    Raises:
        ConfigError: If the file doesn't exist, is malformed, or fails validation.
    """
    if config_path is None:
        config_path = get_config_dir() / "config.yaml"

    if not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}. "
            "Run `switchboard config init` to create default configuration.",
            config_file=str(config_path),
        )

    try:
        with config_path.open() as f:
            config_dict: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Failed to parse configuration file: {e}",
            config_file=str(config_path),
            details={"yaml_error": str(e)},
        ) from e

    if config_dict is None:
        config_dict = {}
    if not isinstance(config_dict, dict):
        raise ConfigError(
            "Configuration file must contain a mapping at the top level",
            config_file=str(config_path),
        )

    try:
        return SwitchboardConfig.model_validate(config_dict)
    except PydanticValidationError as e:
        raise ConfigError.from_validation_error(e, config_file=str(config_path)) from e


def load_auth_secrets(env_file: Path | None = None) -> AuthSecrets:
    """Read authentication secrets from the environment.

    .env in the current directory and ~/.switchboard/.env are loaded first
    (existing environment variables win).

    Args:
        env_file: Optional extra .env file to load.

    Returns:
        AuthSecrets with API keys from SWITCHBOARD_API_KEYS (comma separated)
        and the token secret from SWITCHBOARD_TOKEN_SECRET.
    """
    load_dotenv()
    load_dotenv(get_config_dir() / ".env")
    if env_file is not None:
        load_dotenv(env_file)

    raw_keys = os.environ.get("SWITCHBOARD_API_KEYS", "")
    api_keys = frozenset(key.strip() for key in raw_keys.split(",") if key.strip())
    token_secret = os.environ.get("SWITCHBOARD_TOKEN_SECRET", "").strip() or None
    return AuthSecrets(api_keys=api_keys, token_secret=token_secret)


def config_exists() -> bool:
    """Return True if ~/.switchboard/config.yaml exists."""
    return (get_config_dir() / "config.yaml").exists()


def to_logging_config(
    config: SwitchboardConfig,
    config_dir: Path | None = None,
) -> ObservabilityLoggingConfig:
    """Translate the logging section into the observability LoggingConfig.

    Args:
        config: Loaded Switchboard configuration.
        config_dir: Base for a relative log_dir. Defaults to ~/.switchboard/.

    Returns:
        LoggingConfig ready for configure_logging().
    """
    section = config.logging
    log_dir = Path(section.log_dir).expanduser()
    if not log_dir.is_absolute():
        log_dir = (config_dir or get_config_dir()) / log_dir

    return ObservabilityLoggingConfig(
        mode=LogMode(section.mode),
        log_level=section.level.upper(),
        log_dir=log_dir,
        enable_file_logging=section.enable_file_logging,
    )
