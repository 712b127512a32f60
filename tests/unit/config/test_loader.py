"""Unit tests for switchboard.config.loader module."""

from pathlib import Path

import pytest
import yaml

from switchboard.config.loader import (
    config_exists,
    create_default_config,
    ensure_config_dir,
    load_auth_secrets,
    load_config,
    to_logging_config,
)
from switchboard.config.models import SwitchboardConfig
from switchboard.core.errors import ConfigError
from switchboard.observability.logging import LogMode


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the home directory (and cwd) at a temporary directory."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SWITCHBOARD_API_KEYS", raising=False)
    monkeypatch.delenv("SWITCHBOARD_TOKEN_SECRET", raising=False)
    return tmp_path


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Write a valid config file with a few overrides."""
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.dump(
            {
                "server": {"name": "test-server"},
                "rate_limit": {"enabled": True, "burst_size": 3},
            }
        )
    )
    return path


class TestEnsureConfigDir:
    """Test ensure_config_dir."""

    def test_creates_directories(self, home: Path) -> None:
        """The config dir and its logs/ subdirectory are created."""
        config_dir = ensure_config_dir()
        assert config_dir == home / ".switchboard"
        assert (config_dir / "logs").is_dir()


class TestCreateDefaultConfig:
    """Test create_default_config."""

    def test_writes_defaults(self, tmp_path: Path) -> None:
        """The written file loads back as the default config."""
        path = create_default_config(tmp_path)
        assert path == tmp_path / "config.yaml"
        assert load_config(path) == SwitchboardConfig()

    def test_refuses_to_overwrite(self, tmp_path: Path) -> None:
        """An existing file is kept unless overwrite is set."""
        create_default_config(tmp_path)
        with pytest.raises(ConfigError, match="already exists"):
            create_default_config(tmp_path)

    def test_overwrite(self, tmp_path: Path) -> None:
        """overwrite=True replaces the file."""
        path = create_default_config(tmp_path)
        path.write_text("server:\n  name: changed\n")
        create_default_config(tmp_path, overwrite=True)
        assert load_config(path).server.name == "switchboard"

    def test_default_location(self, home: Path) -> None:
        """Without a directory the file lands in ~/.switchboard/."""
        assert not config_exists()
        create_default_config()
        assert config_exists()


class TestLoadConfig:
    """Test load_config."""

    def test_loads_overrides(self, config_file: Path) -> None:
        """Values from the file override the defaults."""
        config = load_config(config_file)
        assert config.server.name == "test-server"
        assert config.rate_limit.enabled is True
        assert config.rate_limit.burst_size == 3
        assert config.sampling.default_max_tokens == 512

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file raises ConfigError pointing at config init."""
        with pytest.raises(ConfigError, match="config init"):
            load_config(tmp_path / "nope.yaml")

    def test_empty_file_is_defaults(self, tmp_path: Path) -> None:
        """An empty file yields the default config."""
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path) == SwitchboardConfig()

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        """Unparseable YAML raises ConfigError."""
        path = tmp_path / "config.yaml"
        path.write_text("server: [unclosed")
        with pytest.raises(ConfigError, match="parse"):
            load_config(path)

    def test_non_mapping_top_level(self, tmp_path: Path) -> None:
        """A list at the top level is rejected."""
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)

    def test_validation_errors_are_listed(self, tmp_path: Path) -> None:
        """Schema violations name the offending field."""
        path = tmp_path / "config.yaml"
        path.write_text("sampling:\n  default_timeout_seconds: -5\n")
        with pytest.raises(ConfigError) as exc_info:
            load_config(path)
        assert "sampling.default_timeout_seconds" in exc_info.value.message
        assert exc_info.value.config_file == str(path)


class TestLoadAuthSecrets:
    """Test load_auth_secrets."""

    def test_reads_environment(self, home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """API keys are split on commas and trimmed."""
        monkeypatch.setenv("SWITCHBOARD_API_KEYS", "key-a, key-b,,")
        monkeypatch.setenv("SWITCHBOARD_TOKEN_SECRET", "s3cret")
        secrets = load_auth_secrets()
        assert secrets.api_keys == frozenset({"key-a", "key-b"})
        assert secrets.token_secret == "s3cret"

    def test_empty_environment(self, home: Path) -> None:
        """Without variables there are no secrets."""
        secrets = load_auth_secrets()
        assert secrets.api_keys == frozenset()
        assert secrets.token_secret is None

    def test_reads_env_file(self, home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Values from an explicit .env file are loaded."""
        env_file = home / "extra.env"
        env_file.write_text("SWITCHBOARD_TOKEN_SECRET=from-file\n")
        secrets = load_auth_secrets(env_file)
        assert secrets.token_secret == "from-file"
        monkeypatch.delenv("SWITCHBOARD_TOKEN_SECRET", raising=False)


class TestToLoggingConfig:
    """Test to_logging_config."""

    def test_maps_fields(self, tmp_path: Path) -> None:
        """Level, mode and a relative log dir are translated."""
        config = SwitchboardConfig.model_validate(
            {"logging": {"level": "debug", "mode": "prod", "enable_file_logging": True}}
        )
        logging_config = to_logging_config(config, tmp_path)
        assert logging_config.log_level == "DEBUG"
        assert logging_config.mode == LogMode.PROD
        assert logging_config.log_dir == tmp_path / "logs"
        assert logging_config.enable_file_logging is True

    def test_absolute_log_dir(self, tmp_path: Path) -> None:
        """An absolute log dir is kept as-is."""
        config = SwitchboardConfig.model_validate({"logging": {"log_dir": str(tmp_path / "x")}})
        assert to_logging_config(config).log_dir == tmp_path / "x"
