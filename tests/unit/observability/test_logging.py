"""Unit tests for switchboard.observability.logging module."""

import json
from pathlib import Path

import pytest
import structlog

from switchboard.observability.logging import (
    LoggingConfig,
    LogMode,
    bind_context,
    clear_context,
    configure_logging,
    get_current_config,
    get_logger,
    is_configured,
    is_console_logging_enabled,
    reset_logging,
    set_console_logging,
    unbind_context,
)


class TestConfigureLogging:
    """Test configure_logging and module state."""

    def test_configure_records_config(self) -> None:
        """configure_logging marks logging configured and keeps the config."""
        config = LoggingConfig(mode=LogMode.PROD, log_level="DEBUG")
        configure_logging(config)
        assert is_configured()
        assert get_current_config() == config

    def test_mode_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without a config the mode comes from SWITCHBOARD_LOG_MODE."""
        monkeypatch.setenv("SWITCHBOARD_LOG_MODE", "prod")
        configure_logging()
        current = get_current_config()
        assert current is not None
        assert current.mode == LogMode.PROD

    def test_get_logger_configures_on_first_use(self) -> None:
        """get_logger configures defaults if nobody has yet."""
        reset_logging()
        assert not is_configured()
        get_logger(__name__)
        assert is_configured()

    def test_reset_logging(self) -> None:
        """reset_logging clears module state."""
        configure_logging()
        reset_logging()
        assert not is_configured()
        assert get_current_config() is None


class TestOutput:
    """Test what reaches stderr."""

    def test_prod_mode_writes_json_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Production mode renders one JSON object per entry on stderr."""
        configure_logging(LoggingConfig(mode=LogMode.PROD))
        get_logger("test").info("test.event.happened", tool="calculate")

        captured = capsys.readouterr()
        assert captured.out == ""
        entry = json.loads(captured.err.strip().splitlines()[-1])
        assert entry["event"] == "test.event.happened"
        assert entry["tool"] == "calculate"
        assert entry["level"] == "info"

    def test_secrets_are_masked(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Sensitive keys never reach the output verbatim."""
        configure_logging(LoggingConfig(mode=LogMode.PROD))
        get_logger("test").info("test.auth", api_key="sk-1234567890abcdef", user="alice")

        entry = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert entry["api_key"] == "<REDACTED>"
        assert entry["user"] == "alice"

    def test_level_filtering(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Entries below the configured level are dropped."""
        configure_logging(LoggingConfig(mode=LogMode.PROD, log_level="WARNING"))
        get_logger("test").info("test.quiet")
        assert "test.quiet" not in capsys.readouterr().err

    def test_console_logging_can_be_disabled(self, capsys: pytest.CaptureFixture[str]) -> None:
        """set_console_logging(False) silences stderr."""
        configure_logging(LoggingConfig(mode=LogMode.PROD))
        set_console_logging(False)
        assert not is_console_logging_enabled()
        get_logger("test").info("test.silent")
        assert "test.silent" not in capsys.readouterr().err

    def test_file_logging(self, tmp_path: Path) -> None:
        """File logging writes entries to switchboard.log."""
        configure_logging(
            LoggingConfig(mode=LogMode.PROD, log_dir=tmp_path, enable_file_logging=True)
        )
        set_console_logging(False)
        get_logger("test").info("test.to_file")
        assert "test.to_file" in (tmp_path / "switchboard.log").read_text()


class TestContext:
    """Test contextvar binding helpers."""

    def test_bind_and_unbind(self) -> None:
        """Bound keys appear in the context until unbound."""
        bind_context(session_id="s-1", request_id="r-1")
        assert structlog.contextvars.get_contextvars() == {
            "session_id": "s-1",
            "request_id": "r-1",
        }
        unbind_context("request_id")
        assert structlog.contextvars.get_contextvars() == {"session_id": "s-1"}
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}

    def test_context_is_merged_into_entries(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Bound context shows up in every entry."""
        configure_logging(LoggingConfig(mode=LogMode.PROD))
        bind_context(session_id="s-9")
        try:
            get_logger("test").info("test.with_context")
        finally:
            clear_context()
        entry = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert entry["session_id"] == "s-9"
