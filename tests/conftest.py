"""Shared fixtures for the Switchboard test suite."""

from collections.abc import Iterator

import pytest

from switchboard.observability.logging import reset_logging, set_console_logging


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Undo any logging configuration a test (or the CLI) applied."""
    yield
    reset_logging()
    set_console_logging(True)
